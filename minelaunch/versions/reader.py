"""Parse version.json documents into the normalized VersionManifest.

Two historical layouts exist. Legacy manifests carry a single space-joined
``minecraftArguments`` string and rely on a built-in JVM argument set; modern
ones carry ``arguments.game`` and ``arguments.jvm`` arrays whose entries are
either plain strings or ``{"value": str | [str], "rules": [...]}`` objects.
Both end up as lists of Argument records so nothing downstream needs to know
which layout a manifest used.
"""

import json
import logging
from typing import Any, List, Optional, Union

from pydantic import ValidationError

from ..errors import MalformedManifest
from .models import Argument, Rule, VersionManifest, VersionMetadata

logger = logging.getLogger(__name__)

# Highest minimumLauncherVersion whose argument layout is understood.
SUPPORTED_LAUNCHER_VERSION = 21

DEFAULT_JVM_ARGUMENTS = (
    "-Xmx2G",
    "-Xms512M",
    "-XX:+UnlockExperimentalVMOptions",
    "-XX:+UseG1GC",
    "-XX:G1NewSizePercent=20",
    "-XX:G1ReservePercent=20",
    "-XX:MaxGCPauseMillis=50",
    "-XX:G1HeapRegionSize=32M",
    "-Djava.library.path=${natives_directory}",
    "-Dminecraft.launcher.brand=${launcher_name}",
    "-Dminecraft.launcher.version=${launcher_version}",
    "-cp",
    "${classpath}",
)


def default_jvm_arguments() -> List[Argument]:
    return [Argument(values=(value,)) for value in DEFAULT_JVM_ARGUMENTS]


def split_legacy_arguments(raw: str) -> List[Argument]:
    return [Argument(values=(value,)) for value in raw.split(" ")]


def _normalize_argument(raw: Any) -> Argument:
    if isinstance(raw, str):
        return Argument(values=(raw,))
    if not isinstance(raw, dict):
        raise MalformedManifest(f"argument entry must be a string or an object, got {raw!r}")

    value = raw.get("value")
    if isinstance(value, str):
        values = (value,)
    elif isinstance(value, list) and all(isinstance(item, str) for item in value):
        values = tuple(value)
    else:
        raise MalformedManifest(f"argument value must be a string or a list of strings, got {value!r}")

    rules = raw.get("rules")
    try:
        parsed_rules = tuple(Rule.model_validate(rule) for rule in rules) if rules is not None else None
    except (ValidationError, TypeError) as e:
        raise MalformedManifest(f"invalid argument rules: {e}") from e
    return Argument(values=values, rules=parsed_rules)


def normalize_arguments(raw: List[Any]) -> List[Argument]:
    """Flatten a modern argument array, keeping each entry's rules."""
    return [_normalize_argument(entry) for entry in raw]


def parse_version_manifest(blob: Union[bytes, str]) -> VersionManifest:
    """Parse a version.json document.

    Raises MalformedManifest on invalid JSON, on schema violations and on
    argument entries of an unknown shape.
    """
    try:
        data = json.loads(blob)
    except ValueError as e:
        raise MalformedManifest(f"invalid version JSON: {e}") from e
    if not isinstance(data, dict):
        raise MalformedManifest("version JSON must be an object")

    try:
        raw = VersionMetadata.model_validate(data)
    except ValidationError as e:
        raise MalformedManifest(f"version JSON doesn't match expected schema: {e}") from e

    manifest = VersionManifest(
        id=raw.id,
        type=raw.type,
        asset_index=raw.assetIndex,
        assets=raw.assets,
        client=raw.downloads.client,
        libraries=raw.libraries,
        main_class=raw.mainClass,
    )

    if raw.minimumLauncherVersion > SUPPORTED_LAUNCHER_VERSION:
        logger.warning(
            "Version %s requires launcher format %d (supported up to %d), arguments left unparsed",
            raw.id, raw.minimumLauncherVersion, SUPPORTED_LAUNCHER_VERSION,
        )
        manifest.partial = True
    else:
        _apply_arguments(manifest, raw)

    if not manifest.jvm_arguments:
        manifest.jvm_arguments = default_jvm_arguments()
    return manifest


def _apply_arguments(manifest: VersionManifest, raw: VersionMetadata) -> None:
    arguments = raw.arguments
    if arguments is not None:
        if arguments.game is not None:
            manifest.game_arguments = normalize_arguments(arguments.game)
        if arguments.jvm is not None:
            manifest.jvm_arguments = normalize_arguments(arguments.jvm)

    # Legacy string takes precedence when both layouts are present.
    legacy: Optional[str] = raw.minecraftArguments
    if legacy:
        manifest.game_arguments = split_legacy_arguments(legacy)
