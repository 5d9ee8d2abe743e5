"""Command line assembly and process launch."""

import asyncio
import codecs
import logging
import re
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Mapping, Optional, TextIO, Tuple

from .. import LAUNCHER_NAME, __version__
from ..auth.base import AuthData
from ..runtime.java_manager import JavaManager
from ..versions.libraries import LibraryResolver
from ..versions.models import Argument, VersionManifest
from .platform import PlatformContext
from .profile import Profile
from .rules import FeatureState, is_allowed

logger = logging.getLogger(__name__)

PLACEHOLDER = re.compile(r"\$\{([A-Za-z0-9_]+)\}")


@dataclass(frozen=True)
class LaunchDirectories:
    versions: Path
    libraries: Path
    natives: Path
    assets: Path

    def absolute(self) -> "LaunchDirectories":
        return LaunchDirectories(
            versions=Path(self.versions).absolute(),
            libraries=Path(self.libraries).absolute(),
            natives=Path(self.natives).absolute(),
            assets=Path(self.assets).absolute(),
        )


def substitute(value: str, replacements: Mapping[str, str]) -> str:
    """Replace ``${name}`` placeholders; unknown names are left untouched."""
    return PLACEHOLDER.sub(lambda m: replacements.get(m.group(1), m.group(0)), value)


def split_free_form(raw: str) -> List[str]:
    return [token for token in raw.split(" ") if token]


class GameLauncher:
    def __init__(self, platform: PlatformContext, java_manager: Optional[JavaManager] = None):
        self.platform = platform
        self.java_manager = java_manager or JavaManager(platform.os_name)

    def build_classpath(self, manifest: VersionManifest, versions_dir: Path, libraries_dir: Path) -> str:
        """Join library jars in manifest order, with the client jar last."""
        resolver = LibraryResolver(libraries_dir, self.platform)
        paths = [
            str(libraries_dir / resolver.main_path(lib))
            for lib in resolver.included(manifest.libraries)
            if lib.downloads.artifact is not None
        ]
        paths.append(str(versions_dir / manifest.id / f"{manifest.id}.jar"))
        return self.platform.classpath_separator.join(paths)

    def substitutions(self, manifest: VersionManifest, profile: Profile, auth: AuthData,
                      dirs: LaunchDirectories, game_dir: Path, classpath: str) -> Dict[str, str]:
        table = {
            "natives_directory": str(dirs.natives),
            "launcher_name": LAUNCHER_NAME,
            "launcher_version": __version__,
            "classpath": classpath,
            "auth_player_name": auth.player_name,
            "auth_uuid": auth.uuid,
            "auth_access_token": auth.token,
            "user_type": auth.user_type,
            "version_name": manifest.id,
            "version_type": manifest.type,
            "game_directory": str(game_dir),
            "assets_root": str(dirs.assets),
            "assets_index_name": manifest.asset_index_id,
        }
        if profile.resolution_width:
            table["resolution_width"] = str(profile.resolution_width)
        if profile.resolution_height:
            table["resolution_height"] = str(profile.resolution_height)
        return table

    def resolve_java(self, profile: Profile) -> Path:
        if profile.java_path:
            return Path(profile.java_path)
        return self.java_manager.find_system_java()

    def _emit(self, arguments: List[Argument], features: FeatureState,
              replacements: Mapping[str, str]) -> List[str]:
        emitted = []
        for argument in arguments:
            if not is_allowed(argument.rules, self.platform, features):
                continue
            emitted.extend(substitute(value, replacements) for value in argument.values)
        return emitted

    def build_command_line(self, manifest: VersionManifest, profile: Profile, auth: AuthData,
                           dirs: LaunchDirectories) -> Tuple[Path, List[str]]:
        """Return the Java binary and its argument list for launching ``manifest``."""
        dirs = dirs.absolute()
        game_dir = Path(profile.game_dir).absolute()

        classpath = self.build_classpath(manifest, dirs.versions, dirs.libraries)
        replacements = self.substitutions(manifest, profile, auth, dirs, game_dir, classpath)
        features = FeatureState.from_profile(profile)
        java = self.resolve_java(profile)

        args = self._emit(manifest.jvm_arguments, features, replacements)
        args.extend(substitute(token, replacements) for token in split_free_form(profile.custom_jvm_args))
        if profile.heap_max_mb:
            args.append(f"-Xmx{profile.heap_max_mb}M")

        args.append(manifest.main_class)

        args.extend(self._emit(manifest.game_arguments, features, replacements))
        args.extend(substitute(token, replacements) for token in split_free_form(profile.custom_game_args))
        return java, args

    async def launch(self, java: Path, args: List[str], cwd: Path,
                     log_sink: Optional[TextIO] = None) -> int:
        """Launch the game process and wait for it to exit, returning its exit code."""
        cwd.mkdir(parents=True, exist_ok=True)
        logger.info("Launching %s in %s", java, cwd)
        logger.debug("Command line: %s %s", java, " ".join(args))

        process = await asyncio.create_subprocess_exec(
            str(java), *args,
            cwd=str(cwd),
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
        try:
            await asyncio.gather(
                _pump(process.stdout, sys.stdout, log_sink),
                _pump(process.stderr, sys.stderr, log_sink),
            )
        except BaseException:
            if process.returncode is None:
                try:
                    process.kill()
                except ProcessLookupError:
                    pass
            raise
        finally:
            await process.wait()
        return process.returncode


async def _pump(stream: asyncio.StreamReader, console: TextIO, log_sink: Optional[TextIO],
                chunk_size: int = 64 * 1024) -> None:
    decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
    while True:
        chunk = await stream.read(chunk_size)
        text = decoder.decode(chunk, final=not chunk)
        if text:
            console.write(text)
            console.flush()
            if log_sink is not None:
                log_sink.write(text)
        if not chunk:
            break
