"""Launcher settings.

Everything that depends on the environment (data root, remote endpoints,
download tuning) lives here so call sites never read ``os.environ`` directly.
"""

import os
from pathlib import Path

from pydantic import BaseModel, Field, ValidationError

from .errors import InvalidSettings

VERSION_MANIFEST_URL = "https://launchermeta.mojang.com/mc/game/version_manifest.json"
RESOURCES_URL = "https://resources.download.minecraft.net"


def _default_root() -> Path:
    return Path.home() / ".minecraft"


class LauncherSettings(BaseModel):
    root_dir: Path = Field(default_factory=_default_root)
    version_manifest_url: str = VERSION_MANIFEST_URL
    resources_url: str = RESOURCES_URL
    concurrent_downloads: int = Field(default=8, ge=1)
    # Total seconds allowed for a single HTTP request, body included.
    request_timeout: float = Field(default=60.0, gt=0)

    @classmethod
    def from_env(cls, **overrides) -> "LauncherSettings":
        """Build settings from ``MINELAUNCH_*`` variables, then apply overrides."""
        values = {}
        if home := os.getenv("MINELAUNCH_HOME"):
            values["root_dir"] = Path(home).expanduser()
        if concurrency := os.getenv("MINELAUNCH_CONCURRENCY"):
            values["concurrent_downloads"] = concurrency
        if timeout := os.getenv("MINELAUNCH_TIMEOUT"):
            values["request_timeout"] = timeout
        values.update(overrides)
        try:
            return cls(**values)
        except ValidationError as e:
            raise InvalidSettings(f"invalid launcher settings: {e}") from e

    @property
    def versions_dir(self) -> Path:
        return self.root_dir / "versions"

    @property
    def libraries_dir(self) -> Path:
        return self.root_dir / "libraries"

    @property
    def assets_dir(self) -> Path:
        return self.root_dir / "assets"
