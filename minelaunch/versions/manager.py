"""Version catalog and install/run pipeline over one data root."""

import asyncio
import hashlib
import logging
import tempfile
from pathlib import Path
from typing import Dict, List, Optional, TextIO

from pydantic import ValidationError

from ..auth.base import AuthData
from ..config import LauncherSettings
from ..core.game_launcher import GameLauncher, LaunchDirectories
from ..core.platform import PlatformContext
from ..core.profile import Profile
from ..errors import FilesystemFailure, HashMismatch, MalformedManifest, UnknownVersion
from ..utils.async_http import AsyncHTTPClient
from .download_manager import DownloadManager
from .libraries import LibraryResolver
from .models import VersionInfo, VersionList, VersionManifest
from .reader import parse_version_manifest

logger = logging.getLogger(__name__)


class VersionManager:
    def __init__(self, settings: Optional[LauncherSettings] = None,
                 platform: Optional[PlatformContext] = None,
                 launcher: Optional[GameLauncher] = None):
        self.settings = settings or LauncherSettings.from_env()
        self.platform = platform or PlatformContext.detect()
        self.launcher = launcher or GameLauncher(self.platform)
        self.resolver = LibraryResolver(self.settings.libraries_dir, self.platform)
        self.http: Optional[AsyncHTTPClient] = None
        self.latest_release: Optional[str] = None
        self.latest_snapshot: Optional[str] = None
        self._known: Optional[Dict[str, VersionInfo]] = None
        self._versions: Dict[str, VersionManifest] = {}

    async def __aenter__(self):
        self.http = AsyncHTTPClient(timeout=self.settings.request_timeout)
        await self.http.__aenter__()
        return self

    async def __aexit__(self, exc_type, exc, tb):
        if self.http:
            await self.http.__aexit__(exc_type, exc, tb)
            self.http = None

    @property
    def versions_dir(self) -> Path:
        return self.settings.versions_dir

    @property
    def assets_dir(self) -> Path:
        return self.settings.assets_dir

    @property
    def libraries_dir(self) -> Path:
        return self.settings.libraries_dir

    def _client(self) -> AsyncHTTPClient:
        if not self.http:
            raise RuntimeError("VersionManager used outside of 'async with'")
        return self.http

    def _manifest_path(self, version_id: str) -> Path:
        return self.versions_dir / version_id / f"{version_id}.json"

    async def fetch_version_list(self) -> VersionList:
        """Fetch the remote list of available versions."""
        data = await self._client().get(self.settings.version_manifest_url)
        try:
            return VersionList.model_validate(data)
        except ValidationError as e:
            raise MalformedManifest(f"failed to decode versions manifest: {e}") from e

    def installed_version_ids(self) -> List[str]:
        if not self.versions_dir.is_dir():
            return []
        return sorted(
            entry.name for entry in self.versions_dir.iterdir()
            if self._manifest_path(entry.name).is_file()
        )

    async def versions(self) -> Dict[str, VersionInfo]:
        """Remote versions merged with the ones installed under ``versions/``."""
        remote = await self.fetch_version_list()
        self.latest_release = remote.latest.release
        self.latest_snapshot = remote.latest.snapshot

        known = {info.id: info for info in remote.versions}
        for version_id in self.installed_version_ids():
            if version_id in known:
                known[version_id] = known[version_id].model_copy(update={"installed": True})
            else:
                known[version_id] = VersionInfo(id=version_id, type="local", installed=True)

        self._known = known
        return known

    async def get_version(self, version_id: str) -> VersionManifest:
        """Load a version manifest from disk if installed, otherwise download and store it."""
        if version_id in self._versions:
            return self._versions[version_id]
        if self._known is None:
            await self.versions()

        info = self._known.get(version_id)
        if info is None:
            raise UnknownVersion(f"unknown version id: {version_id}")

        path = self._manifest_path(version_id)
        if info.installed:
            try:
                blob = path.read_bytes()
            except OSError as e:
                raise FilesystemFailure(f"failed to read version info {path}: {e}") from e
            manifest = parse_version_manifest(blob)
        else:
            if not info.url:
                raise UnknownVersion(f"can't download local-only version {version_id}")
            blob = await self._client().get_bytes(info.url)
            if info.sha1:
                actual = hashlib.sha1(blob).hexdigest()
                if actual != info.sha1.lower():
                    raise HashMismatch(info.url, info.sha1, actual)
            manifest = parse_version_manifest(blob)
            try:
                path.parent.mkdir(parents=True, exist_ok=True)
                path.write_bytes(blob)
            except OSError as e:
                raise FilesystemFailure(f"failed to write version info {path}: {e}") from e
            self._known[version_id] = info.model_copy(update={"installed": True})

        self._versions[version_id] = manifest
        return manifest

    async def update_version(self, manifest: VersionManifest) -> None:
        """Fetch libraries, the asset index, assets and the client jar."""
        async with DownloadManager.from_settings(self.settings) as downloader:
            await self.resolver.download_libraries(manifest.libraries, downloader)
            asset_index = await downloader.download_asset_index(manifest, self.assets_dir)
            await downloader.download_assets(asset_index, self.assets_dir)
            await downloader.download_version_jar(manifest, self.versions_dir)
        logger.info("Version %s is up to date", manifest.id)

    async def run_version(self, manifest: VersionManifest, profile: Profile, auth: AuthData,
                          log_sink: Optional[TextIO] = None) -> int:
        """Extract natives into a scratch directory and run the game until it exits."""
        with tempfile.TemporaryDirectory(prefix="minelaunch-natives-") as scratch:
            natives_dir = Path(scratch)
            # Already present files are only hash-checked here.
            async with DownloadManager.from_settings(self.settings) as downloader:
                downloads = await self.resolver.download_libraries(manifest.libraries, downloader)

            loop = asyncio.get_running_loop()
            await loop.run_in_executor(None, self.resolver.extract_natives, downloads, natives_dir)

            dirs = LaunchDirectories(
                versions=self.versions_dir,
                libraries=self.libraries_dir,
                natives=natives_dir,
                assets=self.assets_dir,
            )
            java, args = self.launcher.build_command_line(manifest, profile, auth, dirs)
            return await self.launcher.launch(java, args, Path(profile.game_dir).absolute(), log_sink)
