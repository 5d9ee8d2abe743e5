"""Library path resolution, download and native extraction."""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Optional, Tuple

from ..core.platform import PlatformContext
from ..core.rules import is_allowed
from ..errors import DownloadFailed, FilesystemFailure, LauncherError, MalformedCoordinate
from .download_manager import DownloadManager, FetchResult, run_all_or_abort
from .models import Artifact, Library
from .natives import extract_native

logger = logging.getLogger(__name__)

# Classifier keys tried when the natives template does not name one directly.
NATIVE_CLASSIFIERS = {
    "linux": ("natives-linux",),
    "osx": ("natives-osx", "natives-macos"),
    "windows": ("natives-windows",),
}


def split_name(coordinate: str) -> Tuple[str, str, str]:
    """Split ``group:artifact:version``."""
    parts = coordinate.split(":")
    if len(parts) != 3:
        raise MalformedCoordinate(coordinate)
    return parts[0], parts[1], parts[2]


@dataclass(frozen=True)
class LibraryDownload:
    library: Library
    main: Optional[FetchResult] = None
    native: Optional[FetchResult] = None


class LibraryResolver:
    def __init__(self, libraries_dir: Path, platform: PlatformContext):
        self.libraries_dir = libraries_dir
        self.platform = platform

    def should_include(self, library: Library) -> bool:
        # Library rules never depend on profile features.
        return is_allowed(library.rules, self.platform)

    def included(self, libraries: Iterable[Library]) -> List[Library]:
        return [lib for lib in libraries if self.should_include(lib)]

    def main_path(self, library: Library) -> Path:
        """Path of the library jar, relative to the libraries directory."""
        group, artifact, version = split_name(library.name)
        return Path(*group.split("."), artifact, version, f"{artifact}-{version}.jar")

    def native_suffix(self, library: Library) -> Optional[str]:
        if library.natives is None:
            return None
        template = getattr(library.natives, self.platform.os_name, None)
        if not template:
            return None
        return template.replace("${arch}", self.platform.word_size)

    def native_artifact(self, library: Library) -> Optional[Tuple[str, Artifact]]:
        """Return ``(classifier, artifact)`` of the native component for this platform."""
        classifiers = library.downloads.classifiers
        suffix = self.native_suffix(library)
        if suffix and suffix in classifiers:
            return suffix, classifiers[suffix]
        for key in NATIVE_CLASSIFIERS.get(self.platform.os_name, ()):
            if key in classifiers:
                return suffix or key, classifiers[key]
        return None

    def native_path(self, library: Library) -> Optional[Path]:
        """Path of the native archive relative to the libraries directory, or None."""
        native = self.native_artifact(library)
        if native is None:
            return None
        classifier = native[0]
        group, artifact, version = split_name(library.name)
        return Path(*group.split("."), artifact, version, f"{artifact}-{version}-{classifier}.jar")

    def resolve_paths(self, library: Library) -> Tuple[Path, Optional[Path]]:
        return self.main_path(library), self.native_path(library)

    async def download_libraries(self, libraries: Iterable[Library],
                                 downloader: DownloadManager) -> List[LibraryDownload]:
        """Fetch the jar and native archive of every included library.

        The first failure aborts the whole batch.
        """
        return await run_all_or_abort(
            self._download_library(lib, downloader) for lib in self.included(libraries)
        )

    async def _download_library(self, library: Library, downloader: DownloadManager) -> LibraryDownload:
        try:
            main_path, native_path = self.resolve_paths(library)
        except MalformedCoordinate as e:
            raise DownloadFailed(library.name, "failed to get save path") from e

        main = None
        artifact = library.downloads.artifact
        if artifact is not None:
            try:
                main = await downloader.fetch_verified(
                    self.libraries_dir / main_path, artifact.url, artifact.sha1)
            except LauncherError as e:
                raise DownloadFailed(library.name, "failed to download") from e

        native = None
        if native_path is not None:
            _, native_file = self.native_artifact(library)
            try:
                native = await downloader.fetch_verified(
                    self.libraries_dir / native_path, native_file.url, native_file.sha1)
            except LauncherError as e:
                raise DownloadFailed(library.name, "failed to download natives") from e

        return LibraryDownload(library, main, native)

    def extract_natives(self, downloads: Iterable[LibraryDownload], natives_dir: Path) -> None:
        for item in downloads:
            if item.native is None:
                continue
            logger.info("Extracting native libraries from %s...", item.native.path)
            try:
                extract_native(item.native, natives_dir, item.library.exclude_prefixes)
            except FilesystemFailure as e:
                raise FilesystemFailure(f"failed to extract natives for {item.library.name}: {e}") from e
