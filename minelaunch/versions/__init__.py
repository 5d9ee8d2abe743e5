"""Version management module.

Only the leaf modules are re-exported here; import ``manager`` and
``libraries`` directly since they depend on ``minelaunch.core``.
"""

from .download_manager import DownloadManager, FetchResult
from .models import Argument, Library, Rule, VersionInfo, VersionList, VersionManifest
from .reader import parse_version_manifest

__all__ = [
    "Argument",
    "DownloadManager",
    "FetchResult",
    "Library",
    "Rule",
    "VersionInfo",
    "VersionList",
    "VersionManifest",
    "parse_version_manifest",
]
