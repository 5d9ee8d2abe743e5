"""Data models for version manifests."""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field


class RuleAction(str, Enum):
    ALLOW = "allow"
    DISALLOW = "disallow"


class RuleOs(BaseModel):
    name: Optional[str] = None
    version: Optional[str] = None
    arch: Optional[str] = None


class Rule(BaseModel):
    action: RuleAction
    os: Optional[RuleOs] = None
    features: Optional[Dict[str, bool]] = None


class Artifact(BaseModel):
    """One downloadable file identified by its SHA1."""
    model_config = ConfigDict(frozen=True)

    sha1: str
    size: int = 0
    url: str
    path: Optional[str] = None


class AssetIndexRef(Artifact):
    id: str
    totalSize: Optional[int] = None


class VersionDownloads(BaseModel):
    client: Optional[Artifact] = None
    server: Optional[Artifact] = None


class LibraryDownloads(BaseModel):
    artifact: Optional[Artifact] = None
    classifiers: Dict[str, Artifact] = Field(default_factory=dict)


class LibraryNatives(BaseModel):
    linux: Optional[str] = None
    osx: Optional[str] = None
    windows: Optional[str] = None


class LibraryExtract(BaseModel):
    exclude: List[str] = Field(default_factory=list)


class Library(BaseModel):
    name: str
    downloads: LibraryDownloads = Field(default_factory=LibraryDownloads)
    natives: Optional[LibraryNatives] = None
    rules: Optional[List[Rule]] = None
    extract: Optional[LibraryExtract] = None

    @property
    def exclude_prefixes(self) -> List[str]:
        return list(self.extract.exclude) if self.extract else []


class VersionArguments(BaseModel):
    game: Optional[List[Any]] = None
    jvm: Optional[List[Any]] = None


class VersionMetadata(BaseModel):
    """Raw version.json, a superset of the legacy and modern layouts."""
    id: str
    type: str = "release"
    minimumLauncherVersion: int = 0
    assetIndex: Optional[AssetIndexRef] = None
    assets: Optional[str] = None
    downloads: VersionDownloads = Field(default_factory=VersionDownloads)
    libraries: List[Library] = Field(default_factory=list)
    mainClass: str = ""
    arguments: Optional[VersionArguments] = None
    minecraftArguments: Optional[str] = None


class Argument(BaseModel):
    """A command-line token group emitted when its rules allow it."""
    model_config = ConfigDict(frozen=True)

    values: Tuple[str, ...]
    rules: Optional[Tuple[Rule, ...]] = None

    @property
    def value(self) -> str:
        return " ".join(self.values)


class VersionManifest(BaseModel):
    """Normalized version description, independent of the source layout."""
    id: str
    type: str = "release"
    asset_index: Optional[AssetIndexRef] = None
    assets: Optional[str] = None
    client: Optional[Artifact] = None
    libraries: List[Library] = Field(default_factory=list)
    main_class: str = ""
    jvm_arguments: List[Argument] = Field(default_factory=list)
    game_arguments: List[Argument] = Field(default_factory=list)
    # Set when the manifest declares a newer format than this reader knows.
    partial: bool = False

    @property
    def asset_index_id(self) -> str:
        if self.asset_index:
            return self.asset_index.id
        return self.assets or "legacy"


class VersionInfo(BaseModel):
    id: str
    type: str = "release"
    url: Optional[str] = None
    time: Optional[datetime] = None
    releaseTime: Optional[datetime] = None
    sha1: Optional[str] = None
    installed: bool = False


class LatestVersions(BaseModel):
    release: Optional[str] = None
    snapshot: Optional[str] = None


class VersionList(BaseModel):
    latest: LatestVersions = Field(default_factory=LatestVersions)
    versions: List[VersionInfo] = Field(default_factory=list)


class AssetObject(BaseModel):
    hash: str
    size: int = 0

    @property
    def shard(self) -> str:
        return self.hash[:2]


class AssetIndex(BaseModel):
    objects: Dict[str, AssetObject] = Field(default_factory=dict)
