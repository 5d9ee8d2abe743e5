"""Exception types raised by the launcher core."""

from typing import Optional


class LauncherError(Exception):
    """Base class for every launcher failure."""


class MalformedManifest(LauncherError):
    """Manifest JSON does not match the expected schema."""


class MalformedCoordinate(LauncherError):
    """Library name is not a ``group:artifact:version`` triple."""

    def __init__(self, coordinate: str):
        super().__init__(f"malformed library name: {coordinate}")
        self.coordinate = coordinate


class NetworkFailure(LauncherError):
    """Connection error or timeout while talking to a remote host."""

    def __init__(self, message: str, url: Optional[str] = None):
        super().__init__(message)
        self.url = url


class HTTPRejection(NetworkFailure):
    """Remote host answered with a non-2xx status."""

    def __init__(self, url: str, status: int, reason: str = ""):
        status_line = f"{status} {reason}" if reason else str(status)
        super().__init__(f"HTTP {status_line} for {url}", url)
        self.status = status


class HashMismatch(LauncherError):
    def __init__(self, url: str, expected: str, actual: str):
        super().__init__(f"hash mismatch for {url}: expected {expected}, got {actual}")
        self.url = url
        self.expected = expected
        self.actual = actual


class FilesystemFailure(LauncherError):
    """Directory creation, open, rename or archive read failed."""


class ProbeFailure(LauncherError):
    """An external system probe (OS version, Java lookup) failed."""


class UnknownVersion(LauncherError):
    """Requested version id is neither known remotely nor installed."""


class UnsafeArchiveEntry(LauncherError):
    """Archive entry would be written outside the extraction directory."""


class DownloadFailed(LauncherError):
    """Batch download aborted; ``__cause__`` holds the underlying error."""

    def __init__(self, item: str, message: str):
        super().__init__(f"{message}: {item}")
        self.item = item


class ConflictingFetch(LauncherError):
    """Target is already being fetched with a different expected hash."""

    def __init__(self, target: str, in_flight: str, requested: str):
        super().__init__(f"{target} is being fetched as {in_flight}, requested {requested}")
        self.target = target
        self.in_flight = in_flight
        self.requested = requested


class InvalidSettings(LauncherError):
    """A ``MINELAUNCH_*`` variable or settings override is invalid."""


class InvalidCredentials(LauncherError):
    """Login rejected the supplied user name or password."""
