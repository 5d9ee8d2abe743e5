"""Current platform identity, computed once and passed around explicitly."""

import logging
import platform
from dataclasses import dataclass
from typing import Callable, Optional

from ..errors import ProbeFailure

logger = logging.getLogger(__name__)

# platform.machine() -> architecture names used by manifest rules
ARCH_ALIASES = {
    "i386": "x86",
    "i686": "x86",
    "x86": "x86",
    "x86_64": "amd64",
    "amd64": "amd64",
    "aarch64": "arm64",
    "arm64": "arm64",
    "armv6l": "arm32",
    "armv7l": "arm32",
    "arm": "arm32",
}
ARCH_32_BIT = frozenset({"x86", "arm32"})


def normalize_os_name(system: str) -> str:
    name = system.lower()
    if name == "darwin":
        return "osx"
    return name


def normalize_arch(machine: str) -> Optional[str]:
    return ARCH_ALIASES.get(machine.lower())


def probe_os_version() -> str:
    """Return the running OS version string.

    Linux and macOS report the kernel release, Windows the build version.
    Raises ProbeFailure when the platform gives nothing usable.
    """
    try:
        if platform.system() == "Windows":
            version = platform.version()
        else:
            version = platform.release()
    except OSError as e:
        raise ProbeFailure(f"failed to get OS version: {e}") from e
    if not version:
        raise ProbeFailure("failed to get OS version: empty result")
    return version


@dataclass(frozen=True)
class PlatformContext:
    os_name: str
    arch: Optional[str]
    os_version: Optional[str] = None

    @classmethod
    def detect(cls, probe: Callable[[], str] = probe_os_version) -> "PlatformContext":
        try:
            os_version = probe()
        except ProbeFailure as e:
            logger.warning("%s", e)
            os_version = None
        return cls(
            os_name=normalize_os_name(platform.system()),
            arch=normalize_arch(platform.machine()),
            os_version=os_version,
        )

    @property
    def word_size(self) -> str:
        # Every architecture that is not known to be 32-bit counts as 64-bit.
        return "32" if self.arch in ARCH_32_BIT else "64"

    @property
    def classpath_separator(self) -> str:
        return ";" if self.os_name == "windows" else ":"
