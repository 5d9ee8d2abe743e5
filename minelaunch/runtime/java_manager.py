"""Java runtime lookup."""

import os
import shutil
from pathlib import Path
from typing import Mapping, Optional

from ..errors import ProbeFailure


class JavaManager:
    def __init__(self, os_name: str, environ: Optional[Mapping[str, str]] = None):
        self.os_name = os_name
        self.environ = os.environ if environ is None else environ

    @property
    def java_executable(self) -> str:
        return "java.exe" if self.os_name == "windows" else "java"

    def find_system_java(self) -> Path:
        """Detect installed Java: JRE_HOME, then JAVA_HOME, then PATH."""
        for variable in ("JRE_HOME", "JAVA_HOME"):
            home = self.environ.get(variable)
            if home:
                return Path(home) / "bin" / self.java_executable

        found = shutil.which(self.java_executable, path=self.environ.get("PATH"))
        if not found:
            raise ProbeFailure("failed to detect system java: not found in PATH")
        return Path(found).absolute()
