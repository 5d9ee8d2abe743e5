"""Launch profile supplied by the caller."""

from pathlib import Path
from typing import Optional

from pydantic import BaseModel


class Profile(BaseModel):
    game_dir: Path = Path(".")
    java_path: Optional[Path] = None
    heap_max_mb: int = 0
    custom_jvm_args: str = ""
    custom_game_args: str = ""
    resolution_width: int = 0
    resolution_height: int = 0
    no_demo: bool = True
    version_id: Optional[str] = None

    @property
    def has_custom_resolution(self) -> bool:
        return self.resolution_width != 0 and self.resolution_height != 0
