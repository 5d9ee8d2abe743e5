"""Extraction of native-component archives."""

import logging
import shutil
import zipfile
from pathlib import Path
from typing import List, Sequence

from ..errors import FilesystemFailure, UnsafeArchiveEntry
from .download_manager import FetchResult

logger = logging.getLogger(__name__)


def _entry_target(dest: Path, name: str, archive: Path) -> Path:
    target = (dest / name).resolve()
    if target != dest and dest not in target.parents:
        raise UnsafeArchiveEntry(f"{archive}: entry {name!r} escapes {dest}")
    return target


def extract_archive(archive: Path, dest: Path, exclude: Sequence[str] = ()) -> List[str]:
    """Copy every entry of the zip ``archive`` into ``dest``.

    Entries whose name starts with one of the ``exclude`` prefixes are skipped.
    Returns the names of the extracted files.
    """
    dest = Path(dest).resolve()
    extracted = []
    try:
        dest.mkdir(parents=True, exist_ok=True)
        with zipfile.ZipFile(archive) as zf:
            for info in zf.infolist():
                name = info.filename
                if any(name.startswith(prefix) for prefix in exclude):
                    logger.debug("Skipping excluded entry %s", name)
                    continue

                target = _entry_target(dest, name, archive)
                if info.is_dir():
                    target.mkdir(parents=True, exist_ok=True)
                    continue

                target.parent.mkdir(parents=True, exist_ok=True)
                with zf.open(info) as src, open(target, "wb") as out:
                    shutil.copyfileobj(src, out)
                extracted.append(name)
    except zipfile.BadZipFile as e:
        raise FilesystemFailure(f"failed to read archive {archive}: {e}") from e
    except OSError as e:
        raise FilesystemFailure(f"failed to extract {archive}: {e}") from e
    return extracted


def extract_native(fetched: FetchResult, natives_dir: Path, exclude: Sequence[str] = ()) -> List[str]:
    """Extract a downloaded native archive.

    A FetchResult whose file is gone means the caller broke the
    download-then-extract ordering, which is a bug rather than a runtime error.
    """
    if not fetched.path.is_file():
        raise RuntimeError(f"attempt to extract non-existent native {fetched.path}")
    return extract_archive(fetched.path, natives_dir, exclude)
