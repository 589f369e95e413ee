"""Extraction of native library archives."""

import asyncio
import logging
import shutil
import zipfile
import zlib
from pathlib import Path
from typing import Iterable

from ..errors import InvalidArchive

logger = logging.getLogger(__name__)

DEFAULT_EXCLUDES = ["META-INF/"]


def is_excluded(entry_name: str, excludes: Iterable[str]) -> bool:
    """Patterns ending with ``/`` match a path prefix, other patterns a substring."""
    for pattern in excludes:
        if pattern.endswith("/"):
            if entry_name.startswith(pattern):
                return True
        elif pattern in entry_name:
            return True
    return False


def extract_natives(archive_path: Path, target_dir: Path, excludes: Iterable[str] = ()) -> int:
    """Extract every file of ``archive_path`` into ``target_dir``.

    Directory entries, excluded entries and entries escaping ``target_dir``
    are skipped; existing files are overwritten. Returns the number of files
    written, 0 being a warning signal rather than an error.
    """
    excludes = list(excludes)
    target_dir = Path(target_dir)
    target_dir.mkdir(parents=True, exist_ok=True)
    target_root = target_dir.resolve()

    extracted = 0
    try:
        with zipfile.ZipFile(archive_path) as archive:
            for info in archive.infolist():
                if info.is_dir():
                    continue
                if is_excluded(info.filename, excludes):
                    logger.debug("Excluding %s from %s", info.filename, archive_path)
                    continue

                target_path = (target_root / info.filename).resolve()
                if target_root != target_path and target_root not in target_path.parents:
                    logger.warning("Skipping entry %s escaping %s", info.filename, target_dir)
                    continue

                target_path.parent.mkdir(parents=True, exist_ok=True)
                with archive.open(info) as src, open(target_path, "wb") as dst:
                    shutil.copyfileobj(src, dst)
                extracted += 1
    except (zipfile.BadZipFile, zipfile.LargeZipFile, zlib.error, EOFError) as e:
        raise InvalidArchive(archive_path, str(e)) from e
    except FileNotFoundError as e:
        raise InvalidArchive(archive_path, "archive does not exist") from e

    if extracted == 0:
        logger.warning("No files were extracted from %s", archive_path)
    else:
        logger.debug("Extracted %d files from %s", extracted, archive_path)
    return extracted


async def extract_natives_async(archive_path: Path, target_dir: Path, excludes: Iterable[str] = ()) -> int:
    """``extract_natives`` in a worker thread."""
    return await asyncio.to_thread(extract_natives, archive_path, target_dir, list(excludes))


def native_directory_is_empty(natives_dir: Path) -> bool:
    if not natives_dir.is_dir():
        return True
    return not any(natives_dir.iterdir())


def wipe_native_directory(natives_dir: Path) -> None:
    """Remove a (possibly partial) natives directory and recreate it empty."""
    if natives_dir.exists():
        shutil.rmtree(natives_dir)
    natives_dir.mkdir(parents=True, exist_ok=True)
