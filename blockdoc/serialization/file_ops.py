"""
Async file operations for snapshot persistence.

Provides atomic text writes (temp file + rename) and reads, so a
crash mid-write never leaves a truncated snapshot behind.
"""

import os
import tempfile
from pathlib import Path

import aiofiles
import aiofiles.os

from ..exceptions import SnapshotIOError


async def ensure_directory(path: Path) -> None:
    """Ensure directory exists, creating if necessary.

    Args:
        path: Directory path to ensure exists
    """
    try:
        await aiofiles.os.makedirs(path, exist_ok=True)
    except OSError as e:
        raise SnapshotIOError("create_directory", str(path), e) from e


async def read_text(path: Path) -> str | None:
    """Read a text file.

    Args:
        path: Path to the file

    Returns:
        File content, or None if the file doesn't exist
    """
    try:
        if not await aiofiles.os.path.exists(path):
            return None
        async with aiofiles.open(path, encoding="utf-8") as f:
            return await f.read()
    except OSError as e:
        raise SnapshotIOError("read", str(path), e) from e


async def write_text_atomic(path: Path, content: str, suffix: str = ".json") -> None:
    """Write a text file atomically using temp file + rename.

    Args:
        path: Target path
        content: Text to write
        suffix: Suffix for the temporary file
    """
    await ensure_directory(path.parent)

    fd, temp_path = tempfile.mkstemp(
        dir=path.parent,
        prefix=".tmp_",
        suffix=suffix,
    )
    try:
        os.close(fd)
        async with aiofiles.open(temp_path, "w", encoding="utf-8") as f:
            await f.write(content)
            await f.flush()
            os.fsync(f.fileno())

        await aiofiles.os.rename(temp_path, path)
    except Exception as e:
        # Clean up temp file on error
        try:
            await aiofiles.os.remove(temp_path)
        except OSError:
            pass
        raise SnapshotIOError("write", str(path), e) from e
