"""
File Reader

The plain disk-read data path, and the chunked file source shared by the
transfer client.
"""

import logging
from pathlib import Path
from typing import AsyncIterator, Union

import aiofiles

from .checksum import CHUNK_SIZE, hash_stream
from ..exceptions import StreamIOError

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


async def read_file(file_path: PathLike, chunk_size: int = CHUNK_SIZE) -> int:
    """
    Read a file from disk and return its checksum.

    Raises:
        StreamIOError: if the file cannot be opened or read
    """
    file_path = Path(file_path)
    try:
        async with aiofiles.open(file_path, 'rb') as f:
            return await hash_stream(f, chunk_size)
    except OSError as e:
        raise StreamIOError(f"failed to open {file_path}: {e}") from e


async def iter_file(file_path: PathLike,
                    chunk_size: int = CHUNK_SIZE) -> AsyncIterator[bytes]:
    """
    Yield a file's contents in chunks.

    Yields:
        Non-empty chunks of at most chunk_size bytes
    """
    file_path = Path(file_path)
    try:
        async with aiofiles.open(file_path, 'rb') as f:
            while True:
                chunk = await f.read(chunk_size)
                if not chunk:
                    break
                yield chunk
    except OSError as e:
        raise StreamIOError(f"failed to read {file_path}: {e}") from e


def file_size(file_path: PathLike) -> int:
    """Size of a file in bytes."""
    return Path(file_path).stat().st_size
