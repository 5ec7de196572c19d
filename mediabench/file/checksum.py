"""
Streaming Checksum

Design Decision: Checksum Function
==================================

Options Considered:
| Function | Pros                          | Cons                           |
|----------|-------------------------------|--------------------------------|
| SHA-256  | Collision resistant           | Slow, 32-byte wire response    |
| CRC32    | Fast, detects burst errors    | Depends on byte order          |
| XOR-fold | Trivial, order independent    | Weak (one byte)                |

Decision: single-byte XOR-fold
- Associative and commutative, so chunk boundaries never matter
- Can be computed while streaming, nothing is buffered
- One byte on the wire for the remote-checksum protocol
- Good enough to catch truncation and dropped chunks in a benchmark

The fold is done with native integer arithmetic: a chunk is read as one
big integer and repeatedly XORed with its own upper half until a single
byte remains. This keeps the per-byte work in C.
"""

import logging
from typing import Awaitable, Protocol

from ..exceptions import StreamIOError

logger = logging.getLogger(__name__)

# Read size: 64KB
CHUNK_SIZE = 64 * 1024


class AsyncReadable(Protocol):
    """Anything with an awaitable ``read(n)``: stream readers, aiofiles handles."""

    def read(self, n: int) -> Awaitable[bytes]:
        ...


def xor_fold(data: bytes, seed: int = 0) -> int:
    """
    XOR every byte of ``data`` into ``seed``.

    Returns:
        Checksum byte (0..255)
    """
    width = len(data)
    value = int.from_bytes(data, 'little')
    while width > 1:
        half = (width + 1) // 2
        shift = 8 * half
        value = (value & ((1 << shift) - 1)) ^ (value >> shift)
        width = half
    return (seed ^ value) & 0xFF


async def hash_stream(stream: AsyncReadable, chunk_size: int = CHUNK_SIZE) -> int:
    """
    Fold an entire stream into a single checksum byte.

    Reads until end-of-stream. Read failures propagate as StreamIOError
    so a checksum is never reported over a prefix of the data.
    """
    if chunk_size <= 0:
        raise ValueError(f"chunk_size must be positive, got {chunk_size}")

    checksum = 0
    total = 0
    while True:
        try:
            chunk = await stream.read(chunk_size)
        except OSError as e:
            raise StreamIOError(f"read failed after {total} bytes: {e}") from e
        if not chunk:
            break
        checksum = xor_fold(chunk, checksum)
        total += len(chunk)

    logger.debug(f"Hashed {total:,} bytes -> 0x{checksum:02x}")
    return checksum
