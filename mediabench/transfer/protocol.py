"""
Transfer Wire Protocols

Design Decision: Transfer Protocol
===================================

Options Considered:
1. Echo
   - Server mirrors every byte back
   - Client checksums what comes back, exercising both directions
   - Doubles the traffic; a sequential client deadlocks against it

2. Remote checksum
   - Server folds the bytes it receives and replies with one byte
   - Measures one direction only, which is what a file transfer does
   - Needs an explicit half-close so the server knows the data ended

3. Length-prefixed framing
   - Client announces the size up front
   - Needs the size before streaming (not true for pipes)

Decision: Remote checksum is the canonical contract
- Raw file bytes, no framing, no header
- Client half-closes its write direction when the file is sent
- Server replies with exactly one byte, then closes
- Echo stays available as a per-process mode for round-trip measurements;
  both ends must be configured with the same mode, it is not negotiated

Wire Format (remote checksum):
```
client -> server:  <file bytes ...> <FIN>
server -> client:  <checksum byte> <FIN>
```

Wire Format (echo):
```
client -> server:  <file bytes ...> <FIN>
server -> client:  <same bytes, same order ...> <FIN>
```
"""

import asyncio
import logging
from enum import Enum
from typing import Optional, Union

logger = logging.getLogger(__name__)

DEFAULT_PORT = 1144


class TransferProtocol(Enum):
    """Wire protocol spoken by a client/server pair."""
    CHECKSUM = "checksum"
    ECHO = "echo"

    @classmethod
    def parse(cls, value: Union[str, 'TransferProtocol']) -> 'TransferProtocol':
        """Accept either an enum member or its string value."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            choices = ', '.join(p.value for p in cls)
            raise ValueError(f"Unknown protocol {value!r} (choose from {choices})")


CANONICAL_PROTOCOL = TransferProtocol.CHECKSUM


async def close_writer(writer: asyncio.StreamWriter):
    """Close a stream writer, ignoring errors from an already-dead peer."""
    if writer.is_closing():
        return
    writer.close()
    try:
        await writer.wait_closed()
    except (ConnectionError, OSError) as e:
        logger.debug(f"Error while closing connection: {e}")


def peer_name(writer: asyncio.StreamWriter) -> Optional[str]:
    """Format the remote address of a connection."""
    peer = writer.get_extra_info('peername')
    if not peer:
        return None
    return f"{peer[0]}:{peer[1]}"
