"""
Transfer Client

Design Decision: Connection Directions
======================================

asyncio.open_connection already hands back the two directions of the
socket as separate objects: a StreamReader and a StreamWriter. Each task
owns exactly one of them, so no locking is needed.

Transfer Flow (remote checksum):
1. Connect
2. Stream the file to the writer
3. Half-close the writer (write_eof) so the server sees end-of-stream
4. Read exactly one byte: the server's checksum
5. Expect the server to close

Transfer Flow (echo):
1. Connect
2. Concurrently:
   - stream the file to the writer, then half-close it
   - fold everything arriving on the reader into a checksum
3. Both tasks must finish

The echo tasks must genuinely overlap. The server writes back while it
reads; if nobody drains our receive buffer its send buffer fills up, it
stops reading, and our writes stall forever.
"""

import asyncio
import logging
from pathlib import Path
from typing import Optional, Tuple, Union

from .protocol import (
    DEFAULT_PORT, CANONICAL_PROTOCOL, TransferProtocol, close_writer,
)
from ..file.checksum import CHUNK_SIZE, hash_stream
from ..file.reader import iter_file
from ..exceptions import ConnectError, ProtocolError, StreamIOError

logger = logging.getLogger(__name__)

Address = Tuple[str, int]


class TransferClient:
    """
    Sends a file to a transfer server and returns the resulting checksum.
    """

    def __init__(self, protocol: TransferProtocol = CANONICAL_PROTOCOL,
                 chunk_size: int = CHUNK_SIZE,
                 connect_timeout: Optional[float] = 10.0):
        self.protocol = TransferProtocol.parse(protocol)
        self.chunk_size = chunk_size
        self.connect_timeout = connect_timeout

    async def connect(self, address: Address) -> Tuple[asyncio.StreamReader,
                                                       asyncio.StreamWriter]:
        """
        Open a connection to the server.

        Raises:
            ConnectError: on refusal, unreachable host, or timeout
        """
        host, port = address
        try:
            return await asyncio.wait_for(
                asyncio.open_connection(host, port),
                timeout=self.connect_timeout
            )
        except asyncio.TimeoutError:
            raise ConnectError(f"Timed out connecting to {host}:{port}")
        except OSError as e:
            raise ConnectError(f"Failed to connect to {host}:{port}: {e}") from e

    async def _send_file(self, file_path: Path, writer: asyncio.StreamWriter) -> int:
        """Stream a file to the writer, then half-close it."""
        sent = 0
        try:
            async for chunk in iter_file(file_path, self.chunk_size):
                writer.write(chunk)
                await writer.drain()
                sent += len(chunk)
            writer.write_eof()
        except OSError as e:
            raise StreamIOError(f"failed to send file after {sent:,} bytes: {e}") from e
        logger.debug(f"Sent {sent:,} bytes")
        return sent

    async def _receive_checksum(self, reader: asyncio.StreamReader) -> int:
        """Read the single checksum byte the server replies with."""
        try:
            response = await reader.readexactly(1)
            trailing = await reader.read(1)
        except asyncio.IncompleteReadError:
            raise ProtocolError("Connection closed before the checksum byte arrived")
        except OSError as e:
            raise StreamIOError(f"failed to read checksum: {e}") from e

        if trailing:
            raise ProtocolError("Unexpected data after the checksum byte")
        return response[0]

    async def _transfer_checksum(self, file_path: Path,
                                 reader: asyncio.StreamReader,
                                 writer: asyncio.StreamWriter) -> int:
        await self._send_file(file_path, writer)
        return await self._receive_checksum(reader)

    async def _transfer_echo(self, file_path: Path,
                             reader: asyncio.StreamReader,
                             writer: asyncio.StreamWriter) -> int:
        send_task = asyncio.create_task(self._send_file(file_path, writer))
        hash_task = asyncio.create_task(hash_stream(reader, self.chunk_size))

        try:
            _, checksum = await asyncio.gather(send_task, hash_task)
        finally:
            for task in (send_task, hash_task):
                if not task.done():
                    task.cancel()
        return checksum

    async def transfer(self, file_path: Union[str, Path],
                       address: Address) -> int:
        """
        Transfer a file and return the checksum the protocol produces.

        Raises:
            ConnectError: if the connection cannot be established
            StreamIOError: if reading the file or using the socket fails
            ProtocolError: if the server breaks the wire protocol
        """
        file_path = Path(file_path)
        reader, writer = await self.connect(address)

        try:
            if self.protocol is TransferProtocol.ECHO:
                return await self._transfer_echo(file_path, reader, writer)
            return await self._transfer_checksum(file_path, reader, writer)
        finally:
            await close_writer(writer)


async def transfer(file_path: Union[str, Path], address: Address,
                   protocol: TransferProtocol = CANONICAL_PROTOCOL) -> int:
    """Transfer with a one-off client."""
    client = TransferClient(protocol=protocol)
    return await client.transfer(file_path, address)


def local_address(port: int = DEFAULT_PORT) -> Address:
    """Loopback address for the 'transferred locally' measurement."""
    return ('127.0.0.1', port)
