"""
Transfer Server

Accepts connections and runs one handler per connection. The handler
speaks whichever wire protocol the server was configured with.

Failure isolation: every handler runs inside _handle_connection, which
logs and counts errors and never lets them reach the accept loop.
"""

import asyncio
import logging
from enum import Enum
from typing import Optional

from .protocol import (
    DEFAULT_PORT, CANONICAL_PROTOCOL, TransferProtocol,
    close_writer, peer_name,
)
from ..file.checksum import CHUNK_SIZE, hash_stream
from ..exceptions import ProtocolError, StreamIOError

logger = logging.getLogger(__name__)


class HandlerState(Enum):
    """Lifecycle of a remote-checksum connection."""
    READING = "reading"
    COMPUTED = "computed"
    RESPONDING = "responding"
    CLOSED = "closed"


class ConnectionHandler:
    """Base class for per-connection server logic."""

    def __init__(self, reader: asyncio.StreamReader,
                 writer: asyncio.StreamWriter,
                 chunk_size: int = CHUNK_SIZE,
                 idle_timeout: Optional[float] = None):
        self.reader = reader
        self.writer = writer
        self.chunk_size = chunk_size
        self.idle_timeout = idle_timeout
        self.bytes_received = 0

    async def read(self, n: int) -> bytes:
        """
        Read up to n bytes from the peer; empty bytes means it half-closed.

        Raises:
            ProtocolError: if nothing arrives within idle_timeout
        """
        try:
            if self.idle_timeout is None:
                chunk = await self.reader.read(n)
            else:
                chunk = await asyncio.wait_for(
                    self.reader.read(n),
                    timeout=self.idle_timeout
                )
        except asyncio.TimeoutError:
            raise ProtocolError(
                f"half-close never observed (idle for {self.idle_timeout}s "
                f"after {self.bytes_received:,} bytes)"
            )
        except OSError as e:
            raise StreamIOError(f"read failed: {e}") from e

        self.bytes_received += len(chunk)
        return chunk

    async def _write(self, data: bytes):
        try:
            self.writer.write(data)
            await self.writer.drain()
        except OSError as e:
            raise StreamIOError(f"write failed: {e}") from e

    async def handle(self):
        raise NotImplementedError


class EchoHandler(ConnectionHandler):
    """Mirrors every received byte back until the peer half-closes."""

    async def handle(self):
        while True:
            chunk = await self.read(self.chunk_size)
            if not chunk:
                break
            await self._write(chunk)


class ChecksumHandler(ConnectionHandler):
    """
    Folds everything the peer sends and replies with one checksum byte.

    States: READING -> COMPUTED -> RESPONDING -> CLOSED
    """

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.state = HandlerState.READING
        self.checksum: Optional[int] = None

    async def handle(self):
        try:
            # The handler itself is the stream, so idle_timeout covers every read
            checksum = await hash_stream(self, self.chunk_size)

            self.checksum = checksum
            self.state = HandlerState.COMPUTED

            self.state = HandlerState.RESPONDING
            await self._write(bytes([checksum]))
        finally:
            self.state = HandlerState.CLOSED


HANDLERS = {
    TransferProtocol.CHECKSUM: ChecksumHandler,
    TransferProtocol.ECHO: EchoHandler,
}


class TransferServer:
    """
    TCP server for the transfer benchmark.

    One handler task per inbound connection. By default there is no
    admission limit; max_connections caps how many handlers run at once
    (further connections wait to be served).
    """

    def __init__(self, host: str = '0.0.0.0', port: int = DEFAULT_PORT,
                 protocol: TransferProtocol = CANONICAL_PROTOCOL,
                 max_connections: Optional[int] = None,
                 chunk_size: int = CHUNK_SIZE,
                 idle_timeout: Optional[float] = None):
        if max_connections is not None and max_connections < 1:
            raise ValueError(f"max_connections must be at least 1, got {max_connections}")

        self.host = host
        self.port = port
        self.protocol = TransferProtocol.parse(protocol)
        self.max_connections = max_connections
        self.chunk_size = chunk_size
        self.idle_timeout = idle_timeout
        self.server: Optional[asyncio.AbstractServer] = None
        self._limiter = (
            asyncio.Semaphore(max_connections) if max_connections else None
        )

        # Statistics
        self.connections_served = 0
        self.connections_failed = 0
        self.bytes_received = 0

    @property
    def bound_port(self) -> int:
        """The port actually bound (differs from port when port is 0)."""
        if self.server is None or not self.server.sockets:
            return self.port
        return self.server.sockets[0].getsockname()[1]

    async def start(self):
        """Start accepting connections."""
        self.server = await asyncio.start_server(
            self._handle_connection,
            self.host,
            self.port
        )

        addr = self.server.sockets[0].getsockname()
        logger.info(f"Transfer server ({self.protocol.value}) listening on {addr}")

    async def stop(self):
        """Stop accepting connections."""
        if self.server:
            self.server.close()
            await self.server.wait_closed()
            logger.info(f"Transfer server stopped. Served {self.connections_served} "
                        f"connections ({self.connections_failed} failed), "
                        f"{self.bytes_received:,} bytes")

    async def serve_forever(self):
        """Start (if needed) and serve until cancelled."""
        if self.server is None:
            await self.start()
        async with self.server:
            await self.server.serve_forever()

    async def __aenter__(self) -> 'TransferServer':
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.stop()

    async def _handle_connection(self, reader: asyncio.StreamReader,
                                 writer: asyncio.StreamWriter):
        """Handle an incoming connection."""
        if self._limiter is None:
            await self._serve(reader, writer)
            return

        async with self._limiter:
            await self._serve(reader, writer)

    async def _serve(self, reader: asyncio.StreamReader,
                     writer: asyncio.StreamWriter):
        peer = peer_name(writer)
        logger.debug(f"Got connection from {peer}")

        handler = HANDLERS[self.protocol](
            reader, writer,
            chunk_size=self.chunk_size,
            idle_timeout=self.idle_timeout,
        )

        try:
            await handler.handle()
            self.connections_served += 1
            logger.debug(f"Finished connection from {peer} "
                         f"({handler.bytes_received:,} bytes)")
        except Exception as e:
            self.connections_failed += 1
            logger.error(f"Error handling connection from {peer}: {e}")
        finally:
            self.bytes_received += handler.bytes_received
            await close_writer(writer)

    def get_stats(self) -> dict:
        """Get server statistics."""
        return {
            'protocol': self.protocol.value,
            'connections_served': self.connections_served,
            'connections_failed': self.connections_failed,
            'bytes_received': self.bytes_received,
            'port': self.bound_port,
        }
