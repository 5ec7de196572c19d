"""
Transfer Module - Network Transfer Benchmark

Handles TCP transfers between the benchmark client and a transfer server.
"""

from .protocol import TransferProtocol, CANONICAL_PROTOCOL, DEFAULT_PORT
from .client import TransferClient, transfer, local_address
from .server import (
    TransferServer, ConnectionHandler, EchoHandler, ChecksumHandler,
    HandlerState,
)

__all__ = [
    'TransferProtocol',
    'CANONICAL_PROTOCOL',
    'DEFAULT_PORT',
    'TransferClient',
    'transfer',
    'local_address',
    'TransferServer',
    'ConnectionHandler',
    'EchoHandler',
    'ChecksumHandler',
    'HandlerState',
]
