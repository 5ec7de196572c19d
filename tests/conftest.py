"""Shared pytest fixtures for all tests."""

import random
import sys
import textwrap
from pathlib import Path

import pytest
import pytest_asyncio

from mediabench.file import CHUNK_SIZE
from mediabench.transfer import TransferProtocol, TransferServer

# Payload sizes around the read chunk boundary
TRANSFER_SIZES = [
    0,                      # Zero bytes
    1,                      # 1 byte
    CHUNK_SIZE,             # Exactly one chunk
    3 * CHUNK_SIZE + 17,    # Several chunks plus a remainder
]


def generate_payload(size: int, seed: int = 0) -> bytes:
    """Deterministic pseudo-random bytes."""
    return random.Random(seed).randbytes(size)


@pytest.fixture
def make_payload_file(tmp_path):
    """
    Factory writing a payload to a temporary file.

    Returns:
        Callable (size, seed) -> (path, data)
    """
    counter = 0

    def _make(size: int, seed: int = 0):
        nonlocal counter
        counter += 1
        data = generate_payload(size, seed)
        path = tmp_path / f"payload_{counter}.bin"
        path.write_bytes(data)
        return path, data

    return _make


@pytest.fixture
def fake_transcoder(tmp_path):
    """
    Write a Python script that stands in for ffmpeg.

    The script copies its input file to stdout and writes
    ``stderr_kb`` kilobytes of diagnostics to stderr, interleaved with the
    output, then exits with ``exit_code``.

    Returns:
        Callable (stderr_kb, exit_code) -> (program, args)
    """
    def _make(stderr_kb: int = 0, exit_code: int = 0):
        script = tmp_path / f"transcoder_{stderr_kb}_{exit_code}.py"
        script.write_text(textwrap.dedent(f"""
            import sys

            input_path, duration = sys.argv[1], sys.argv[2]
            remaining = {stderr_kb}
            with open(input_path, 'rb') as f:
                while True:
                    chunk = f.read(4096)
                    if not chunk:
                        break
                    sys.stdout.buffer.write(chunk)
                    sys.stdout.buffer.flush()
                    if remaining > 0:
                        sys.stderr.write('d' * 1023 + '\\n')
                        sys.stderr.flush()
                        remaining -= 1
            while remaining > 0:
                sys.stderr.write('d' * 1023 + '\\n')
                remaining -= 1
            sys.stderr.write('duration=' + duration + '\\n')
            sys.stderr.flush()
            sys.exit({exit_code})
        """))
        return sys.executable, [str(script), '{input}', '{duration}']

    return _make


@pytest_asyncio.fixture
async def checksum_server():
    server = TransferServer(host='127.0.0.1', port=0,
                            protocol=TransferProtocol.CHECKSUM)
    await server.start()
    yield server
    await server.stop()


@pytest_asyncio.fixture
async def echo_server():
    server = TransferServer(host='127.0.0.1', port=0,
                            protocol=TransferProtocol.ECHO)
    await server.start()
    yield server
    await server.stop()
