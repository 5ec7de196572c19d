"""Exception classes for the benchmark data paths."""

from typing import Optional


class MediaBenchError(Exception):
    """
    Base exception class for all benchmark errors.
    """
    pass


class ConnectError(MediaBenchError):
    """
    Raised when a transfer connection cannot be established.
    """
    pass


class StreamIOError(MediaBenchError):
    """
    Raised when a read or write fails on a file, pipe, or socket.
    """
    pass


class ProcessSpawnError(MediaBenchError):
    """
    Raised when the transcoding process cannot be started.
    """
    pass


class ProcessExitError(MediaBenchError):
    """
    Raised when the transcoding process exits with a non-zero status.

    Carries the diagnostic text captured from the process's stderr.
    """

    def __init__(self, returncode: Optional[int], stderr: str):
        self.returncode = returncode
        self.stderr = stderr
        message = f"process exited with status {returncode}"
        if stderr.strip():
            message += f", got stderr:\n{stderr.rstrip()}"
        super().__init__(message)


class ProtocolError(MediaBenchError):
    """
    Raised when a peer violates the transfer wire protocol.
    """
    pass
