"""
Transcode Pipeline

Design Decision: Draining Subprocess Output
============================================

Options Considered:
1. proc.communicate()
   - Simple, drains both pipes
   - Buffers all of stdout in memory (a whole transcoded movie)

2. Read stdout, then stderr, then wait
   - Streaming, no buffering
   - Deadlocks: the child blocks on a full stderr pipe while we
     wait for more stdout

3. Three concurrent tasks joined at one barrier
   - Streaming checksum over stdout
   - stderr drained in parallel so neither pipe can fill up
   - Exit status awaited alongside

Decision: three tasks joined with asyncio.gather(return_exceptions=True)
- Every participant runs to completion before the outcome is decided
- stderr is still captured when the exit status reports failure
- If hashing stdout fails, the child is killed so the exit wait returns

Pipeline:
```
            +--> stderr --> text buffer
ffmpeg -----+--> stdout --> hash_stream --> checksum
            +--> exit status
```
"""

import asyncio
import logging
from dataclasses import dataclass
from decimal import Decimal
from pathlib import Path
from typing import List, Optional, Sequence, Union

from ..file.checksum import CHUNK_SIZE, hash_stream
from ..exceptions import ProcessExitError, ProcessSpawnError

logger = logging.getLogger(__name__)

# Encode with H.264/AAC at 30fps into matroska on stdout
FFMPEG_ARGS = [
    '-hide_banner',
    '-loglevel', 'error',
    '-t', '{duration}',
    '-i', '{input}',
    '-c:v', 'libx264',
    '-c:a', 'aac',
    '-r', '30',
    '-crf', '26',
    '-f', 'matroska',
    '-',
]


@dataclass
class ProcessOutcome:
    """Result of one transcoder run."""
    success: bool
    returncode: Optional[int]
    stderr: str
    checksum: int


def format_duration(seconds: float) -> str:
    """
    Render a duration limit the way ffmpeg's -t expects it.

    Uses the shortest decimal that round-trips, in plain notation:
    30.0 -> '30', 1e-07 -> '0.0000001'.
    """
    text = repr(float(seconds))
    if 'e' in text or 'E' in text:
        text = format(Decimal(text), 'f')
    if text.endswith('.0'):
        text = text[:-2]
    return text


class TranscodePipeline:
    """
    Runs an external transcoder and checksums its output stream.

    The argument template may contain ``{input}`` and ``{duration}``;
    nothing else is substituted.
    """

    def __init__(self, program: str = 'ffmpeg',
                 args: Optional[Sequence[str]] = None,
                 chunk_size: int = CHUNK_SIZE):
        self.program = program
        self.args = list(args) if args is not None else list(FFMPEG_ARGS)
        self.chunk_size = chunk_size

    def build_command(self, input_path: Union[str, Path],
                      duration_limit: float) -> List[str]:
        """Fill in the argument template; other braces pass through untouched."""
        input_text = str(input_path)
        duration_text = format_duration(duration_limit)
        return [self.program] + [
            arg.replace('{duration}', duration_text).replace('{input}', input_text)
            for arg in self.args
        ]

    async def _spawn(self, command: List[str]) -> asyncio.subprocess.Process:
        try:
            return await asyncio.create_subprocess_exec(
                *command,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            raise ProcessSpawnError(f"failed to spawn {command[0]}: {e}") from e

    async def run(self, input_path: Union[str, Path],
                  duration_limit: float) -> ProcessOutcome:
        """
        Run the transcoder to completion.

        Returns:
            ProcessOutcome, whether or not the process succeeded

        Raises:
            ProcessSpawnError: if the process could not be started
            StreamIOError: if reading stdout failed
        """
        command = self.build_command(input_path, duration_limit)
        logger.debug(f"Spawning: {' '.join(command)}")
        proc = await self._spawn(command)

        async def read_stderr() -> str:
            data = await proc.stderr.read()
            return data.decode('utf-8', errors='replace')

        async def hash_stdout() -> int:
            try:
                return await hash_stream(proc.stdout, self.chunk_size)
            except BaseException:
                # Nobody is draining stdout any more
                if proc.returncode is None:
                    proc.kill()
                raise

        results = await asyncio.gather(
            read_stderr(),
            hash_stdout(),
            proc.wait(),
            return_exceptions=True,
        )

        for result in results:
            if isinstance(result, BaseException):
                raise result

        stderr_text, checksum, returncode = results
        return ProcessOutcome(
            success=returncode == 0,
            returncode=returncode,
            stderr=stderr_text,
            checksum=checksum,
        )

    async def transcode(self, input_path: Union[str, Path],
                        duration_limit: float) -> int:
        """
        Transcode a file and return the checksum of the output stream.

        Raises:
            ProcessSpawnError: if the process could not be started
            ProcessExitError: if the process exited with a non-zero status
        """
        outcome = await self.run(input_path, duration_limit)
        if not outcome.success:
            raise ProcessExitError(outcome.returncode, outcome.stderr)
        return outcome.checksum


async def transcode(input_path: Union[str, Path], duration_limit: float,
                    program: str = 'ffmpeg',
                    args: Optional[Sequence[str]] = None) -> int:
    """Transcode with a one-off pipeline."""
    pipeline = TranscodePipeline(program=program, args=args)
    return await pipeline.transcode(input_path, duration_limit)
