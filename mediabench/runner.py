"""
Benchmark Runner - Main Controller

Orchestrates the three data paths for each input file:
- Local disk read (twice: cold, then page-cached)
- Transcoding through ffmpeg
- Transfer to the loopback server and, optionally, a LAN peer
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, List, Optional, Sequence

from .bench import BenchmarkHarness, BenchmarkResult
from .file import CHUNK_SIZE, read_file, file_size
from .transcode import FFMPEG_ARGS, TranscodePipeline
from .transfer import (
    CANONICAL_PROTOCOL, DEFAULT_PORT, TransferClient, TransferProtocol,
    local_address,
)

logger = logging.getLogger(__name__)

ResultCallback = Callable[[Path, BenchmarkResult], None]


@dataclass
class BenchmarkSettings:
    """Settings for one benchmark run."""
    iterations: int = 5
    transcode_seconds: float = 30.0
    port: int = DEFAULT_PORT
    remote_ip: Optional[str] = None
    protocol: TransferProtocol = CANONICAL_PROTOCOL
    chunk_size: int = CHUNK_SIZE
    connect_timeout: float = 10.0

    # Transcoder
    ffmpeg: str = 'ffmpeg'
    ffmpeg_args: List[str] = field(default_factory=lambda: list(FFMPEG_ARGS))

    # Which paths to run
    run_read: bool = True
    run_transcode: bool = True
    run_transfer: bool = True


@dataclass
class FileReport:
    """All results for one input file."""
    path: Path
    size: Optional[int]  # None when the file could not be inspected
    results: List[BenchmarkResult] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return all(r.ok for r in self.results)


class BenchmarkRunner:
    """
    Runs the benchmark plan for each input file.

    Every operation is timed by the harness; a failing operation is
    reported under its label and does not stop the others.
    """

    def __init__(self, settings: BenchmarkSettings = None,
                 harness: BenchmarkHarness = None):
        self.settings = settings or BenchmarkSettings()
        self.harness = harness or BenchmarkHarness()

        self.pipeline = TranscodePipeline(
            program=self.settings.ffmpeg,
            args=self.settings.ffmpeg_args,
            chunk_size=self.settings.chunk_size,
        )
        self.client = TransferClient(
            protocol=self.settings.protocol,
            chunk_size=self.settings.chunk_size,
            connect_timeout=self.settings.connect_timeout,
        )

    async def benchmark_file(self, path: Path,
                             on_result: ResultCallback = None) -> FileReport:
        """Run every enabled data path against one file."""
        s = self.settings
        try:
            size = file_size(path)
        except OSError as e:
            # Each operation will fail and report this under its own label
            logger.warning(f"Cannot stat {path}: {e}")
            size = None
        report = FileReport(path=path, size=size)

        async def record(label: str, operation, size_bytes: Optional[int] = size):
            result = await self.harness.run(label, s.iterations, operation,
                                            size_bytes=size_bytes)
            report.results.append(result)
            if on_result:
                on_result(path, result)

        if size is not None:
            logger.info(f"Benchmarking {path} ({size:,} bytes)")
        else:
            logger.info(f"Benchmarking {path}")

        if s.run_read:
            await record("Read file", lambda: read_file(path, s.chunk_size))
            await record("Read file again", lambda: read_file(path, s.chunk_size))

        if s.run_transcode:
            # Output size is unknown up front, so no throughput here
            await record(
                "Transcoded file",
                lambda: self.pipeline.transcode(path, s.transcode_seconds),
                size_bytes=None,
            )

        if s.run_transfer:
            await record(
                "Transferred data locally",
                lambda: self.client.transfer(path, local_address(s.port)),
            )
            if s.remote_ip:
                await record(
                    "Transferred data in LAN",
                    lambda: self.client.transfer(path, (s.remote_ip, s.port)),
                )

        return report

    async def run(self, paths: Sequence[Path],
                  on_result: ResultCallback = None) -> List[FileReport]:
        """Benchmark each input file in turn."""
        reports = []
        for path in paths:
            reports.append(await self.benchmark_file(Path(path), on_result))
        return reports
