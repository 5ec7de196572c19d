"""
Benchmark Harness

Repeats a labeled async operation and reports mean ± sample standard
deviation of its wall-clock duration.

Runs never overlap. A failing iteration is recorded and the remaining
iterations still run; statistics cover the successful samples only.
"""

import logging
import statistics
import time
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, List, Optional, Tuple

logger = logging.getLogger(__name__)

Operation = Callable[[], Awaitable[Any]]
Clock = Callable[[], float]


@dataclass
class IterationFailure:
    """One iteration that raised instead of returning."""
    index: int
    error: BaseException

    @property
    def detail(self) -> str:
        return f"{type(self.error).__name__}: {self.error}"


@dataclass
class BenchmarkResult:
    """Statistics for one labeled operation."""
    label: str
    iterations: int
    samples: List[float] = field(default_factory=list)
    mean: Optional[float] = None
    stdev: Optional[float] = None  # None when undefined (fewer than 2 samples)
    last_output: Any = None
    failures: List[IterationFailure] = field(default_factory=list)
    size_bytes: Optional[int] = None

    @property
    def ok(self) -> bool:
        return not self.failures

    @property
    def last_failed(self) -> bool:
        """True when the final iteration raised, so there is no final output."""
        return bool(self.failures) and self.failures[-1].index == self.iterations - 1

    @property
    def throughput(self) -> Optional[float]:
        """Bytes per second at the mean duration."""
        if self.size_bytes is None or not self.mean:
            return None
        return self.size_bytes / self.mean

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            'label': self.label,
            'iterations': self.iterations,
            'samples': list(self.samples),
            'mean': self.mean,
            'stdev': self.stdev,
            'last_output': self.last_output,
            'last_failed': self.last_failed,
            'size_bytes': self.size_bytes,
            'throughput': self.throughput,
            'failures': [
                {'index': f.index, 'error': f.detail}
                for f in self.failures
            ],
        }


def summarize(samples: List[float]) -> Tuple[Optional[float], Optional[float]]:
    """
    Mean and Bessel-corrected standard deviation.

    Returns:
        (mean, stdev); mean is None without samples, stdev is None with
        fewer than two.
    """
    if not samples:
        return None, None
    mean = statistics.mean(samples)
    if len(samples) < 2:
        return mean, None
    return mean, statistics.stdev(samples)


class BenchmarkHarness:
    """
    Times repeated executions of an operation.

    The clock is injectable so tests can supply deterministic durations.
    """

    def __init__(self, clock: Clock = time.perf_counter):
        self.clock = clock

    async def run(self, label: str, iterations: int, operation: Operation,
                  size_bytes: Optional[int] = None) -> BenchmarkResult:
        """
        Run an operation ``iterations`` times, one after another.

        Args:
            label: Name reported with the result
            iterations: Number of runs (at least 1)
            operation: Zero-argument callable returning an awaitable
            size_bytes: Bytes processed per run, for throughput

        Returns:
            BenchmarkResult with samples, statistics, and the last output
        """
        if iterations < 1:
            raise ValueError(f"iterations must be at least 1, got {iterations}")

        result = BenchmarkResult(label=label, iterations=iterations,
                                 size_bytes=size_bytes)

        for index in range(iterations):
            start = self.clock()
            try:
                output = await operation()
            except Exception as e:
                result.failures.append(IterationFailure(index=index, error=e))
                # last_output always belongs to the most recent run
                result.last_output = None
                logger.warning(f"{label} failed on iteration {index + 1}/{iterations}: {e}")
                continue
            elapsed = self.clock() - start

            result.samples.append(elapsed)
            result.last_output = output
            logger.debug(f"{label} iteration {index + 1}/{iterations}: {elapsed:.3f} s")

        result.mean, result.stdev = summarize(result.samples)
        return result
