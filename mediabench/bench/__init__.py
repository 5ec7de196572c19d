"""
Bench Module - Repeated-Sample Timing
"""

from .harness import (
    BenchmarkHarness, BenchmarkResult, IterationFailure, summarize,
)

__all__ = [
    'BenchmarkHarness',
    'BenchmarkResult',
    'IterationFailure',
    'summarize',
]
