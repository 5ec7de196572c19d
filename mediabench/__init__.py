"""
mediabench - throughput and correctness benchmarks for media data paths.

Times local reads, ffmpeg transcoding, and network transfer of large
files, verifying each with a streaming one-byte XOR checksum.
"""

__version__ = '0.1.0'
