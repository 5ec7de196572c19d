"""
File Module - Checksums and Disk Reads

This module handles the streaming checksum and the local read path.
"""

from .checksum import CHUNK_SIZE, hash_stream, xor_fold
from .reader import read_file, iter_file, file_size

__all__ = [
    'CHUNK_SIZE',
    'hash_stream',
    'xor_fold',
    'read_file',
    'iter_file',
    'file_size',
]
