"""
Transcode Module - External Transcoder Pipeline

Runs ffmpeg (or a compatible tool) and checksums its output.
"""

from .pipeline import (
    FFMPEG_ARGS,
    ProcessOutcome,
    TranscodePipeline,
    format_duration,
    transcode,
)

__all__ = [
    'FFMPEG_ARGS',
    'ProcessOutcome',
    'TranscodePipeline',
    'format_duration',
    'transcode',
]
