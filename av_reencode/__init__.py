"""Re-encode the video stream of a media file at a target bitrate."""

from .errors import (
    DecodeError,
    EncodeError,
    MuxerStateError,
    MuxWriteError,
    ScaleError,
    SetupError,
    StreamError,
    TranscodeError,
    UsageError,
)
from .schemas import TranscodeJob
from .transcoder.pipeline import PipelineState, TranscodePipeline, TranscodeStats, transcode

__all__ = [
    "TranscodeJob",
    "TranscodePipeline",
    "TranscodeStats",
    "PipelineState",
    "transcode",
    "TranscodeError",
    "UsageError",
    "SetupError",
    "StreamError",
    "DecodeError",
    "EncodeError",
    "ScaleError",
    "MuxWriteError",
    "MuxerStateError",
]
