"""Error taxonomy for the transcode pipeline."""


class TranscodeError(Exception):
    """Base exception for all transcode failures."""
    pass


class UsageError(TranscodeError):
    """Bad command line arguments. Raised before any resource is opened."""
    pass


class SetupError(TranscodeError):
    """A fatal failure while preparing the pipeline, before any packet is transcoded."""

    def __init__(self, stage: str, message: str):
        self.stage = stage
        self.message = message
        super().__init__(f"{stage}: {message}")


class StreamError(TranscodeError):
    """A failure inside the streaming loop."""

    stage = "read"


class DecodeError(StreamError):
    stage = "decode"


class EncodeError(StreamError):
    stage = "encode"


class ScaleError(StreamError):
    stage = "scale"


class MuxWriteError(StreamError):
    """Writing to the output container failed."""

    stage = "write"


class MuxerStateError(TranscodeError):
    """The muxer was driven out of order (e.g. write before header)."""
    pass
