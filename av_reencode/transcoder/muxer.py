"""
Output container adapter on top of ``av.open(..., mode="w")``.

Lifecycle: ``create`` -> ``add_stream`` -> ``write_header`` ->
``write`` (any number of times) -> ``write_trailer``. A muxer whose
header was never written is ``discard``-ed instead, which also removes
the output file so a failed setup leaves nothing behind.
"""

import logging
from enum import Enum
from fractions import Fraction
from pathlib import Path

import av

from av_reencode.errors import MuxerStateError, MuxWriteError, SetupError
from av_reencode.transcoder.streams import StreamDescriptor

logger = logging.getLogger(__name__)


class MuxerState(Enum):
    CREATED = "created"
    HEADER_WRITTEN = "header_written"
    TRAILER_WRITTEN = "trailer_written"
    DISCARDED = "discarded"


class Muxer:
    def __init__(self, container, path: Path | str) -> None:
        self._container = container
        self._path = Path(path)
        self._stream = None
        self._state = MuxerState.CREATED
        self._packets_written = 0

    @classmethod
    def create(cls, path: Path | str, format_name: str) -> "Muxer":
        """Create the output file for container format ``format_name``.

        Raises:
            SetupError: Unknown format or the file cannot be created.
        """
        try:
            container = av.open(str(path), mode="w", format=format_name)
        except (av.error.FFmpegError, ValueError, OSError) as exc:
            raise SetupError("create output", f"{path} ({format_name}): {exc}") from exc
        logger.info("[muxer] Created %s (%s)", path, format_name)
        return cls(container, path)

    @property
    def state(self) -> MuxerState:
        return self._state

    @property
    def path(self) -> Path:
        return self._path

    @property
    def packets_written(self) -> int:
        return self._packets_written

    @property
    def time_base(self) -> Fraction:
        """Time base of the output video stream. Final only once the header is written."""
        if self._stream is None:
            raise MuxerStateError("no output stream has been added")
        return Fraction(self._stream.time_base)

    def add_stream(self, codec: av.Codec | str, descriptor: StreamDescriptor):
        """Add the output video stream and return its (unopened) encoder context."""
        if self._state is not MuxerState.CREATED or self._stream is not None:
            raise MuxerStateError("the output video stream must be added once, before the header")
        codec_name = codec if isinstance(codec, str) else codec.name
        try:
            if descriptor.frame_rate:
                self._stream = self._container.add_stream(codec_name, rate=descriptor.frame_rate)
            else:
                self._stream = self._container.add_stream(codec_name)
        except (av.error.FFmpegError, ValueError) as exc:
            raise SetupError("create output", f"cannot add {codec_name} stream: {exc}") from exc
        return self._stream.codec_context

    def write_header(self) -> None:
        if self._state is not MuxerState.CREATED:
            raise MuxerStateError(f"write_header() called in state {self._state.value}")
        if self._stream is None:
            raise MuxerStateError("write_header() called before add_stream()")
        try:
            self._container.start_encoding()
        except (av.error.FFmpegError, ValueError, OSError) as exc:
            raise SetupError("write header", f"{self._path}: {exc}") from exc
        self._state = MuxerState.HEADER_WRITTEN
        logger.info("[muxer] Header written, output time_base=%s", self._stream.time_base)

    def write(self, packet) -> None:
        """Interleave one packet into the output. Per-stream order is submission order."""
        if self._state is not MuxerState.HEADER_WRITTEN:
            raise MuxerStateError(f"write() called in state {self._state.value}")
        packet.stream = self._stream
        try:
            self._container.mux(packet)
        except (av.error.FFmpegError, OSError) as exc:
            raise MuxWriteError(f"write to {self._path} failed: {exc}") from exc
        self._packets_written += 1

    def write_trailer(self) -> None:
        """Finish the file and close it. Exactly once, after the header."""
        if self._state is not MuxerState.HEADER_WRITTEN:
            raise MuxerStateError(f"write_trailer() called in state {self._state.value}")
        self._state = MuxerState.TRAILER_WRITTEN
        try:
            # PyAV writes the trailer when an encoding container is closed
            self._container.close()
        except (av.error.FFmpegError, OSError) as exc:
            raise MuxWriteError(f"trailer write to {self._path} failed: {exc}") from exc
        finally:
            self._container = None
        logger.info("[muxer] Trailer written: %d packets in %s", self._packets_written, self._path)

    def discard(self) -> None:
        """Close without a trailer and delete the partial output file."""
        if self._state in (MuxerState.TRAILER_WRITTEN, MuxerState.DISCARDED):
            return
        self._state = MuxerState.DISCARDED
        if self._container is not None:
            try:
                self._container.close()
            except (av.error.FFmpegError, OSError) as exc:
                logger.warning("[muxer] Closing discarded output failed: %s", exc)
            self._container = None
        self._path.unlink(missing_ok=True)
        logger.info("[muxer] Discarded %s", self._path)

    def close(self) -> None:
        """Finalize: trailer if the header went out, otherwise discard."""
        if self._state is MuxerState.HEADER_WRITTEN:
            self.write_trailer()
        elif self._state is MuxerState.CREATED:
            self.discard()
