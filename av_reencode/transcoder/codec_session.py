"""
Stateful codec sessions with a shared submit/drain shape.

Decoding and encoding behave the same from the pipeline's point of view:
an input unit (packet or frame) is submitted, the codec may hold it in an
internal reorder/lookahead buffer, and zero or more output units become
ready. ``CodecSession`` implements that once; the direction only decides
which libavcodec call is made and which error is raised.

Usage:
    decoder.submit(packet)
    for frame in decoder.drain():
        encoder.submit(scaler.convert(frame))
        for out_packet in encoder.drain():
            muxer.write(out_packet)
    encoder.flush()
    for out_packet in encoder.drain():
        muxer.write(out_packet)
"""

import logging
from collections import deque
from collections.abc import Iterator
from enum import Enum
from typing import Any

import av

from av_reencode.errors import DecodeError, EncodeError, StreamError
from av_reencode.transcoder.streams import StreamDescriptor

logger = logging.getLogger(__name__)


class SessionDirection(Enum):
    DECODE = "decode"
    ENCODE = "encode"


_SESSION_ERRORS: dict[SessionDirection, type[StreamError]] = {
    SessionDirection.DECODE: DecodeError,
    SessionDirection.ENCODE: EncodeError,
}


class CodecSession:
    """
    Wraps one PyAV codec context.

    ``submit`` feeds one unit and buffers whatever became ready;
    ``drain`` hands the buffered outputs out in order; ``flush`` signals
    end-of-stream so the remaining buffered outputs can be drained.
    After a flush has been drained, ``drain`` yields nothing.
    """

    def __init__(self, context, direction: SessionDirection) -> None:
        self._ctx = context
        self._direction = direction
        self._error_cls = _SESSION_ERRORS[direction]
        self._ready: deque[Any] = deque()
        self._submitted = 0
        self._produced = 0
        self._flushed = False
        self._closed = False

    @property
    def direction(self) -> SessionDirection:
        return self._direction

    @property
    def context(self):
        return self._ctx

    @property
    def submitted(self) -> int:
        return self._submitted

    @property
    def produced(self) -> int:
        return self._produced

    @property
    def flushed(self) -> bool:
        return self._flushed

    def _run(self, unit):
        if self._direction is SessionDirection.DECODE:
            return self._ctx.decode(unit)
        return self._ctx.encode(unit)

    def submit(self, unit) -> None:
        """Feed one packet (decode) or frame (encode) to the codec."""
        if self._closed:
            raise self._error_cls(f"{self._direction.value} session is closed")
        if self._flushed:
            raise self._error_cls(f"{self._direction.value} session already received end-of-stream")
        try:
            outputs = self._run(unit)
        except av.error.FFmpegError as exc:
            raise self._error_cls(f"{self._direction.value} failed: {exc}") from exc
        self._submitted += 1
        self._ready.extend(outputs)

    def drain(self) -> Iterator[Any]:
        """Yield every output that is ready right now."""
        while self._ready:
            self._produced += 1
            yield self._ready.popleft()

    def flush(self) -> None:
        """Signal end-of-stream. Safe to call more than once."""
        if self._flushed or self._closed:
            return
        self._flushed = True
        try:
            outputs = self._run(None)
        except av.error.FFmpegError as exc:
            raise self._error_cls(f"{self._direction.value} flush failed: {exc}") from exc
        self._ready.extend(outputs)
        logger.debug(
            "[codec_session] %s flushed: %d submitted, %d buffered outputs released",
            self._direction.value,
            self._submitted,
            len(self._ready),
        )

    def close(self) -> None:
        """Release the codec context.

        PyAV frees native codec contexts on garbage collection; a session
        that was fed but never flushed is drained first so no frames are
        still queued inside the codec when it is freed.
        """
        if self._closed:
            return
        if self._submitted and not self._flushed:
            try:
                self.flush()
            except StreamError as exc:
                logger.debug("[codec_session] %s flush on close failed: %s", self._direction.value, exc)
        self._ready.clear()
        self._closed = True
        self._ctx = None


class DecoderAdapter(CodecSession):
    """Compressed packets in, raw frames out."""

    def __init__(self, context) -> None:
        super().__init__(context, SessionDirection.DECODE)


class EncoderAdapter(CodecSession):
    """Raw frames in, compressed packets out.

    The context is configured from ``descriptor`` and opened immediately.
    ``descriptor.bit_rate`` is the caller's target, never the source's.
    """

    def __init__(
        self,
        context,
        descriptor: StreamDescriptor,
        options: dict[str, str] | None = None,
        gop_size: int | None = None,
    ) -> None:
        super().__init__(context, SessionDirection.ENCODE)
        self._descriptor = descriptor
        self.configure(descriptor, options or {}, gop_size)

    @property
    def descriptor(self) -> StreamDescriptor:
        return self._descriptor

    def configure(self, descriptor: StreamDescriptor, options: dict[str, str], gop_size: int | None) -> None:
        ctx = self._ctx
        ctx.width = descriptor.width
        ctx.height = descriptor.height
        ctx.pix_fmt = descriptor.pixel_format
        ctx.time_base = descriptor.time_base
        if descriptor.frame_rate:
            ctx.framerate = descriptor.frame_rate
        ctx.bit_rate = descriptor.bit_rate
        if gop_size:
            ctx.gop_size = gop_size
        if options:
            ctx.options = dict(options)
        ctx.open()

        logger.info(
            "[codec_session] Encoder opened: %s %dx%d %s, %dk, time_base=%s",
            descriptor.codec_name,
            descriptor.width,
            descriptor.height,
            descriptor.pixel_format,
            descriptor.bit_rate // 1000,
            descriptor.time_base,
        )
