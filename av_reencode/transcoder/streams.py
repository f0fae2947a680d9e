"""Immutable stream metadata shared by the pipeline stages."""

import dataclasses
import logging
from dataclasses import dataclass
from fractions import Fraction

from av_reencode.const import (
    DEFAULT_PIXEL_FORMAT,
    FALLBACK_TIME_BASE_DENOMINATOR,
    MAX_TIME_BASE_DENOMINATOR,
    SUBSAMPLED_PIXEL_FORMATS,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class StreamDescriptor:
    """Metadata for one elementary video stream."""

    index: int
    codec_name: str
    time_base: Fraction
    width: int
    height: int
    pixel_format: str = DEFAULT_PIXEL_FORMAT
    bit_rate: int = 0
    frame_rate: Fraction | None = None
    # Raw codec extradata (e.g. avcC for H.264, VOL header for MPEG-4)
    extradata: bytes = b""

    @classmethod
    def from_stream(cls, stream) -> "StreamDescriptor":
        """Build a descriptor from a PyAV video stream of an opened input container."""
        codec_ctx = stream.codec_context
        rate = stream.average_rate or stream.guessed_rate
        return cls(
            index=stream.index,
            codec_name=codec_ctx.name,
            time_base=Fraction(stream.time_base) if stream.time_base else Fraction(1, 1000),
            width=codec_ctx.width or 0,
            height=codec_ctx.height or 0,
            pixel_format=str(codec_ctx.pix_fmt) if codec_ctx.pix_fmt else DEFAULT_PIXEL_FORMAT,
            bit_rate=codec_ctx.bit_rate or 0,
            frame_rate=Fraction(rate) if rate else None,
            extradata=bytes(codec_ctx.extradata) if codec_ctx.extradata else b"",
        )

    @property
    def geometry(self) -> tuple[int, int]:
        return self.width, self.height

    def with_bitrate(self, bit_rate: int) -> "StreamDescriptor":
        return dataclasses.replace(self, bit_rate=bit_rate)

    def with_codec(self, codec_name: str) -> "StreamDescriptor":
        return dataclasses.replace(self, codec_name=codec_name, extradata=b"")

    def with_encoder_time_base(self) -> "StreamDescriptor":
        """
        Return a copy whose time base every encoder accepts.

        The source clock is kept when its denominator fits in 16 bits.
        Finer clocks (MPEG-TS 1/90000, raw streams) switch to one tick
        per frame, or to milliseconds when the frame rate is unknown.
        """
        if self.time_base.denominator <= MAX_TIME_BASE_DENOMINATOR:
            return self
        if self.frame_rate:
            time_base = (1 / self.frame_rate).limit_denominator(MAX_TIME_BASE_DENOMINATOR)
        else:
            time_base = Fraction(1, FALLBACK_TIME_BASE_DENOMINATOR)
        logger.debug("[streams] Encoder time base %s instead of %s", time_base, self.time_base)
        return dataclasses.replace(self, time_base=time_base)

    def with_geometry(
        self,
        width: int | None = None,
        height: int | None = None,
        pixel_format: str | None = None,
    ) -> "StreamDescriptor":
        """
        Return a copy with a new geometry and pixel format.

        Dimensions are rounded up to even values when the pixel format
        subsamples chroma 4:2:0.
        """
        width = width or self.width
        height = height or self.height
        pixel_format = pixel_format or self.pixel_format
        if pixel_format in SUBSAMPLED_PIXEL_FORMATS:
            even_width = width if width % 2 == 0 else width + 1
            even_height = height if height % 2 == 0 else height + 1
            if (even_width, even_height) != (width, height):
                logger.debug(
                    "[streams] Rounded %dx%d up to %dx%d for %s",
                    width,
                    height,
                    even_width,
                    even_height,
                    pixel_format,
                )
            width, height = even_width, even_height
        return dataclasses.replace(self, width=width, height=height, pixel_format=pixel_format)
