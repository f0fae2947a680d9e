"""
Codec capability provider.

Looks codecs up by name and hands out session factories that open
decoder/encoder sessions. Also owns the process-wide library init,
which runs once before the first pipeline is built.
"""

import logging
from dataclasses import dataclass

import av

from av_reencode.configs import settings
from av_reencode.errors import SetupError
from av_reencode.transcoder.codec_session import (
    CodecSession,
    DecoderAdapter,
    EncoderAdapter,
    SessionDirection,
)
from av_reencode.transcoder.streams import StreamDescriptor

logger = logging.getLogger(__name__)

# Module-level flag -- set by the first call to init_codec_library()
_library_initialized = False

_MODES = {
    SessionDirection.DECODE: "r",
    SessionDirection.ENCODE: "w",
}


def init_codec_library(log_level: str | None = None) -> None:
    """Apply the native log level and report library versions. Runs once per process."""
    global _library_initialized
    if _library_initialized:
        return
    level_name = (log_level or settings.ffmpeg_log_level).upper()
    level = getattr(av.logging, level_name, None)
    if not isinstance(level, int):
        logger.warning("[codecs] Unknown libav log level %r, using ERROR", level_name)
        level = av.logging.ERROR
    av.logging.set_level(level)
    _library_initialized = True

    libavcodec = av.library_versions.get("libavcodec", ())
    logger.info(
        "[codecs] PyAV %s initialized (libavcodec %s, log level %s)",
        av.__version__,
        ".".join(str(part) for part in libavcodec) or "unknown",
        level_name,
    )


def is_library_initialized() -> bool:
    return _library_initialized


@dataclass(frozen=True)
class SessionFactory:
    """Opens sessions of one codec in one direction."""

    codec: av.Codec
    direction: SessionDirection

    @property
    def name(self) -> str:
        return self.codec.name

    def open(
        self,
        descriptor: StreamDescriptor,
        context=None,
        *,
        options: dict[str, str] | None = None,
        gop_size: int | None = None,
    ) -> CodecSession:
        """
        Open a session for ``descriptor``.

        Args:
            descriptor: Stream the session decodes from or encodes to.
            context: An existing codec context to bind to (the output
                stream's context for encoders). A fresh one is created
                when omitted.
            options: Private encoder options.
            gop_size: Encoder keyframe interval.

        Raises:
            SetupError: The codec context could not be opened.
        """
        stage = f"open {'decoder' if self.direction is SessionDirection.DECODE else 'encoder'}"
        try:
            if context is None:
                context = av.CodecContext.create(self.codec, _MODES[self.direction])
            if self.direction is SessionDirection.DECODE:
                if descriptor.extradata:
                    context.extradata = descriptor.extradata
                context.open()
                logger.info("[codecs] Decoder opened: %s", self.codec.name)
                return DecoderAdapter(context)
            return EncoderAdapter(context, descriptor, options=options, gop_size=gop_size)
        except (av.error.FFmpegError, ValueError, RuntimeError) as exc:
            raise SetupError(stage, f"{self.codec.name}: {exc}") from exc


def _find(codec_name: str, direction: SessionDirection) -> SessionFactory:
    stage = f"find {'decoder' if direction is SessionDirection.DECODE else 'encoder'}"
    try:
        codec = av.Codec(codec_name, _MODES[direction])
    except (ValueError, av.error.FFmpegError) as exc:
        raise SetupError(stage, f"no {direction.value}r available for codec {codec_name!r}") from exc
    if codec.type != "video":
        raise SetupError(stage, f"codec {codec_name!r} is not a video codec")
    return SessionFactory(codec=codec, direction=direction)


def find_decoder(codec_name: str) -> SessionFactory:
    return _find(codec_name, SessionDirection.DECODE)


def find_encoder(codec_name: str) -> SessionFactory:
    return _find(codec_name, SessionDirection.ENCODE)
