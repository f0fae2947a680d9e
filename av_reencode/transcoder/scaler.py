"""Frame geometry and pixel format conversion."""

import logging

import av

from av_reencode.const import DEFAULT_INTERPOLATION
from av_reencode.errors import ScaleError
from av_reencode.transcoder.streams import StreamDescriptor

logger = logging.getLogger(__name__)


class FrameScaler:
    """
    Converts decoded frames to the encoder's geometry and pixel format.

    Source and target are fixed at construction. Each ``convert`` call
    is independent: a frame in, a frame out, pts and time base kept.
    """

    def __init__(
        self,
        source: StreamDescriptor,
        target: StreamDescriptor,
        interpolation: str = DEFAULT_INTERPOLATION,
    ) -> None:
        self._source = (source.width, source.height, source.pixel_format)
        self._target = (target.width, target.height, target.pixel_format)
        self._interpolation = interpolation
        logger.info(
            "[scaler] %dx%d %s -> %dx%d %s (%s)",
            *self._source,
            *self._target,
            interpolation,
        )

    @property
    def is_passthrough(self) -> bool:
        return self._source == self._target

    def convert(self, frame: av.VideoFrame) -> av.VideoFrame:
        actual = (frame.width, frame.height, frame.format.name)
        if actual != self._source:
            raise ScaleError(
                "frame %dx%d %s does not match scaler input %dx%d %s" % (*actual, *self._source)
            )
        if self.is_passthrough:
            return frame

        width, height, pixel_format = self._target
        try:
            scaled = frame.reformat(
                width=width,
                height=height,
                format=pixel_format,
                interpolation=self._interpolation,
            )
        except (av.error.FFmpegError, ValueError) as exc:
            raise ScaleError(f"reformat failed: {exc}") from exc
        # reformat() carries pts and time_base over to the new frame
        return scaled
