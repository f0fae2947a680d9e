"""
Source container adapter on top of ``av.open``.

Opens the input, exposes stream metadata as ``StreamDescriptor`` objects
and reads compressed packets in container order. Packets of every stream
are returned; choosing which ones to decode is the pipeline's job.
"""

import logging
from collections.abc import Iterator
from pathlib import Path

import av

from av_reencode.errors import SetupError, StreamError
from av_reencode.transcoder.streams import StreamDescriptor

logger = logging.getLogger(__name__)


class Demuxer:
    def __init__(self, container, path: Path | str = "") -> None:
        self._container = container
        self._path = str(path)
        self._packets: Iterator | None = None
        self._video_stream: StreamDescriptor | None = None

    @classmethod
    def open(cls, path: Path | str) -> "Demuxer":
        """Open ``path`` for reading and probe its streams.

        Raises:
            SetupError: The file is missing or is not a readable container.
        """
        try:
            container = av.open(str(path), mode="r")
        except (av.error.FFmpegError, OSError) as exc:
            raise SetupError("open input", f"{path}: {exc}") from exc
        logger.info("[demuxer] Opened %s (%s, %d streams)", path, container.format.name, len(container.streams))
        return cls(container, path)

    @property
    def video_stream(self) -> StreamDescriptor | None:
        return self._video_stream

    def probe_streams(self) -> list[StreamDescriptor]:
        """Describe every video stream in the container, in index order."""
        if self._container is None:
            return []
        return [StreamDescriptor.from_stream(stream) for stream in self._container.streams if stream.type == "video"]

    def select_video_stream(self) -> StreamDescriptor:
        """Pick the first video stream. Only one is transcoded per run.

        Raises:
            SetupError: The container has no video stream.
        """
        candidates = self.probe_streams()
        if not candidates:
            raise SetupError("find video stream", f"no video stream in {self._path or 'input'}")
        self._video_stream = candidates[0]
        logger.info(
            "[demuxer] Video: stream #%d %s %dx%d %s, time_base=%s",
            self._video_stream.index,
            self._video_stream.codec_name,
            self._video_stream.width,
            self._video_stream.height,
            self._video_stream.pixel_format,
            self._video_stream.time_base,
        )
        return self._video_stream

    def read_packet(self):
        """Return the next packet of any stream, or ``None`` once the source is exhausted.

        Raises:
            StreamError: The container could not be read.
        """
        if self._container is None:
            return None
        if self._packets is None:
            self._packets = self._container.demux()
        try:
            for packet in self._packets:
                # demux() ends each stream with an empty flush packet
                if packet.size == 0:
                    continue
                return packet
        except av.error.FFmpegError as exc:
            raise StreamError(f"read packet failed: {exc}") from exc
        return None

    def close(self) -> None:
        if self._container is None:
            return
        try:
            self._container.close()
        finally:
            self._container = None
            self._packets = None
