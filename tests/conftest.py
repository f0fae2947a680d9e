"""
Pytest configuration and media fixtures.

Sample media is generated on the fly with PyAV using codecs that ship
with every FFmpeg build (MPEG-4 Part 2 video in an MP4 container).
"""

from pathlib import Path

import av
import pytest

SAMPLE_WIDTH = 64
SAMPLE_HEIGHT = 48
SAMPLE_FRAMES = 10
SAMPLE_RATE = 10


def make_frame(index: int, width: int = SAMPLE_WIDTH, height: int = SAMPLE_HEIGHT, fmt: str = "yuv420p"):
    """Build a flat-colored video frame whose shade depends on ``index``."""
    frame = av.VideoFrame(width, height, fmt)
    shade = (16 + index * 20) % 236
    for plane in frame.planes:
        plane.update(bytes([shade]) * plane.buffer_size)
    frame.pts = index
    return frame


def write_sample_video(
    path: Path,
    frames: int = SAMPLE_FRAMES,
    width: int = SAMPLE_WIDTH,
    height: int = SAMPLE_HEIGHT,
    container_format: str = "mp4",
) -> Path:
    with av.open(str(path), mode="w", format=container_format) as container:
        stream = container.add_stream("mpeg4", rate=SAMPLE_RATE)
        stream.width = width
        stream.height = height
        stream.pix_fmt = "yuv420p"
        for index in range(frames):
            for packet in stream.encode(make_frame(index, width, height)):
                container.mux(packet)
        for packet in stream.encode(None):
            container.mux(packet)
    return path


@pytest.fixture
def sample_video(tmp_path) -> Path:
    """A 10-frame 64x48 MPEG-4 video in an MP4 container, no other streams."""
    return write_sample_video(tmp_path / "in.mp4")


@pytest.fixture
def garbage_file(tmp_path) -> Path:
    path = tmp_path / "not_media.mp4"
    path.write_bytes(b"this is not a media container\n" * 64)
    return path


@pytest.fixture
def sample_ts_video(tmp_path) -> Path:
    """The same 10 frames in MPEG-TS, whose stream clock is 1/90000."""
    return write_sample_video(tmp_path / "in.ts", container_format="mpegts")
