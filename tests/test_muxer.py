from fractions import Fraction

import av
import pytest

from av_reencode.errors import MuxerStateError, SetupError
from av_reencode.transcoder.codec_session import EncoderAdapter
from av_reencode.transcoder.muxer import Muxer, MuxerState
from av_reencode.transcoder.streams import StreamDescriptor
from av_reencode.transcoder.timestamps import rescale_packet

from conftest import make_frame

TARGET = StreamDescriptor(
    index=0,
    codec_name="mpeg4",
    time_base=Fraction(1, 10),
    width=64,
    height=48,
    bit_rate=200_000,
    frame_rate=Fraction(10),
)


def _open_muxer(path):
    muxer = Muxer.create(path, "3gp")
    context = muxer.add_stream("mpeg4", TARGET)
    encoder = EncoderAdapter(context, TARGET)
    return muxer, encoder


def test_unknown_format_is_a_setup_error(tmp_path):
    with pytest.raises(SetupError) as excinfo:
        Muxer.create(tmp_path / "out.bin", "no-such-container-format")
    assert excinfo.value.stage == "create output"


def test_write_before_header_is_rejected(tmp_path):
    muxer, encoder = _open_muxer(tmp_path / "out.3gp")
    encoder.submit(make_frame(0))
    encoder.flush()
    packet = next(encoder.drain())
    with pytest.raises(MuxerStateError):
        muxer.write(packet)
    muxer.discard()


def test_header_requires_a_stream(tmp_path):
    muxer = Muxer.create(tmp_path / "out.3gp", "3gp")
    with pytest.raises(MuxerStateError):
        muxer.write_header()
    muxer.discard()


def test_discard_leaves_no_output_file(tmp_path):
    path = tmp_path / "out.3gp"
    muxer, _ = _open_muxer(path)
    muxer.close()
    assert muxer.state is MuxerState.DISCARDED
    assert not path.exists()


def test_full_lifecycle_produces_a_readable_file(tmp_path):
    path = tmp_path / "out.3gp"
    muxer, encoder = _open_muxer(path)
    muxer.write_header()
    assert muxer.state is MuxerState.HEADER_WRITTEN

    for index in range(3):
        encoder.submit(make_frame(index))
    encoder.flush()
    for packet in encoder.drain():
        rescale_packet(packet, TARGET.time_base, muxer.time_base)
        muxer.write(packet)
    muxer.write_trailer()

    assert muxer.state is MuxerState.TRAILER_WRITTEN
    assert muxer.packets_written == 3
    with pytest.raises(MuxerStateError):
        muxer.write_trailer()
    with pytest.raises(MuxerStateError):
        muxer.write(av.Packet(b"\x00"))

    with av.open(str(path)) as container:
        stream = container.streams.video[0]
        assert stream.codec_context.name == "mpeg4"
        assert sum(1 for p in container.demux(stream) if p.size) == 3
