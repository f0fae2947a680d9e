from fractions import Fraction

import pytest

from av_reencode.errors import DecodeError, EncodeError
from av_reencode.transcoder.codec_session import (
    CodecSession,
    DecoderAdapter,
    EncoderAdapter,
    SessionDirection,
)

from fakes import SOURCE, FakeDecoderContext, FakeEncoderContext, FakeFrame, FakePacket


def test_decoder_may_emit_nothing_for_a_packet():
    decoder = DecoderAdapter(FakeDecoderContext(lag=2))
    decoder.submit(FakePacket(0, pts=0))
    assert list(decoder.drain()) == []
    decoder.submit(FakePacket(0, pts=40))
    assert list(decoder.drain()) == []
    decoder.submit(FakePacket(0, pts=80))
    assert [frame.pts for frame in decoder.drain()] == [0]


def test_drain_is_finite_and_empties_the_ready_queue():
    decoder = DecoderAdapter(FakeDecoderContext(lag=0))
    decoder.submit(FakePacket(0, pts=0))
    decoder.submit(FakePacket(0, pts=40))
    assert [frame.pts for frame in decoder.drain()] == [0, 40]
    assert list(decoder.drain()) == []
    assert decoder.submitted == 2
    assert decoder.produced == 2


def test_flush_releases_every_buffered_output_then_stays_empty():
    ctx = FakeEncoderContext(lag=3)
    encoder = EncoderAdapter(ctx, SOURCE.with_bitrate(500_000))
    for pts in range(5):
        encoder.submit(FakeFrame(pts=pts))
    assert [p.pts for p in encoder.drain()] == [0, 1]

    encoder.flush()
    assert [p.pts for p in encoder.drain()] == [2, 3, 4]
    assert list(encoder.drain()) == []

    encoder.flush()
    assert ctx.flush_calls == 1
    assert list(encoder.drain()) == []


def test_submit_after_flush_is_rejected():
    decoder = DecoderAdapter(FakeDecoderContext())
    decoder.flush()
    with pytest.raises(DecodeError):
        decoder.submit(FakePacket(0, pts=0))


def test_codec_failure_is_wrapped_by_direction():
    decoder = DecoderAdapter(FakeDecoderContext(fail_on_pts=3))
    with pytest.raises(DecodeError) as excinfo:
        decoder.submit(FakePacket(0, pts=3))
    assert excinfo.value.__cause__ is not None
    assert decoder.submitted == 0

    encoder = EncoderAdapter(FakeEncoderContext(fail_on_pts=7), SOURCE)
    with pytest.raises(EncodeError):
        encoder.submit(FakeFrame(pts=7))


def test_one_session_type_serves_both_directions():
    decode = CodecSession(FakeDecoderContext(lag=0), SessionDirection.DECODE)
    encode = CodecSession(FakeEncoderContext(lag=0), SessionDirection.ENCODE)
    decode.submit(FakePacket(0, pts=5))
    frames = list(decode.drain())
    encode.submit(frames[0])
    assert [p.pts for p in encode.drain()] == [5]
    assert decode.direction is SessionDirection.DECODE
    assert encode.direction is SessionDirection.ENCODE


def test_encoder_is_configured_with_the_target_bitrate_before_opening():
    ctx = FakeEncoderContext()
    target = SOURCE.with_bitrate(500 * 1000)
    EncoderAdapter(ctx, target, options={"preset": "veryfast"}, gop_size=50)

    assert ctx.opened_config == {
        "width": 64,
        "height": 48,
        "pix_fmt": "yuv420p",
        "time_base": Fraction(1, 1000),
        "framerate": Fraction(25),
        "bit_rate": 500_000,
        "gop_size": 50,
        "options": {"preset": "veryfast"},
    }
    assert SOURCE.bit_rate == 2_000_000


def test_close_flushes_a_fed_session_and_is_idempotent():
    ctx = FakeEncoderContext(lag=5)
    encoder = EncoderAdapter(ctx, SOURCE)
    encoder.submit(FakeFrame(pts=0))
    encoder.close()
    encoder.close()
    assert ctx.flush_calls == 1
    assert encoder.context is None
    with pytest.raises(EncodeError):
        encoder.submit(FakeFrame(pts=1))


def test_close_skips_flush_for_an_unused_session():
    ctx = FakeDecoderContext()
    DecoderAdapter(ctx).close()
    assert ctx.flush_calls == 0
