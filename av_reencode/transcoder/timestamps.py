"""Time base conversion for packets crossing from the input to the output stream."""

from fractions import Fraction


def rescale(value: int | None, src: Fraction, dst: Fraction) -> int | None:
    """
    Convert a timestamp from one time base to another.

    Rounds to the nearest integer, halfway cases away from zero, which
    matches libavutil's default rounding for ``av_rescale_q``.
    """
    if value is None:
        return None
    exact = Fraction(value) * Fraction(src) / Fraction(dst)
    floor = exact.numerator // exact.denominator
    remainder = exact - floor
    if remainder > Fraction(1, 2) or (remainder == Fraction(1, 2) and exact > 0):
        return floor + 1
    return floor


def rescale_packet(packet, src: Fraction, dst: Fraction):
    """Rewrite pts, dts and duration of ``packet`` from ``src`` to ``dst`` in place."""
    packet.pts = rescale(packet.pts, src, dst)
    packet.dts = rescale(packet.dts, src, dst)
    if packet.duration:
        packet.duration = rescale(packet.duration, src, dst)
    packet.time_base = dst
    return packet


def rescale_frame(frame, src: Fraction, dst: Fraction):
    """Move ``frame.pts`` from ``src`` to ``dst`` in place before it is encoded."""
    if src == dst:
        return frame
    frame.pts = rescale(frame.pts, src, dst)
    frame.time_base = dst
    return frame
