"""
Single-pass transcode pipeline: demux -> decode -> scale -> encode -> mux.

``TranscodePipeline.run`` walks four states:

  INIT       open input, pick the video stream, open decoder/encoder,
             create the output and write its header
  STREAMING  read packets, decode the selected stream, scale, encode,
             rescale timestamps and write
  FLUSHING   signal end-of-stream and drain what the codecs still hold
  FINALIZED  write the trailer and release every handle

Every handle lives in a ``PipelineContext`` whose ``close`` runs on all
exit paths. A failure inside the loop stops reading but still goes
through flushing and finalization, then is re-raised.
"""

import logging
import time
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from enum import Enum

from av_reencode.configs import Settings, settings
from av_reencode.errors import MuxWriteError, StreamError, TranscodeError
from av_reencode.schemas import TranscodeJob
from av_reencode.transcoder import codecs
from av_reencode.transcoder.demuxer import Demuxer
from av_reencode.transcoder.muxer import Muxer
from av_reencode.transcoder.scaler import FrameScaler
from av_reencode.transcoder.streams import StreamDescriptor
from av_reencode.transcoder.timestamps import rescale_frame, rescale_packet

logger = logging.getLogger(__name__)


class PipelineState(Enum):
    INIT = "init"
    STREAMING = "streaming"
    FLUSHING = "flushing"
    FINALIZED = "finalized"


@dataclass
class TranscodeStats:
    packets_read: int = 0
    packets_discarded: int = 0
    frames_decoded: int = 0
    frames_encoded: int = 0
    packets_written: int = 0
    bit_rate: int = 0
    elapsed_s: float = 0.0
    state: PipelineState = PipelineState.INIT
    error: str | None = None


class PipelineContext:
    """Owns the demuxer, codec sessions, scaler and muxer of one run."""

    # Release order: codecs first, then the output (trailer), then the input
    _RELEASE_ORDER = ("decoder", "encoder", "muxer", "demuxer")

    def __init__(self) -> None:
        self.demuxer = None
        self.decoder = None
        self.scaler: FrameScaler | None = None
        self.encoder = None
        self.muxer = None
        self.source: StreamDescriptor | None = None
        self.target: StreamDescriptor | None = None
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def __enter__(self) -> "PipelineContext":
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        self.close(raise_errors=exc_type is None)
        return False

    def close(self, raise_errors: bool = True) -> None:
        """Release every handle once. A failing release does not stop the others."""
        if self._closed:
            return
        self._closed = True
        first_error: Exception | None = None
        for name in self._RELEASE_ORDER:
            resource = getattr(self, name)
            if resource is None:
                continue
            try:
                resource.close()
            except (TranscodeError, OSError) as exc:
                logger.warning("[pipeline] Releasing %s failed: %s", name, exc)
                if first_error is None:
                    first_error = exc
        self.scaler = None
        if first_error is not None and raise_errors:
            raise first_error


class TranscodePipeline:
    """Drive one transcode run from ``job.input_path`` to ``job.output_path``."""

    def __init__(
        self,
        job: TranscodeJob,
        *,
        config: Settings | None = None,
        open_demuxer: Callable[..., Demuxer] = Demuxer.open,
        create_muxer: Callable[..., Muxer] = Muxer.create,
        find_decoder: Callable[[str], codecs.SessionFactory] = codecs.find_decoder,
        find_encoder: Callable[[str], codecs.SessionFactory] = codecs.find_encoder,
    ) -> None:
        codecs.init_codec_library()
        self._job = job
        self._config = config or settings
        self._open_demuxer = open_demuxer
        self._create_muxer = create_muxer
        self._find_decoder = find_decoder
        self._find_encoder = find_encoder
        self._state = PipelineState.INIT
        self.stats = TranscodeStats(bit_rate=job.bit_rate)

    @property
    def state(self) -> PipelineState:
        return self._state

    def run(self) -> TranscodeStats:
        """
        Transcode the whole source.

        Returns:
            Counters for the finished run.

        Raises:
            SetupError: Nothing was transcoded and no output was left behind.
            StreamError: The loop was aborted; the output was still finalized.
        """
        if self._state is not PipelineState.INIT:
            raise TranscodeError("a pipeline can only be run once")

        start = time.time()
        error: StreamError | None = None
        try:
            with PipelineContext() as ctx:
                self._setup(ctx)
                error = self._stream(ctx)
                if isinstance(error, MuxWriteError):
                    logger.warning("[pipeline] Output not writable, skipping encoder flush")
                else:
                    flush_error = self._flush(ctx, drain_decoder=error is None)
                    error = error or flush_error
        except TranscodeError:
            # A release failure after an aborted loop must not replace the loop's error
            if error is None:
                raise
        finally:
            self._state = PipelineState.FINALIZED
            self.stats.state = self._state
            self.stats.elapsed_s = time.time() - start

        if error is not None:
            self.stats.error = str(error)
            logger.error(
                "[pipeline] Aborted after %d packets read, %d frames encoded, %d packets written",
                self.stats.packets_read,
                self.stats.frames_encoded,
                self.stats.packets_written,
            )
            raise error

        logger.info(
            "[pipeline] Complete: %d packets read (%d discarded), %d frames decoded, "
            "%d frames encoded, %d packets written in %.2fs",
            self.stats.packets_read,
            self.stats.packets_discarded,
            self.stats.frames_decoded,
            self.stats.frames_encoded,
            self.stats.packets_written,
            self.stats.elapsed_s,
        )
        return self.stats

    # ── INIT ─────────────────────────────────────────────────────────

    def _target_descriptor(self, source: StreamDescriptor) -> StreamDescriptor:
        cfg = self._config
        return (
            source.with_codec(cfg.video_codec or source.codec_name)
            .with_geometry(cfg.output_width, cfg.output_height, cfg.pixel_format)
            .with_bitrate(self._job.bit_rate)
            .with_encoder_time_base()
        )

    def _setup(self, ctx: PipelineContext) -> None:
        cfg = self._config
        ctx.demuxer = self._open_demuxer(self._job.input_path)
        ctx.source = ctx.demuxer.select_video_stream()
        ctx.target = self._target_descriptor(ctx.source)

        # Resolve both codecs before the output file is created
        decoder_factory = self._find_decoder(ctx.source.codec_name)
        encoder_factory = self._find_encoder(ctx.target.codec_name)

        ctx.decoder = decoder_factory.open(ctx.source)
        ctx.muxer = self._create_muxer(self._job.output_path, cfg.output_format)
        encoder_context = ctx.muxer.add_stream(encoder_factory.codec, ctx.target)
        ctx.encoder = encoder_factory.open(
            ctx.target,
            encoder_context,
            options=cfg.encoder_options,
            gop_size=cfg.gop_size,
        )
        ctx.scaler = FrameScaler(ctx.source, ctx.target, cfg.scale_interpolation)
        ctx.muxer.write_header()

    # ── STREAMING ────────────────────────────────────────────────────

    def _stream(self, ctx: PipelineContext) -> StreamError | None:
        """Run the packet loop. Returns the error that stopped it early, if any."""
        self._state = PipelineState.STREAMING
        self.stats.state = self._state
        video_index = ctx.source.index
        try:
            while True:
                packet = ctx.demuxer.read_packet()
                if packet is None:
                    return None
                self.stats.packets_read += 1
                if packet.stream_index != video_index:
                    self.stats.packets_discarded += 1
                    continue
                ctx.decoder.submit(packet)
                self._encode_frames(ctx, ctx.decoder.drain())
        except StreamError as exc:
            logger.error("[pipeline] %s; abandoning the rest of the source", exc)
            return exc

    def _encode_frames(self, ctx: PipelineContext, frames: Iterable) -> None:
        for frame in frames:
            self.stats.frames_decoded += 1
            scaled = ctx.scaler.convert(frame)
            ctx.encoder.submit(rescale_frame(scaled, ctx.source.time_base, ctx.target.time_base))
            self.stats.frames_encoded += 1
            self._write_ready(ctx)

    def _write_ready(self, ctx: PipelineContext) -> None:
        """Rescale every ready encoder packet to the output time base and write it."""
        dst_tb = ctx.muxer.time_base
        for packet in ctx.encoder.drain():
            rescale_packet(packet, packet.time_base or ctx.target.time_base, dst_tb)
            ctx.muxer.write(packet)
            self.stats.packets_written += 1

    # ── FLUSHING ─────────────────────────────────────────────────────

    def _flush(self, ctx: PipelineContext, drain_decoder: bool) -> StreamError | None:
        """Drain the codecs after input ends. Returns the first failure, if any."""
        self._state = PipelineState.FLUSHING
        self.stats.state = self._state
        failure: StreamError | None = None
        if drain_decoder:
            try:
                ctx.decoder.flush()
                self._encode_frames(ctx, ctx.decoder.drain())
            except StreamError as exc:
                logger.error("[pipeline] Decoder flush failed: %s", exc)
                failure = exc
        if isinstance(failure, MuxWriteError):
            return failure
        try:
            ctx.encoder.flush()
            self._write_ready(ctx)
        except StreamError as exc:
            logger.error("[pipeline] Encoder flush failed: %s", exc)
            failure = failure or exc
        return failure


def transcode(job: TranscodeJob, **kwargs) -> TranscodeStats:
    """Run a single transcode. Keyword arguments go to :class:`TranscodePipeline`."""
    return TranscodePipeline(job, **kwargs).run()
