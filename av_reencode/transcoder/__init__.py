"""
Video transcode pipeline built on PyAV.

- streams: Immutable stream metadata (StreamDescriptor)
- timestamps: Time base rescaling for packets
- codec_session: Shared submit/drain codec session, decoder and encoder adapters
- codecs: Codec lookup, session factories and one-time library init
- scaler: Frame geometry / pixel format conversion
- demuxer: Source container adapter
- muxer: Output container adapter
- pipeline: Pipeline context, state machine and run statistics
"""
