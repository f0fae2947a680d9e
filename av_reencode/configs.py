from typing import Dict, Optional

from pydantic import Field
from pydantic_settings import BaseSettings

from av_reencode.const import DEFAULT_INTERPOLATION, DEFAULT_OUTPUT_FORMAT, DEFAULT_PIXEL_FORMAT


class Settings(BaseSettings):
    log_level: str = "INFO"  # The logging level to use.
    ffmpeg_log_level: str = "ERROR"  # Native libav* log level applied at library init.
    output_format: str = DEFAULT_OUTPUT_FORMAT  # Output container format name.
    video_codec: Optional[str] = None  # Encoder codec. None re-encodes with the source codec.
    pixel_format: str = DEFAULT_PIXEL_FORMAT  # Pixel format fed to the encoder.
    output_width: Optional[int] = Field(None, gt=0)  # Target width. None keeps the source width.
    output_height: Optional[int] = Field(None, gt=0)  # Target height. None keeps the source height.
    scale_interpolation: str = DEFAULT_INTERPOLATION  # Interpolation used by the scaler.
    gop_size: Optional[int] = Field(None, gt=0)  # Keyframe interval in frames. None uses the encoder default.
    encoder_options: Dict[str, str] = Field(
        default_factory=dict, description="Private encoder options, e.g. {'preset': 'veryfast'}"
    )

    class Config:
        env_file = ".env"
        extra = "ignore"


settings = Settings()
