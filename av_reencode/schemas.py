from pathlib import Path

from pydantic import BaseModel, Field


class TranscodeJob(BaseModel):
    input_path: Path = Field(..., description="Source media file.")
    output_path: Path = Field(..., description="Destination media file.")
    bitrate_kbps: int = Field(..., gt=0, description="Target video bitrate in kilobits per second.")

    @property
    def bit_rate(self) -> int:
        """Target bitrate in bits per second."""
        return self.bitrate_kbps * 1000
