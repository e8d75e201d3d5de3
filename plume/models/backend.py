"""Payloads exchanged with the native compression backend."""

from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from .compression import WireFormat


class FileInformation(BaseModel):
    """Metadata returned for a file on disk."""

    size: int = Field(default=0, ge=0)


class CompressImageRequest(BaseModel):
    """Request body of the compress command."""

    file_path: str
    quality: int = Field(ge=1, le=100)
    format: WireFormat
    lossy: bool = False


class CompressionOutput(BaseModel):
    compressed_size: int = Field(ge=0)
    output_path: str


class CompressImageResponse(BaseModel):
    """Structured answer of the compress command."""

    success: bool
    result: Optional[CompressionOutput] = None
    error: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.success and self.result is not None


class CompressionRecord(BaseModel):
    """Outcome of a compression, recorded for later estimation."""

    input_format: str
    output_format: str
    original_size: int = Field(ge=0)
    compressed_size: int = Field(ge=0)
    compression_time_ms: Optional[int] = Field(default=None, ge=0)
    tool_version: str


class ProcessingStage(str, Enum):
    """Backend processing stages reported on the progress channel."""

    loading = "Loading"
    compressing = "Compressing"
    saving = "Saving"
    complete = "Complete"
    error = "Error"


class CompressionProgressEvent(BaseModel):
    """Event published by the backend while an image is being compressed."""

    image_id: str
    image_name: str = ""
    stage: ProcessingStage
    progress: float = Field(ge=0.0, le=1.0)
    estimated_time_remaining: Optional[float] = Field(
        default=None,
        description="Seconds remaining, when the backend can estimate it.",
    )

    @property
    def percent(self) -> int:
        return int(round(self.progress * 100))
