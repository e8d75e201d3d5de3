"""Compression presets and the wire parameters derived from them."""

from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, field_validator


class OutputFormat(str, Enum):
    """Output format preset chosen by the user."""

    keep = "keep"
    webp = "webp"
    jpeg = "jpeg"
    png = "png"


class CompressionLevel(str, Enum):
    """Compression strength preset chosen by the user."""

    light = "light"
    balanced = "balanced"
    aggressive = "aggressive"


class WireFormat(str, Enum):
    """Format value understood by the compression backend."""

    webp = "webp"
    jpeg = "jpeg"
    png = "png"
    auto = "auto"


class CompressionState(str, Enum):
    """Aggregate state of the batch."""

    idle = "idle"
    processing = "processing"
    completed = "completed"
    error = "error"


class CompressionSettings(BaseModel):
    """User-facing compression preset."""

    quality: int = Field(default=80, ge=1, le=100)
    output_format: OutputFormat = OutputFormat.webp
    compression_level: CompressionLevel = CompressionLevel.balanced


class CompressionSettingsUpdate(BaseModel):
    """Partial update of the compression preset; quality is clamped rather than rejected."""

    quality: Optional[int] = None
    output_format: Optional[OutputFormat] = None
    compression_level: Optional[CompressionLevel] = None

    @field_validator("quality")
    @classmethod
    def clamp_quality(cls, value: Optional[int]) -> Optional[int]:
        if value is None:
            return None
        return max(1, min(100, value))


class CompressionParams(BaseModel):
    """Quality/format/lossy triple sent to the backend."""

    quality: int = Field(ge=1, le=100)
    format: WireFormat
    lossy: bool
