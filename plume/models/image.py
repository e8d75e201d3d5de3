"""Image record entity and its processing state machine."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from pathlib import PurePath
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field, model_validator

from plume.core.errors import InvalidTransitionError


class ImageStatus(str, Enum):
    """Possible states for an image in the batch."""

    pending = "pending"
    processing = "processing"
    completed = "completed"
    error = "error"


class ImageFormat(str, Enum):
    """Source formats recognised at intake."""

    jpeg = "JPEG"
    png = "PNG"
    webp = "WEBP"
    heic = "HEIC"
    other = "OTHER"

    @classmethod
    def from_filename(cls, filename: str) -> "ImageFormat":
        """Detect the format from a file name's extension."""

        extension = PurePath(filename).suffix.lower().lstrip(".")
        mapping = {
            "jpg": cls.jpeg,
            "jpeg": cls.jpeg,
            "png": cls.png,
            "webp": cls.webp,
            "heic": cls.heic,
            "heif": cls.heic,
        }
        return mapping.get(extension, cls.other)


def clamp_progress(value: float) -> int:
    return int(max(0, min(100, round(value))))


class ImageRecord(BaseModel):
    """A single image queued for compression.

    Records are immutable; every transition returns an updated copy so that a
    collection snapshot never changes under a reader.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    path: str
    original_size: int = Field(default=0, ge=0)
    format: ImageFormat = ImageFormat.other
    status: ImageStatus = ImageStatus.pending
    progress: int = Field(default=0, ge=0, le=100)
    compressed_size: Optional[int] = Field(default=None, ge=0)
    output_path: Optional[str] = None
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    @model_validator(mode="after")
    def ensure_result_matches_status(self) -> "ImageRecord":
        """Compressed size and output path exist only on completed records."""

        has_result = self.compressed_size is not None and self.output_path is not None
        has_partial = self.compressed_size is not None or self.output_path is not None
        if self.status == ImageStatus.completed and not has_result:
            raise ValueError("Completed images require 'compressed_size' and 'output_path'.")
        if self.status != ImageStatus.completed and has_partial:
            raise ValueError("Only completed images may carry compression results.")
        return self

    @computed_field  # type: ignore[prop-decorator]
    @property
    def savings(self) -> Optional[float]:
        """Fraction of the original size saved, once a compressed size is known."""

        if self.compressed_size is None:
            return None
        if not self.original_size:
            return 0.0
        return 1 - (self.compressed_size / self.original_size)

    def is_pending(self) -> bool:
        return self.status == ImageStatus.pending

    def is_processing(self) -> bool:
        return self.status == ImageStatus.processing

    def is_completed(self) -> bool:
        return self.status == ImageStatus.completed

    def is_terminal(self) -> bool:
        return self.status in (ImageStatus.completed, ImageStatus.error)

    def to_processing(self, initial_progress: int = 0) -> "ImageRecord":
        """Return a copy moved from pending to processing."""

        self._require(ImageStatus.pending, "to_processing")
        return self._evolve(status=ImageStatus.processing, progress=clamp_progress(initial_progress))

    def to_completed(self, compressed_size: int, output_path: str) -> "ImageRecord":
        """Return a copy moved from processing to completed with its result."""

        self._require(ImageStatus.processing, "to_completed")
        return self._evolve(
            status=ImageStatus.completed,
            progress=100,
            compressed_size=compressed_size,
            output_path=output_path,
        )

    def to_error(self) -> "ImageRecord":
        """Return a copy moved from processing to error."""

        self._require(ImageStatus.processing, "to_error")
        return self._evolve(status=ImageStatus.error)

    def reset_to_pending(self) -> "ImageRecord":
        """Return a copy moved back from processing to pending (recovery only)."""

        self._require(ImageStatus.processing, "reset_to_pending")
        return self._evolve(status=ImageStatus.pending, progress=0)

    def update_progress(self, value: float) -> "ImageRecord":
        """Return a copy with a clamped progress value; unchanged unless processing."""

        if self.status != ImageStatus.processing:
            return self
        return self._evolve(progress=clamp_progress(value))

    def _require(self, expected: ImageStatus, operation: str) -> None:
        if self.status != expected:
            raise InvalidTransitionError(self.id, self.status.value, operation)

    def _evolve(self, **changes) -> "ImageRecord":
        changes["updated_at"] = datetime.utcnow()
        return self.model_copy(update=changes)


class ImageStats(BaseModel):
    """Aggregate counters derived from a collection snapshot."""

    total: int
    pending: int
    processing: int
    completed: int
    errored: int
    total_size: int
    total_compressed_size: int
    average_savings: float
