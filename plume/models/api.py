"""Request and response bodies of the HTTP API."""

from __future__ import annotations

from typing import List

from pydantic import BaseModel, Field, field_validator

from plume.models.compression import CompressionSettings, CompressionState
from plume.models.image import ImageRecord, ImageStats


class AddImagesRequest(BaseModel):
    """File paths picked by the user or dropped onto the window."""

    paths: List[str] = Field(default_factory=list, description="Absolute paths of the images to add.")

    @field_validator("paths", mode="before")
    @classmethod
    def strip_blank_paths(cls, value: List[str]) -> List[str]:
        """Drop empty entries sent by drop handlers."""

        return [path for path in value or [] if path and path.strip()]


class AddImagesResponse(BaseModel):
    added: List[ImageRecord]


class ImageCollectionResponse(BaseModel):
    """Current collection with its derived views."""

    images: List[ImageRecord]
    stats: ImageStats
    view: str
    compression_state: CompressionState
    is_processing: bool


class CompressionStatusResponse(BaseModel):
    compression_state: CompressionState
    is_processing: bool
    settings: CompressionSettings
    stats: ImageStats


class StartCompressionResponse(BaseModel):
    started: bool
    compression_state: CompressionState
