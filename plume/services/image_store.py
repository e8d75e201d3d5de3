"""In-memory image collection and batch state."""

from __future__ import annotations

from threading import Lock
from typing import Callable, Iterable, Optional, Tuple

from plume.core.config import settings as app_settings
from plume.core.errors import InvalidTransitionError
from plume.core.logging import get_logger
from plume.models.compression import (
    CompressionLevel,
    CompressionSettings,
    CompressionSettingsUpdate,
    CompressionState,
    OutputFormat,
)
from plume.models.image import ImageRecord, ImageStats, ImageStatus

logger = get_logger(__name__)


def default_compression_settings() -> CompressionSettings:
    """Build the initial preset from application configuration."""

    return CompressionSettings(
        quality=max(1, min(100, app_settings.default_quality)),
        output_format=OutputFormat(app_settings.default_output_format),
        compression_level=CompressionLevel(app_settings.default_compression_level),
    )


class ImageStore:
    """Owns the image collection, the run guard and the compression preset.

    Every mutation swaps in a new tuple so readers always hold a consistent
    snapshot. Commands addressed to an id that is no longer in the collection
    are no-ops.
    """

    def __init__(self, compression_settings: Optional[CompressionSettings] = None) -> None:
        self._lock = Lock()
        self._images: Tuple[ImageRecord, ...] = ()
        self._compression_state = CompressionState.idle
        self._is_processing = False
        self._settings = compression_settings or default_compression_settings()

    @property
    def images(self) -> Tuple[ImageRecord, ...]:
        return self._images

    @property
    def compression_state(self) -> CompressionState:
        return self._compression_state

    @property
    def is_processing(self) -> bool:
        return self._is_processing

    @property
    def settings(self) -> CompressionSettings:
        return self._settings

    def get(self, image_id: str) -> Optional[ImageRecord]:
        return self._find(image_id)

    def paths(self) -> set[str]:
        return {image.path for image in self._images}

    def pending_snapshot(self) -> Tuple[ImageRecord, ...]:
        """Return the images currently pending, in collection order."""

        return tuple(image for image in self._images if image.is_pending())

    def add(self, records: Iterable[ImageRecord]) -> None:
        with self._lock:
            self._images = self._images + tuple(records)

    def remove(self, image_id: str) -> bool:
        with self._lock:
            remaining = tuple(image for image in self._images if image.id != image_id)
            removed = len(remaining) != len(self._images)
            self._images = remaining
        return removed

    def clear(self) -> None:
        with self._lock:
            self._images = ()
            self._compression_state = CompressionState.idle

    def begin_processing(self, image_id: str, initial_progress: int = 0) -> Optional[ImageRecord]:
        """Move a pending image to processing. Returns None if it is gone or not pending."""

        with self._lock:
            image = self._find(image_id)
            if image is None or not image.is_pending():
                return None
            updated = image.to_processing(initial_progress)
            self._replace(updated)
        return updated

    def update_progress(self, image_id: str, progress: float) -> Optional[ImageRecord]:
        return self._apply(image_id, lambda image: image.update_progress(progress))

    def mark_completed(self, image_id: str, compressed_size: int, output_path: str) -> Optional[ImageRecord]:
        return self._transition(
            image_id,
            "to_completed",
            lambda image: image.to_completed(compressed_size, output_path),
        )

    def mark_error(self, image_id: str) -> Optional[ImageRecord]:
        return self._transition(image_id, "to_error", lambda image: image.to_error())

    def reset_processing(self) -> int:
        """Send every processing image back to pending and release the run guard."""

        with self._lock:
            reset = 0
            images = []
            for image in self._images:
                if image.status == ImageStatus.processing:
                    image = image.reset_to_pending()
                    reset += 1
                images.append(image)
            self._images = tuple(images)
            self._is_processing = False
            self._compression_state = CompressionState.idle
        return reset

    def try_begin_run(self) -> bool:
        """Set the run guard. Returns False if a run already holds it."""

        with self._lock:
            if self._is_processing:
                return False
            self._is_processing = True
            self._compression_state = CompressionState.processing
            return True

    def complete_run(self) -> None:
        with self._lock:
            self._compression_state = CompressionState.completed

    def abandon_run(self) -> None:
        """End a run early; images it did not reach stay pending."""

        with self._lock:
            self._compression_state = CompressionState.idle

    def release_run(self) -> None:
        with self._lock:
            self._is_processing = False

    def update_settings(self, update: CompressionSettingsUpdate) -> CompressionSettings:
        changes = update.model_dump(exclude_none=True)
        with self._lock:
            self._settings = self._settings.model_copy(update=changes)
        return self._settings

    def set_quality(self, quality: int) -> CompressionSettings:
        return self.update_settings(CompressionSettingsUpdate(quality=quality))

    def _find(self, image_id: str) -> Optional[ImageRecord]:
        for image in self._images:
            if image.id == image_id:
                return image
        return None

    def _replace(self, updated: ImageRecord) -> None:
        self._images = tuple(updated if image.id == updated.id else image for image in self._images)

    def _apply(self, image_id: str, change: Callable[[ImageRecord], ImageRecord]) -> Optional[ImageRecord]:
        with self._lock:
            image = self._find(image_id)
            if image is None:
                return None
            updated = change(image)
            if updated is not image:
                self._replace(updated)
        return updated

    def _transition(
        self,
        image_id: str,
        operation: str,
        change: Callable[[ImageRecord], ImageRecord],
    ) -> Optional[ImageRecord]:
        try:
            return self._apply(image_id, change)
        except InvalidTransitionError as exc:
            # Another path already settled this image; the first terminal state stands.
            logger.warning(
                "image_transition_skipped",
                image_id=image_id,
                operation=operation,
                status=exc.current,
            )
            return self.get(image_id)


def compute_stats(images: Iterable[ImageRecord]) -> ImageStats:
    """Derive counters from a collection snapshot."""

    images = tuple(images)
    completed = [image for image in images if image.is_completed()]
    savings = [image.savings for image in completed if image.savings is not None]

    return ImageStats(
        total=len(images),
        pending=sum(1 for image in images if image.status == ImageStatus.pending),
        processing=sum(1 for image in images if image.status == ImageStatus.processing),
        completed=len(completed),
        errored=sum(1 for image in images if image.status == ImageStatus.error),
        total_size=sum(image.original_size for image in images),
        total_compressed_size=sum(image.compressed_size or 0 for image in completed),
        average_savings=(sum(savings) / len(completed)) if completed else 0.0,
    )


def current_view(images: Iterable[ImageRecord], compression_state: CompressionState) -> str:
    """Return which screen the collection calls for: drop, list or success."""

    images = tuple(images)
    if not images:
        return "drop"
    if compression_state == CompressionState.completed and all(image.is_completed() for image in images):
        return "success"
    return "list"
