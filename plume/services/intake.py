"""Turns file paths from selection or drag-and-drop into pending images."""

from __future__ import annotations

import uuid
from pathlib import PurePath
from typing import Iterable, List

from plume.core.errors import PlumeError
from plume.core.logging import get_logger
from plume.models.image import ImageFormat, ImageRecord
from plume.services.backend_client import CompressionBackend
from plume.services.image_store import ImageStore
from plume.services.notifications import NotificationCenter

logger = get_logger(__name__)


def display_name(file_path: str) -> str:
    """Return the file name for either POSIX or Windows style paths."""

    name = PurePath(file_path.replace("\\", "/")).name
    return name or "unknown"


class ImageIntake:
    """Adds images to the collection, skipping paths it already holds."""

    def __init__(self, store: ImageStore, backend: CompressionBackend, notifier: NotificationCenter) -> None:
        self._store = store
        self._backend = backend
        self._notifier = notifier

    async def add_images(self, file_paths: Iterable[str]) -> List[ImageRecord]:
        known = self._store.paths()
        unique_paths: List[str] = []
        for path in file_paths:
            if path and path not in known:
                known.add(path)
                unique_paths.append(path)

        if not unique_paths:
            return []

        records = [await self._build_record(path) for path in unique_paths]
        self._store.add(records)

        count = len(records)
        self._notifier.success(f"{count} image{'s' if count > 1 else ''} added")
        logger.info("images_added", count=count)
        return records

    async def handle_external_drop(self, file_paths: Iterable[str]) -> List[ImageRecord]:
        return await self.add_images(file_paths)

    async def _build_record(self, file_path: str) -> ImageRecord:
        size = 0
        try:
            info = await self._backend.get_file_information(file_path)
            size = info.size
        except PlumeError as exc:
            logger.warning("file_information_unavailable", path=file_path, error=str(exc))

        name = display_name(file_path)
        return ImageRecord(
            id=f"img_{uuid.uuid4().hex}",
            name=name,
            path=file_path,
            original_size=size,
            format=ImageFormat.from_filename(name),
        )
