"""Feeds backend progress events into the image collection."""

from __future__ import annotations

from typing import Any, Dict, Optional

from pydantic import ValidationError

from plume.core.errors import ListenerSetupFailure
from plume.core.logging import get_logger
from plume.models.backend import CompressionProgressEvent, ProcessingStage
from plume.services.image_store import ImageStore
from plume.services.progress_channel import COMPRESSION_PROGRESS_EVENT, ProgressChannel, Unlisten

logger = get_logger(__name__)


class BackendEventBridge:
    """Holds the single subscription to the `compression-progress` channel.

    Backend progress overwrites whatever the simulated ramp last wrote; an
    Error stage moves the image to error on its own, alongside the
    orchestrator's handling of the failed call.
    """

    def __init__(self, store: ImageStore, channel: ProgressChannel) -> None:
        self._store = store
        self._channel = channel
        self._unlisten: Optional[Unlisten] = None

    @property
    def is_listening(self) -> bool:
        return self._unlisten is not None

    def start(self) -> bool:
        """Subscribe, replacing any previous subscription.

        Returns False when the subscription could not be set up; compression
        then runs on simulated progress alone.
        """

        self.stop()
        try:
            self._unlisten = self._subscribe()
        except ListenerSetupFailure as exc:
            logger.error("progress_listener_setup_failed", error=str(exc))
            return False

        logger.info("progress_listener_started", channel_event=COMPRESSION_PROGRESS_EVENT)
        return True

    def stop(self) -> None:
        if self._unlisten is None:
            return
        self._unlisten()
        self._unlisten = None
        logger.info("progress_listener_stopped", channel_event=COMPRESSION_PROGRESS_EVENT)

    def handle_event(self, payload: Dict[str, Any]) -> None:
        try:
            event = CompressionProgressEvent.model_validate(payload)
        except ValidationError as exc:
            logger.warning("progress_event_invalid", error=str(exc))
            return

        updated = self._store.update_progress(event.image_id, event.percent)
        if updated is None:
            logger.debug("progress_event_unknown_image", image_id=event.image_id)
            return

        if event.stage == ProcessingStage.complete:
            logger.debug("backend_compression_complete", image_id=event.image_id)
        elif event.stage == ProcessingStage.error:
            logger.warning("backend_compression_error", image_id=event.image_id, image_name=event.image_name)
            self._store.mark_error(event.image_id)

    def _subscribe(self) -> Unlisten:
        try:
            return self._channel.listen(COMPRESSION_PROGRESS_EVENT, self.handle_event)
        except Exception as exc:
            raise ListenerSetupFailure(f"Unable to listen for {COMPRESSION_PROGRESS_EVENT}: {exc}") from exc
