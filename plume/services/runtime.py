"""Wires the compression collaborators together for one process."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Optional, Set

from plume.core.logging import get_logger
from plume.services.backend_client import CompressionBackend, HttpCompressionBackend
from plume.services.event_bridge import BackendEventBridge
from plume.services.image_store import ImageStore
from plume.services.intake import ImageIntake
from plume.services.notifications import NotificationCenter
from plume.services.orchestrator import CompressionOrchestrator
from plume.services.progress_channel import ProgressChannel
from plume.services.progress_estimator import ProgressEstimator

logger = get_logger(__name__)


@dataclass
class CompressionRuntime:
    store: ImageStore
    backend: CompressionBackend
    channel: ProgressChannel
    estimator: ProgressEstimator
    notifier: NotificationCenter
    bridge: BackendEventBridge
    intake: ImageIntake
    orchestrator: CompressionOrchestrator
    _tasks: Set[asyncio.Task] = field(default_factory=set)

    @classmethod
    def build(
        cls,
        backend: Optional[CompressionBackend] = None,
        store: Optional[ImageStore] = None,
        estimator: Optional[ProgressEstimator] = None,
    ) -> "CompressionRuntime":
        store = store or ImageStore()
        backend = backend or HttpCompressionBackend()
        channel = ProgressChannel()
        estimator = estimator or ProgressEstimator()
        notifier = NotificationCenter()
        return cls(
            store=store,
            backend=backend,
            channel=channel,
            estimator=estimator,
            notifier=notifier,
            bridge=BackendEventBridge(store, channel),
            intake=ImageIntake(store, backend, notifier),
            orchestrator=CompressionOrchestrator(store, backend, estimator, notifier),
        )

    def start(self) -> None:
        """Subscribe to backend progress events."""

        self.bridge.start()

    async def shutdown(self) -> None:
        """Release the subscription, stop simulated progress and close the backend client."""

        self.orchestrator.request_stop()
        for task in list(self._tasks):
            # In-flight backend calls cannot be cancelled; the run ends after the current image.
            await asyncio.gather(task, return_exceptions=True)
        self.bridge.stop()
        self.estimator.cancel_all()
        self.channel.close()
        await self.backend.aclose()
        logger.info("compression_runtime_stopped")

    def start_compression(self, image_id: Optional[str] = None) -> bool:
        """Launch a run in the background.

        The guard is taken before the task is spawned, so the return value says
        whether a run really started. False means a run is already active or
        there is nothing to compress.
        """

        if image_id is None:
            snapshot = self.orchestrator.claim_run()
        else:
            snapshot = self.orchestrator.claim_image(image_id)
        if snapshot is None:
            return False
        task = asyncio.get_running_loop().create_task(self.orchestrator.drive(snapshot))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return True

    def clear_images(self) -> None:
        self.estimator.cancel_all()
        self.store.clear()

    def remove_image(self, image_id: str) -> bool:
        self.estimator.cancel(image_id)
        return self.store.remove(image_id)
