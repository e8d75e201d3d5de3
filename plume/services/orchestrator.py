"""Sequential compression loop over the pending images."""

from __future__ import annotations

import time
from typing import Optional, Tuple

from plume.core.config import settings
from plume.core.errors import CompressionBackendError
from plume.core.logging import get_logger
from plume.models.backend import CompressImageRequest, CompressionOutput, CompressionRecord
from plume.models.compression import CompressionParams
from plume.models.image import ImageRecord
from plume.services.backend_client import CompressionBackend
from plume.services.image_store import ImageStore
from plume.services.notifications import NotificationCenter
from plume.services.progress_estimator import ProgressCallbacks, ProgressEstimator
from plume.services.settings_resolver import resolve_compression_params, telemetry_output_format

logger = get_logger(__name__)


class CompressionOrchestrator:
    """Drives pending images through the backend one at a time.

    The backend is treated as a single non-reentrant worker: each image's
    compress call is awaited before the next image starts. A run works on the
    images that were pending when it started; images added meanwhile wait for
    the next run.
    """

    def __init__(
        self,
        store: ImageStore,
        backend: CompressionBackend,
        estimator: ProgressEstimator,
        notifier: NotificationCenter,
        tool_version: str | None = None,
    ) -> None:
        self._store = store
        self._backend = backend
        self._estimator = estimator
        self._notifier = notifier
        self._tool_version = tool_version or settings.tool_version
        self._stopping = False

    @property
    def stopping(self) -> bool:
        return self._stopping

    def request_stop(self) -> None:
        """Finish the image in flight, then end the run. No new runs are claimed afterwards."""

        self._stopping = True

    def claim_run(self) -> Optional[Tuple[ImageRecord, ...]]:
        """Take the run guard and the pending snapshot without yielding to the loop.

        Returns None when a run is already active, nothing is pending or a stop
        was requested.
        """

        if self._stopping:
            logger.debug("compression_run_skipped", reason="stopping")
            return None
        if self._store.is_processing:
            logger.debug("compression_run_skipped", reason="already_running")
            return None

        snapshot = self._store.pending_snapshot()
        if not snapshot:
            logger.debug("compression_run_skipped", reason="no_pending_images")
            return None

        if not self._store.try_begin_run():
            return None
        return snapshot

    async def run(self) -> None:
        """Compress every currently pending image. A no-op while a run is active."""

        snapshot = self.claim_run()
        if snapshot is not None:
            await self.drive(snapshot)

    async def drive(self, snapshot: Tuple[ImageRecord, ...]) -> None:
        """Process a snapshot claimed with `claim_run`, releasing the guard at the end."""

        logger.info("compression_run_started", pending=len(snapshot))
        try:
            for image in snapshot:
                if self._stopping:
                    self._store.abandon_run()
                    logger.info("compression_run_stopped", stats=self._summary())
                    return
                try:
                    await self._process(image)
                except Exception as exc:
                    logger.exception("compression_job_crashed", image_id=image.id, error=str(exc))
                    self._store.mark_error(image.id)

            self._store.complete_run()
            logger.info("compression_run_finished", stats=self._summary())
        finally:
            self._store.release_run()

    def claim_image(self, image_id: str) -> Optional[Tuple[ImageRecord, ...]]:
        """Claim a run on behalf of one image, if that image is pending."""

        image = self._store.get(image_id)
        if image is None or not image.is_pending():
            return None
        return self.claim_run()

    async def compress_image(self, image_id: str) -> None:
        """Compress a single image by running the loop, if that image is pending."""

        snapshot = self.claim_image(image_id)
        if snapshot is not None:
            await self.drive(snapshot)

    def reset_processing_images(self) -> int:
        """Recover images left in processing back to pending."""

        for image in self._store.images:
            if image.is_processing():
                self._estimator.cancel(image.id)
        reset = self._store.reset_processing()
        logger.info("processing_images_reset", count=reset)
        return reset

    async def _process(self, image: ImageRecord) -> None:
        if self._store.begin_processing(image.id, 0) is None:
            logger.info("compression_job_skipped", image_id=image.id, reason="not_pending")
            return

        current = self._store.settings
        params = resolve_compression_params(current.output_format, current.compression_level, image.format)

        self._estimator.start_smart_progress(
            image.id,
            image.format,
            params.format,
            image.original_size,
            params.quality,
            self._progress_callbacks(),
        )

        request = CompressImageRequest(
            file_path=image.path,
            quality=params.quality,
            format=params.format,
            lossy=params.lossy,
        )
        logger.info(
            "compression_job_started",
            image_id=image.id,
            image_name=image.name,
            quality=params.quality,
            format=params.format.value,
            lossy=params.lossy,
        )

        started = time.perf_counter()
        try:
            response = await self._backend.compress_image(request, image.id)
            if not response.succeeded:
                raise CompressionBackendError(response.error or "Compression failed")
        except Exception as exc:
            self._fail(image, str(exc))
            return

        elapsed_ms = int((time.perf_counter() - started) * 1000)
        self._estimator.complete_image_progress(image.id)
        self._store.mark_completed(image.id, response.result.compressed_size, response.result.output_path)
        logger.info(
            "compression_job_completed",
            image_id=image.id,
            compressed_size=response.result.compressed_size,
            elapsed_ms=elapsed_ms,
        )

        await self._record_result(image, params, response.result, elapsed_ms)

    def _fail(self, image: ImageRecord, message: str) -> None:
        logger.warning("compression_job_failed", image_id=image.id, image_name=image.name, error=message)
        self._estimator.error_image_progress(image.id, message)
        self._store.mark_error(image.id)
        self._notifier.error(f"Compression failed for {image.name}: {message}")

    async def _record_result(
        self,
        image: ImageRecord,
        params: CompressionParams,
        output: CompressionOutput,
        elapsed_ms: int,
    ) -> None:
        """Record telemetry with timing, falling back once to the untimed command."""

        record = CompressionRecord(
            input_format=image.format.value,
            output_format=telemetry_output_format(params, image.format),
            original_size=image.original_size,
            compressed_size=output.compressed_size,
            compression_time_ms=elapsed_ms,
            tool_version=self._tool_version,
        )

        try:
            await self._backend.record_compression_result_with_time(record)
            logger.debug(
                "compression_result_recorded",
                image_id=image.id,
                input_format=record.input_format,
                output_format=record.output_format,
                compression_time_ms=elapsed_ms,
            )
            return
        except Exception as exc:
            logger.warning("compression_result_record_failed", image_id=image.id, error=str(exc))

        try:
            await self._backend.record_compression_result(record.model_copy(update={"compression_time_ms": None}))
        except Exception as exc:
            logger.warning("compression_result_fallback_failed", image_id=image.id, error=str(exc))

    def _progress_callbacks(self) -> ProgressCallbacks:
        def on_progress(image_id: str, progress: int) -> None:
            self._store.update_progress(image_id, progress)

        def on_complete(image_id: str) -> None:
            logger.debug("progress_session_completed", image_id=image_id)

        def on_error(image_id: str, message: str) -> None:
            logger.debug("progress_session_errored", image_id=image_id, error=message)

        return ProgressCallbacks(on_progress=on_progress, on_complete=on_complete, on_error=on_error)

    def _summary(self) -> dict:
        counts: dict = {}
        for image in self._store.images:
            counts[image.status.value] = counts.get(image.status.value, 0) + 1
        return counts
