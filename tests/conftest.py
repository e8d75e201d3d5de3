from __future__ import annotations

from typing import Awaitable, Callable, Dict, List, Optional, Tuple, Union

import pytest

from plume.core.errors import FileInfoUnavailable, TelemetryFallbackFailure, TelemetryPrimaryFailure
from plume.models.backend import (
    CompressImageRequest,
    CompressImageResponse,
    CompressionOutput,
    CompressionRecord,
    FileInformation,
)
from plume.services.event_bridge import BackendEventBridge
from plume.services.image_store import ImageStore
from plume.services.intake import ImageIntake
from plume.services.notifications import NotificationCenter
from plume.services.orchestrator import CompressionOrchestrator
from plume.services.progress_channel import ProgressChannel
from plume.services.progress_estimator import ProgressEstimator

Outcome = Union[CompressImageResponse, Exception]
CompressHook = Callable[[str, CompressImageRequest], Awaitable[None]]


class FakeBackend:
    """In-memory stand-in for the native compression backend."""

    def __init__(self) -> None:
        self.sizes: Dict[str, int] = {}
        self.missing: set[str] = set()
        self.outcomes: Dict[str, Outcome] = {}
        self.compress_calls: List[Tuple[str, CompressImageRequest]] = []
        self.on_compress: Optional[CompressHook] = None
        self.primary_records: List[CompressionRecord] = []
        self.fallback_records: List[CompressionRecord] = []
        self.fail_primary = False
        self.fail_fallback = False
        self.closed = False

    async def get_file_information(self, file_path: str) -> FileInformation:
        if file_path in self.missing:
            raise FileInfoUnavailable(f"No such file: {file_path}")
        return FileInformation(size=self.sizes.get(file_path, 1000))

    async def compress_image(self, request: CompressImageRequest, image_id: str) -> CompressImageResponse:
        self.compress_calls.append((image_id, request))
        if self.on_compress is not None:
            await self.on_compress(image_id, request)

        outcome = self.outcomes.get(request.file_path)
        if isinstance(outcome, Exception):
            raise outcome
        if outcome is not None:
            return outcome
        return CompressImageResponse(
            success=True,
            result=CompressionOutput(compressed_size=500, output_path=f"{request.file_path}.min"),
        )

    async def record_compression_result_with_time(self, record: CompressionRecord) -> None:
        self.primary_records.append(record)
        if self.fail_primary:
            raise TelemetryPrimaryFailure("database locked")

    async def record_compression_result(self, record: CompressionRecord) -> None:
        self.fallback_records.append(record)
        if self.fail_fallback:
            raise TelemetryFallbackFailure("database locked")

    async def aclose(self) -> None:
        self.closed = True


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def store() -> ImageStore:
    return ImageStore()


@pytest.fixture
def notifier() -> NotificationCenter:
    return NotificationCenter(history=50)


@pytest.fixture
def estimator() -> ProgressEstimator:
    return ProgressEstimator(tick_interval=0.005, seconds_per_mb=0.1, min_duration=0.05, max_duration=0.2)


@pytest.fixture
def channel() -> ProgressChannel:
    return ProgressChannel()


@pytest.fixture
def bridge(store: ImageStore, channel: ProgressChannel) -> BackendEventBridge:
    return BackendEventBridge(store, channel)


@pytest.fixture
def intake(store: ImageStore, backend: FakeBackend, notifier: NotificationCenter) -> ImageIntake:
    return ImageIntake(store, backend, notifier)


@pytest.fixture
def orchestrator(
    store: ImageStore,
    backend: FakeBackend,
    estimator: ProgressEstimator,
    notifier: NotificationCenter,
) -> CompressionOrchestrator:
    return CompressionOrchestrator(store, backend, estimator, notifier, tool_version="plume-test")
