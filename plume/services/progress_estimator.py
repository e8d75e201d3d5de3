"""Client-side progress simulation for images being compressed.

The backend does not reliably report fine-grained progress for small or fast
jobs, so each image gets a simulated ramp while its compression call is in
flight. The ramp approaches but never reaches 100; only an explicit completion
emits 100. Backend events written through the event bridge overwrite the same
progress field.
"""

from __future__ import annotations

import asyncio
import math
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, List, Optional

from plume.core.config import settings
from plume.core.logging import get_logger
from plume.models.compression import WireFormat
from plume.models.image import ImageFormat

logger = get_logger(__name__)

RAMP_CEILING = 99
RAMP_STEEPNESS = 3.0

ENCODER_COST = {
    WireFormat.webp: 1.0,
    WireFormat.jpeg: 0.6,
    WireFormat.png: 0.4,
}

SOURCE_ENCODER = {
    ImageFormat.webp: WireFormat.webp,
    ImageFormat.jpeg: WireFormat.jpeg,
    ImageFormat.png: WireFormat.png,
}


class SessionStatus(str, Enum):
    running = "running"
    completed = "completed"
    errored = "errored"


@dataclass
class ProgressCallbacks:
    """Listeners notified by a progress session."""

    on_progress: Callable[[str, int], None]
    on_complete: Optional[Callable[[str], None]] = None
    on_error: Optional[Callable[[str, str], None]] = None


@dataclass
class ProgressSession:
    image_id: str
    started_at: float
    estimated_duration: float
    callbacks: ProgressCallbacks
    status: SessionStatus = SessionStatus.running
    last_progress: int = 0
    task: Optional[asyncio.Task] = None


def format_cost(source_format: ImageFormat, target_format: WireFormat, quality: int) -> float:
    """Relative amount of work implied by a source/target format pair.

    A lossless pass over the same container is cheapest; decoding HEIC,
    changing container and lossy re-encoding each add to it.
    """

    if target_format == WireFormat.auto:
        encoder = SOURCE_ENCODER.get(source_format, WireFormat.jpeg)
        transcoding = False
    else:
        encoder = target_format
        transcoding = SOURCE_ENCODER.get(source_format) != target_format

    cost = 1.0 + ENCODER_COST[encoder]
    if transcoding:
        cost += 1.0
    if source_format == ImageFormat.heic:
        cost += 1.5
    if quality < 100 and encoder != WireFormat.png:
        cost += 0.5
    return cost


def estimate_duration(
    source_format: ImageFormat,
    target_format: WireFormat,
    size_bytes: int,
    quality: int,
    *,
    seconds_per_mb: float,
    minimum: float,
    maximum: float,
) -> float:
    """Estimate how long a compression will take, in seconds."""

    size_mb = max(size_bytes, 0) / (1024 * 1024)
    duration = minimum + size_mb * seconds_per_mb * format_cost(source_format, target_format, quality)
    return max(minimum, min(maximum, duration))


def ramp_progress(elapsed: float, duration: float) -> int:
    """Progress along the simulated ramp; strictly below 100 for any elapsed time."""

    if elapsed <= 0 or duration <= 0:
        return 0
    value = RAMP_CEILING * (1 - math.exp(-RAMP_STEEPNESS * elapsed / duration))
    return min(RAMP_CEILING, int(math.floor(value)))


class ProgressEstimator:
    """Runs one simulated progress session per image on the event loop."""

    def __init__(
        self,
        tick_interval: Optional[float] = None,
        seconds_per_mb: Optional[float] = None,
        min_duration: Optional[float] = None,
        max_duration: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._tick_interval = tick_interval if tick_interval is not None else settings.progress_tick_seconds
        self._seconds_per_mb = seconds_per_mb if seconds_per_mb is not None else settings.progress_seconds_per_mb
        self._min_duration = min_duration if min_duration is not None else settings.progress_min_duration_seconds
        self._max_duration = max_duration if max_duration is not None else settings.progress_max_duration_seconds
        self._clock = clock
        self._sessions: Dict[str, ProgressSession] = {}

    def start_smart_progress(
        self,
        image_id: str,
        source_format: ImageFormat,
        target_format: WireFormat,
        size_bytes: int,
        quality: int,
        callbacks: ProgressCallbacks,
    ) -> ProgressSession:
        """Start ticking a simulated ramp for an image.

        An existing session for the same id is discarded without firing any of
        its callbacks. Must be called from a running event loop.
        """

        self.cancel(image_id)

        duration = estimate_duration(
            source_format,
            target_format,
            size_bytes,
            quality,
            seconds_per_mb=self._seconds_per_mb,
            minimum=self._min_duration,
            maximum=self._max_duration,
        )
        session = ProgressSession(
            image_id=image_id,
            started_at=self._clock(),
            estimated_duration=duration,
            callbacks=callbacks,
        )
        session.task = asyncio.get_running_loop().create_task(self._tick(session))
        self._sessions[image_id] = session

        logger.debug(
            "progress_session_started",
            image_id=image_id,
            source_format=source_format.value,
            target_format=target_format.value,
            estimated_duration=round(duration, 3),
        )
        return session

    def complete_image_progress(self, image_id: str) -> None:
        """Jump the session to 100, fire its completion callback and dispose it."""

        session = self._sessions.pop(image_id, None)
        if session is None:
            return

        self._halt(session, SessionStatus.completed)
        session.last_progress = 100
        session.callbacks.on_progress(image_id, 100)
        if session.callbacks.on_complete:
            session.callbacks.on_complete(image_id)

    def error_image_progress(self, image_id: str, message: str) -> None:
        """Stop the session, fire its error callback and dispose it."""

        session = self._sessions.pop(image_id, None)
        if session is None:
            return

        self._halt(session, SessionStatus.errored)
        if session.callbacks.on_error:
            session.callbacks.on_error(image_id, message)

    def cancel(self, image_id: str) -> bool:
        """Dispose a session silently. Returns whether one existed."""

        session = self._sessions.pop(image_id, None)
        if session is None:
            return False
        self._halt(session, session.status)
        logger.debug("progress_session_discarded", image_id=image_id)
        return True

    def cancel_all(self) -> None:
        for image_id in list(self._sessions):
            self.cancel(image_id)

    def active_sessions(self) -> List[str]:
        return list(self._sessions)

    def get_session(self, image_id: str) -> Optional[ProgressSession]:
        return self._sessions.get(image_id)

    def progress_at(self, session: ProgressSession, now: float) -> int:
        return ramp_progress(now - session.started_at, session.estimated_duration)

    def _halt(self, session: ProgressSession, status: SessionStatus) -> None:
        session.status = status
        if session.task is not None and not session.task.done():
            session.task.cancel()

    async def _tick(self, session: ProgressSession) -> None:
        try:
            while session.status == SessionStatus.running:
                await asyncio.sleep(self._tick_interval)
                if session.status != SessionStatus.running:
                    return
                value = self.progress_at(session, self._clock())
                if value > session.last_progress:
                    session.last_progress = value
                    session.callbacks.on_progress(session.image_id, value)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            logger.exception("progress_tick_failed", image_id=session.image_id, error=str(exc))
            if self._sessions.get(session.image_id) is session:
                del self._sessions[session.image_id]
