"""Routes receiving backend events and exposing notifications."""

from __future__ import annotations

from typing import Any, Dict, List

from fastapi import APIRouter, Body, Depends, Query, status

from plume.api.dependencies import get_auth_dependency, get_runtime
from plume.services.notifications import Notification
from plume.services.progress_channel import COMPRESSION_PROGRESS_EVENT
from plume.services.runtime import CompressionRuntime

router = APIRouter(tags=["events"], dependencies=[Depends(get_auth_dependency)])


@router.post(
    "/events/compression-progress",
    status_code=status.HTTP_202_ACCEPTED,
    summary="Publish a backend progress event",
)
async def publish_progress(
    payload: Dict[str, Any] = Body(...),
    runtime: CompressionRuntime = Depends(get_runtime),
) -> dict:
    """Forward a progress event to every listener of the progress channel."""

    delivered = runtime.channel.emit(COMPRESSION_PROGRESS_EVENT, payload)
    return {"delivered": delivered}


@router.get("/notifications", response_model=List[Notification], summary="Recent notifications")
async def list_notifications(
    limit: int | None = Query(default=None, ge=0),
    runtime: CompressionRuntime = Depends(get_runtime),
) -> List[Notification]:
    return runtime.notifier.recent(limit)
