"""Routes for running compression and adjusting the preset."""

from __future__ import annotations

from fastapi import APIRouter, Depends, status

from plume.api.dependencies import get_auth_dependency, get_runtime
from plume.models.api import CompressionStatusResponse, StartCompressionResponse
from plume.models.compression import CompressionSettings, CompressionSettingsUpdate
from plume.services.image_store import compute_stats
from plume.services.runtime import CompressionRuntime

router = APIRouter(prefix="/compression", tags=["compression"], dependencies=[Depends(get_auth_dependency)])


@router.post(
    "/start",
    response_model=StartCompressionResponse,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Compress every pending image",
)
async def start_compression(runtime: CompressionRuntime = Depends(get_runtime)) -> StartCompressionResponse:
    """Start a run in the background; a run already in progress is left alone."""

    started = runtime.start_compression()
    return StartCompressionResponse(started=started, compression_state=runtime.store.compression_state)


@router.get("", response_model=CompressionStatusResponse, summary="Retrieve batch status")
async def get_compression_status(runtime: CompressionRuntime = Depends(get_runtime)) -> CompressionStatusResponse:
    store = runtime.store
    return CompressionStatusResponse(
        compression_state=store.compression_state,
        is_processing=store.is_processing,
        settings=store.settings,
        stats=compute_stats(store.images),
    )


@router.get("/settings", response_model=CompressionSettings, summary="Retrieve the compression preset")
async def get_settings(runtime: CompressionRuntime = Depends(get_runtime)) -> CompressionSettings:
    return runtime.store.settings


@router.patch("/settings", response_model=CompressionSettings, summary="Update the compression preset")
async def update_settings(
    payload: CompressionSettingsUpdate,
    runtime: CompressionRuntime = Depends(get_runtime),
) -> CompressionSettings:
    """Apply a partial preset update. Images already being compressed keep their parameters."""

    return runtime.store.update_settings(payload)
