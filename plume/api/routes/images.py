"""Routes for managing the image collection."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status

from plume.api.dependencies import get_auth_dependency, get_runtime
from plume.models.api import AddImagesRequest, AddImagesResponse, ImageCollectionResponse
from plume.models.image import ImageRecord
from plume.services.image_store import compute_stats, current_view
from plume.services.runtime import CompressionRuntime

router = APIRouter(prefix="/images", tags=["images"], dependencies=[Depends(get_auth_dependency)])


def _collection(runtime: CompressionRuntime) -> ImageCollectionResponse:
    store = runtime.store
    images = store.images
    state = store.compression_state
    return ImageCollectionResponse(
        images=list(images),
        stats=compute_stats(images),
        view=current_view(images, state),
        compression_state=state,
        is_processing=store.is_processing,
    )


@router.get("", response_model=ImageCollectionResponse, summary="List images")
async def list_images(runtime: CompressionRuntime = Depends(get_runtime)) -> ImageCollectionResponse:
    """Return every image with aggregate counters and the current view."""

    return _collection(runtime)


@router.post(
    "",
    response_model=AddImagesResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Add images from a file selection",
)
async def add_images(
    payload: AddImagesRequest,
    runtime: CompressionRuntime = Depends(get_runtime),
) -> AddImagesResponse:
    added = await runtime.intake.add_images(payload.paths)
    return AddImagesResponse(added=added)


@router.post(
    "/drop",
    response_model=AddImagesResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Add images dropped onto the window",
)
async def drop_images(
    payload: AddImagesRequest,
    runtime: CompressionRuntime = Depends(get_runtime),
) -> AddImagesResponse:
    added = await runtime.intake.handle_external_drop(payload.paths)
    return AddImagesResponse(added=added)


@router.post("/reset", response_model=ImageCollectionResponse, summary="Recover images stuck in processing")
async def reset_images(runtime: CompressionRuntime = Depends(get_runtime)) -> ImageCollectionResponse:
    runtime.orchestrator.reset_processing_images()
    return _collection(runtime)


@router.get("/{image_id}", response_model=ImageRecord, summary="Retrieve one image")
async def get_image(image_id: str, runtime: CompressionRuntime = Depends(get_runtime)) -> ImageRecord:
    image = runtime.store.get(image_id)
    if image is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Image not found")
    return image


@router.post(
    "/{image_id}/compress",
    status_code=status.HTTP_202_ACCEPTED,
    summary="Compress a single pending image",
)
async def compress_image(image_id: str, runtime: CompressionRuntime = Depends(get_runtime)) -> dict:
    image = runtime.store.get(image_id)
    if image is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Image not found")
    if not image.is_pending():
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=f"Image is {image.status.value}")

    started = runtime.start_compression(image_id)
    return {"image_id": image_id, "started": started}


@router.delete("/{image_id}", status_code=status.HTTP_204_NO_CONTENT, summary="Remove an image")
async def remove_image(image_id: str, runtime: CompressionRuntime = Depends(get_runtime)) -> None:
    """Remove an image at any time, including while it is being compressed."""

    if not runtime.remove_image(image_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Image not found")


@router.delete("", status_code=status.HTTP_204_NO_CONTENT, summary="Remove every image")
async def clear_images(runtime: CompressionRuntime = Depends(get_runtime)) -> None:
    runtime.clear_images()
