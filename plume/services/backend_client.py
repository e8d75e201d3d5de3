"""Command client for the native compression backend."""

from __future__ import annotations

from typing import Any, Dict, Optional, Protocol

import httpx
from pydantic import ValidationError

from plume.core.config import settings
from plume.core.errors import (
    CompressionInvocationFailure,
    FileInfoUnavailable,
    PlumeError,
    TelemetryFallbackFailure,
    TelemetryPrimaryFailure,
)
from plume.core.logging import get_logger
from plume.models.backend import (
    CompressImageRequest,
    CompressImageResponse,
    CompressionRecord,
    FileInformation,
)

logger = get_logger(__name__)


class CompressionBackend(Protocol):
    """Commands the orchestrator issues to the backend."""

    async def get_file_information(self, file_path: str) -> FileInformation: ...

    async def compress_image(self, request: CompressImageRequest, image_id: str) -> CompressImageResponse: ...

    async def record_compression_result_with_time(self, record: CompressionRecord) -> None: ...

    async def record_compression_result(self, record: CompressionRecord) -> None: ...

    async def aclose(self) -> None: ...


class HttpCompressionBackend:
    """Invokes backend commands as `POST /commands/<name>` JSON calls."""

    def __init__(self, client: httpx.AsyncClient | None = None) -> None:
        self._client = client or httpx.AsyncClient(
            base_url=settings.backend_base_url,
            timeout=settings.backend_timeout_seconds,
        )

    async def get_file_information(self, file_path: str) -> FileInformation:
        try:
            data = await self._invoke("get_file_information", {"file_path": file_path})
            return FileInformation.model_validate(data)
        except (PlumeError, ValidationError) as exc:
            raise FileInfoUnavailable(f"File information unavailable for {file_path}: {exc}") from exc

    async def compress_image(self, request: CompressImageRequest, image_id: str) -> CompressImageResponse:
        data = await self._invoke(
            "compress_image",
            {"request": request.model_dump(mode="json"), "image_id": image_id},
        )
        try:
            return CompressImageResponse.model_validate(data)
        except ValidationError as exc:
            raise CompressionInvocationFailure(f"Malformed compress_image response: {exc}") from exc

    async def record_compression_result_with_time(self, record: CompressionRecord) -> None:
        payload = record.model_dump(mode="json")
        try:
            await self._invoke("record_compression_result_with_time", payload)
        except PlumeError as exc:
            raise TelemetryPrimaryFailure(str(exc)) from exc

    async def record_compression_result(self, record: CompressionRecord) -> None:
        payload = record.model_dump(mode="json", exclude={"compression_time_ms"})
        try:
            await self._invoke("record_compression_result", payload)
        except PlumeError as exc:
            raise TelemetryFallbackFailure(str(exc)) from exc

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _invoke(self, command: str, payload: Dict[str, Any]) -> Optional[Any]:
        """Send a command and return its decoded JSON body."""

        try:
            response = await self._client.post(f"/commands/{command}", json=payload)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            logger.warning("backend_command_rejected", command=command, status=exc.response.status_code)
            raise CompressionInvocationFailure(
                f"{command} failed with HTTP {exc.response.status_code}: {exc.response.text}"
            ) from exc
        except httpx.HTTPError as exc:
            logger.warning("backend_command_unreachable", command=command, error=str(exc))
            raise CompressionInvocationFailure(f"{command} failed: {exc}") from exc

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as exc:
            raise CompressionInvocationFailure(f"{command} returned invalid JSON") from exc
