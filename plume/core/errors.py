"""Error types raised across the compression pipeline."""

from __future__ import annotations


class PlumeError(RuntimeError):
    """Base class for orchestrator failures."""


class InvalidTransitionError(PlumeError):
    """An image record was asked to move to a state its current status forbids."""

    def __init__(self, image_id: str, current: str, operation: str) -> None:
        super().__init__(f"Cannot apply {operation} to image {image_id} in status '{current}'")
        self.image_id = image_id
        self.current = current
        self.operation = operation


class FileInfoUnavailable(PlumeError):
    """File metadata could not be fetched. Intake continues with a zero size."""


class CompressionBackendError(PlumeError):
    """The backend answered with an explicit error."""


class CompressionInvocationFailure(PlumeError):
    """The compression command itself failed (transport, status or decoding)."""


class TelemetryPrimaryFailure(PlumeError):
    """Recording a result with timing failed."""


class TelemetryFallbackFailure(PlumeError):
    """Recording a result without timing failed."""


class ListenerSetupFailure(PlumeError):
    """Subscribing to the progress channel failed."""
