"""Translate a user preset into backend compression parameters."""

from __future__ import annotations

from typing import Dict

from plume.models.compression import CompressionLevel, CompressionParams, OutputFormat, WireFormat
from plume.models.image import ImageFormat

WEBP_QUALITY: Dict[CompressionLevel, int] = {
    CompressionLevel.light: 100,
    CompressionLevel.balanced: 80,
    CompressionLevel.aggressive: 60,
}

JPEG_QUALITY: Dict[CompressionLevel, int] = {
    CompressionLevel.light: 92,
    CompressionLevel.balanced: 80,
    CompressionLevel.aggressive: 60,
}


def effective_format(output_format: OutputFormat, source_format: ImageFormat) -> WireFormat:
    """Return the format the backend should target for this preset and source."""

    if output_format == OutputFormat.keep:
        # HEIC cannot be written back; keeping it means transcoding to JPEG.
        return WireFormat.jpeg if source_format == ImageFormat.heic else WireFormat.auto
    return WireFormat(output_format.value)


def _webp_params(level: CompressionLevel, wire_format: WireFormat) -> CompressionParams:
    return CompressionParams(
        quality=WEBP_QUALITY[level],
        format=wire_format,
        lossy=level != CompressionLevel.light,
    )


def _jpeg_params(level: CompressionLevel, wire_format: WireFormat) -> CompressionParams:
    return CompressionParams(quality=JPEG_QUALITY[level], format=wire_format, lossy=True)


def resolve_compression_params(
    output_format: OutputFormat,
    level: CompressionLevel,
    source_format: ImageFormat,
) -> CompressionParams:
    """Resolve (output format, level, source format) into wire parameters.

    Pure and deterministic. PNG output is always lossless at quality 100, and
    keeping the original format adapts quality to the source (WebP and JPEG
    follow their own rules; anything else is optimised losslessly).
    """

    target = effective_format(output_format, source_format)

    if target == WireFormat.webp:
        return _webp_params(level, WireFormat.webp)
    if target == WireFormat.jpeg:
        return _jpeg_params(level, WireFormat.jpeg)
    if target == WireFormat.png:
        return CompressionParams(quality=100, format=WireFormat.png, lossy=False)

    if source_format == ImageFormat.webp:
        return _webp_params(level, WireFormat.auto)
    if source_format == ImageFormat.jpeg:
        return _jpeg_params(level, WireFormat.auto)
    return CompressionParams(quality=100, format=WireFormat.auto, lossy=False)


def telemetry_output_format(params: CompressionParams, source_format: ImageFormat) -> str:
    """Name the format actually produced, for telemetry records."""

    if params.format == WireFormat.auto:
        return source_format.value
    return params.format.value.upper()
