"""
Image helpers used before handing images to a recognition backend
"""
import base64
import binascii
import io
from typing import Iterable, Optional

import numpy as np
from PIL import Image

from utp.core.exceptions import ImageValidationError
from utp.core.enums import ImageFormat


def decode_base64_image(base64_string: str) -> bytes:
    """
    Decode a base64 string into image bytes

    Args:
        base64_string: Image in base64, optionally with a data URI prefix

    Returns:
        Decoded image bytes

    Raises:
        ImageValidationError: If the string cannot be decoded
    """
    # strip data:image/...;base64, prefix
    if "base64," in base64_string:
        base64_string = base64_string.split("base64,", 1)[1]

    try:
        image_bytes = base64.b64decode(base64_string, validate=True)
    except (binascii.Error, ValueError) as e:
        raise ImageValidationError(
            f"Failed to decode base64 image: {str(e)}",
            details={"error": str(e)}
        )

    if not image_bytes:
        raise ImageValidationError("Decoded image is empty")

    return image_bytes


def validate_image_format(
    image_bytes: bytes,
    allowed_formats: Optional[Iterable[str]] = None
) -> ImageFormat:
    """
    Check the image format

    Args:
        image_bytes: Image bytes
        allowed_formats: Accepted format names (all known formats if None)

    Returns:
        Detected image format

    Raises:
        ImageValidationError: If the format is not supported
    """
    allowed = {fmt.lower() for fmt in allowed_formats} if allowed_formats else None

    try:
        with Image.open(io.BytesIO(image_bytes)) as img:
            format_lower = img.format.lower() if img.format else "unknown"
    except Exception as e:
        raise ImageValidationError(
            f"Failed to validate image format: {str(e)}",
            details={"error": str(e)}
        )

    try:
        image_format = ImageFormat(format_lower)
    except ValueError:
        image_format = None

    if image_format is None or (allowed is not None and format_lower not in allowed):
        raise ImageValidationError(
            f"Unsupported image format: {format_lower}",
            details={
                "format": format_lower,
                "supported_formats": sorted(allowed) if allowed else [f.value for f in ImageFormat]
            }
        )

    return image_format


def validate_image_size(image_bytes: bytes, max_size_mb: int = 10) -> None:
    """
    Check the image size

    Args:
        image_bytes: Image bytes
        max_size_mb: Maximum size in megabytes

    Raises:
        ImageValidationError: If the size is exceeded
    """
    size_mb = len(image_bytes) / (1024 * 1024)

    if size_mb > max_size_mb:
        raise ImageValidationError(
            f"Image size {size_mb:.2f}MB exceeds maximum {max_size_mb}MB",
            details={
                "size_mb": round(size_mb, 2),
                "max_size_mb": max_size_mb
            }
        )


def bytes_to_numpy(image_bytes: bytes) -> np.ndarray:
    """
    Convert image bytes into an RGB numpy array for local recognition

    Raises:
        ImageValidationError: If the image cannot be converted
    """
    try:
        with Image.open(io.BytesIO(image_bytes)) as img:
            if img.mode != 'RGB':
                img = img.convert('RGB')
            return np.array(img)

    except Exception as e:
        raise ImageValidationError(
            f"Failed to convert image to numpy array: {str(e)}",
            details={"error": str(e)}
        )
