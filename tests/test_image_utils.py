"""Unit tests for utp.utils.image_utils."""

import base64

import pytest

from utp.core.enums import ImageFormat
from utp.core.exceptions import ImageValidationError
from utp.utils.image_utils import (
    bytes_to_numpy,
    decode_base64_image,
    validate_image_format,
    validate_image_size,
)

from conftest import make_png


class TestDecodeBase64Image:
    """Tests for decode_base64_image."""

    def test_plain_base64(self, png_bytes):
        encoded = base64.b64encode(png_bytes).decode()
        assert decode_base64_image(encoded) == png_bytes

    def test_data_uri_prefix(self, png_bytes):
        encoded = "data:image/png;base64," + base64.b64encode(png_bytes).decode()
        assert decode_base64_image(encoded) == png_bytes

    def test_invalid_base64(self):
        with pytest.raises(ImageValidationError):
            decode_base64_image("not base64 at all!")


class TestValidation:
    """Tests for format and size validation."""

    def test_png_detected(self, png_bytes):
        assert validate_image_format(png_bytes) == ImageFormat.PNG

    def test_format_not_allowed(self, png_bytes):
        with pytest.raises(ImageValidationError) as exc_info:
            validate_image_format(png_bytes, allowed_formats=["jpeg"])
        assert exc_info.value.details["format"] == "png"

    def test_garbage_bytes(self):
        with pytest.raises(ImageValidationError):
            validate_image_format(b"definitely not an image")

    def test_size_limit(self):
        with pytest.raises(ImageValidationError):
            validate_image_size(b"x" * (2 * 1024 * 1024), max_size_mb=1)

    def test_size_ok(self, png_bytes):
        validate_image_size(png_bytes, max_size_mb=1)


class TestConversion:
    """Tests for numpy conversion."""

    def test_bytes_to_numpy(self):
        array = bytes_to_numpy(make_png(width=20, height=10))
        assert array.shape == (10, 20, 3)

