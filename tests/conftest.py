"""Shared test fixtures and configuration."""

import base64
import io
import struct
import zlib
from unittest.mock import Mock

import pytest
import requests
from PIL import Image

from app.config import Settings
from storyboard.core.base_adapter import ProviderConfig
from storyboard.core.models import EncodedImage, ImageInput
from storyboard.core.task_poller import TaskPoller


@pytest.fixture
def sample_fake_image():
    """Return a fake PIL Image for testing."""
    return Image.new('RGB', (64, 48), color='gray')


@pytest.fixture
def sample_image_bytes(sample_fake_image):
    """Return sample image as PNG bytes."""
    img_byte_arr = io.BytesIO()
    sample_fake_image.save(img_byte_arr, format='PNG')
    return img_byte_arr.getvalue()


@pytest.fixture
def sample_jpeg_bytes(sample_fake_image):
    """Return sample image as JPEG bytes."""
    img_byte_arr = io.BytesIO()
    sample_fake_image.save(img_byte_arr, format='JPEG')
    return img_byte_arr.getvalue()


@pytest.fixture
def oversized_png_bytes(sample_image_bytes):
    """Return a small PNG whose header claims 20000x20000 pixels."""
    ihdr = bytearray(sample_image_bytes[12:29])
    ihdr[4:12] = struct.pack(">II", 20000, 20000)
    crc = struct.pack(">I", zlib.crc32(bytes(ihdr)) & 0xFFFFFFFF)
    return sample_image_bytes[:12] + bytes(ihdr) + crc + sample_image_bytes[33:]


@pytest.fixture
def sample_encoded_image(sample_image_bytes):
    """Return the sample PNG as an EncodedImage."""
    return EncodedImage(
        media_type="image/png",
        payload=base64.b64encode(sample_image_bytes).decode("ascii")
    )


@pytest.fixture
def sample_jpeg_input(sample_jpeg_bytes):
    """Return the sample JPEG in request wire shape."""
    return ImageInput(
        base64=base64.b64encode(sample_jpeg_bytes).decode("ascii"),
        mimeType="image/jpeg"
    )


@pytest.fixture
def result_payload():
    """Base64 of a 100-byte provider result."""
    return base64.b64encode(bytes(range(100))).decode("ascii")


@pytest.fixture
def provider_config():
    """Return a ProviderConfig with fake credentials and endpoints."""
    return ProviderConfig(
        api_key="sk-test-12345",
        model="qwen-image-edit-plus",
        endpoint="https://dashscope.test/api/v1/services/aigc/multimodal-generation/generation",
        task_endpoint="https://dashscope.test/api/v1/tasks",
        timeout=5.0,
        poll_max_attempts=5,
        poll_interval_ms=2000
    )


@pytest.fixture
def fake_sleep():
    """Sleep replacement that records calls instead of waiting."""
    return Mock()


@pytest.fixture
def fast_poller(provider_config, fake_sleep):
    """Return a TaskPoller that never actually sleeps."""
    return TaskPoller(
        max_attempts=provider_config.poll_max_attempts,
        interval_ms=provider_config.poll_interval_ms,
        sleep=fake_sleep
    )


def make_response(status_code=200, json_data=None, content=b"", text=None):
    """Build a mocked requests.Response."""
    response = Mock()
    response.status_code = status_code
    response.ok = status_code < 400
    response.content = content
    response.text = text if text is not None else ("" if json_data is None else str(json_data))
    if json_data is None:
        response.json.side_effect = ValueError("No JSON")
    else:
        response.json.return_value = json_data

    if status_code >= 400:
        response.raise_for_status.side_effect = requests.exceptions.HTTPError(
            f"{status_code} Error", response=response
        )
    else:
        response.raise_for_status.return_value = None
    return response


@pytest.fixture
def response_factory():
    """Expose make_response to tests."""
    return make_response


# Skip integration tests unless explicitly requested
def pytest_collection_modifyitems(config, items):
    """Automatically skip integration tests unless RUN_INTEGRATION_TESTS is set."""
    if Settings().run_integration_tests:
        return

    skip_integration = pytest.mark.skip(reason="Integration tests disabled (set RUN_INTEGRATION_TESTS=true to enable)")
    for item in items:
        if "integration" in item.keywords:
            item.add_marker(skip_integration)
