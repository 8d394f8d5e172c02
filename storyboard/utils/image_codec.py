"""Conversions between raw image bytes, EncodedImage and data-URI strings."""

import base64
import io
import logging
import re
from typing import Dict, Any
import requests
from PIL import Image, UnidentifiedImageError
from pydantic import ValidationError

from storyboard.core.errors import InvalidRequest, MalformedResponse, ResultFetchFailed
from storyboard.core.models import EncodedImage, RawResult

logger = logging.getLogger(__name__)

DEFAULT_MEDIA_TYPE = "image/png"

DATA_URI_PATTERN = re.compile(r"^data:(image/[A-Za-z0-9.+-]+);base64,(.+)$", re.DOTALL)


def encode_bytes(data: bytes, media_type: str = DEFAULT_MEDIA_TYPE) -> EncodedImage:
    """Base64-encode raw image bytes.

    Args:
        data: Raw image bytes
        media_type: MIME type to tag the image with

    Returns:
        EncodedImage wrapping the data

    Raises:
        ValueError: If data is empty
    """
    if not data:
        raise ValueError("Cannot encode an empty image")
    return EncodedImage(
        media_type=media_type,
        payload=base64.b64encode(data).decode("ascii")
    )


def decode_image(image: EncodedImage) -> bytes:
    """Return the raw bytes behind an EncodedImage."""
    return base64.b64decode(image.payload)


def to_data_uri(image: EncodedImage) -> str:
    """Render an image as ``data:<media-type>;base64,<payload>``."""
    return f"data:{image.media_type};base64,{image.payload}"


def from_data_uri(uri: str) -> EncodedImage:
    """Parse a data-URI string back into an EncodedImage.

    Args:
        uri: String of the form ``data:image/<subtype>;base64,<payload>``

    Returns:
        EncodedImage with the same media type and payload

    Raises:
        InvalidRequest: If the string is not a base64 image data URI
    """
    match = DATA_URI_PATTERN.match(uri.strip()) if uri else None
    if not match:
        raise InvalidRequest("Invalid image format: expected a base64 image data URI")

    try:
        return EncodedImage(media_type=match.group(1), payload=match.group(2))
    except ValidationError as e:
        raise InvalidRequest("Invalid image data", details=str(e)) from e


def get_image_info(data: bytes) -> Dict[str, Any]:
    """Get basic information about an image.

    Args:
        data: Image file bytes

    Returns:
        Dictionary with width, height, format, mime_type and size_bytes

    Raises:
        ValueError: If the bytes are not a readable raster image
    """
    try:
        with Image.open(io.BytesIO(data)) as image:
            image.verify()
            info = {
                "width": image.width,
                "height": image.height,
                "format": image.format,
                "mime_type": Image.MIME.get(image.format or ""),
                "size_bytes": len(data),
            }
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, SyntaxError) as e:
        raise ValueError(f"Not a readable image: {e}") from e
    return info


def fetch_remote(url: str, timeout: float) -> bytes:
    """Download a remote image.

    Raises:
        ResultFetchFailed: On network error or non-success status
    """
    try:
        response = requests.get(url, timeout=timeout)
        response.raise_for_status()
    except requests.exceptions.RequestException as e:
        logger.error(f"Failed to download generated image: {e}")
        raise ResultFetchFailed(url, str(e)) from e
    return response.content


def normalize_result(result: RawResult, timeout: float = 60) -> EncodedImage:
    """Turn a provider result entry into an EncodedImage.

    Inline payloads are wrapped as-is (default media type ``image/png``).
    Remote URLs are downloaded and always tagged ``image/png``; the remote
    content-type header is ignored.

    Args:
        result: Result entry with exactly one of payload/url populated
        timeout: Deadline in seconds for the remote download

    Returns:
        EncodedImage with a non-empty payload

    Raises:
        MalformedResponse: If neither or both fields are populated, or the
            data is empty/undecodable
        ResultFetchFailed: If the remote download fails
    """
    has_payload = bool(result.payload)
    has_url = bool(result.url)

    if has_payload == has_url:
        state = "both" if has_payload else "neither"
        raise MalformedResponse(
            f"No image data found in provider response ({state} of url/payload set)"
        )

    if has_url:
        logger.debug(f"Fetching remote result: {result.url}")
        data = fetch_remote(result.url, timeout)
        if not data:
            raise MalformedResponse(f"Remote result at {result.url} was empty")
        return encode_bytes(data, DEFAULT_MEDIA_TYPE)

    payload = "".join(result.payload.split())
    try:
        return EncodedImage(
            media_type=result.media_type or DEFAULT_MEDIA_TYPE,
            payload=payload
        )
    except ValidationError as e:
        raise MalformedResponse("Provider returned undecodable image data", details=str(e)) from e
