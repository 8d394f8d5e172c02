"""HuggingFace Inference API image describer.

Used to pre-fill a scene description from an uploaded sketch.
"""

import logging
from typing import Optional
import httpx
import requests
from huggingface_hub import InferenceClient
from huggingface_hub.utils import HfHubHTTPError

from storyboard.core.errors import MalformedResponse, ProviderError, ProviderUnavailable
from storyboard.core.models import EncodedImage
from storyboard.utils.image_codec import decode_image

logger = logging.getLogger(__name__)


class HuggingFaceDescriber:
    """Captions an image with a HuggingFace image-to-text model.

    Attributes:
        model: The model ID to use for captioning
        client: HuggingFace InferenceClient instance
    """

    DEFAULT_MODEL = "Salesforce/blip-image-captioning-large"

    def __init__(self, api_key: str, model: Optional[str] = None, timeout: float = 60):
        """Initialize the describer.

        Args:
            api_key: HuggingFace API token
            model: Optional model ID
            timeout: Per-call deadline in seconds

        Raises:
            ValueError: If API key is empty
        """
        if not api_key:
            raise ValueError("HuggingFace API key is required")

        self.model = model or self.DEFAULT_MODEL
        self.client = InferenceClient(token=api_key, timeout=timeout)
        logger.info(f"Initialized HuggingFace describer with model: {self.model}")

    def describe(self, image: EncodedImage) -> str:
        """Produce a one-line scene description for an image.

        Args:
            image: The sketch to describe

        Returns:
            Description text

        Raises:
            ProviderError: On non-success status from the API
            ProviderUnavailable: If the API cannot be reached
            MalformedResponse: If the API returned no text
        """
        try:
            output = self.client.image_to_text(decode_image(image), model=self.model)
        except HfHubHTTPError as e:
            status = e.response.status_code if e.response is not None else None
            logger.error(f"HuggingFace API error: {e}")
            raise ProviderError(status, str(e)) from e
        except (requests.exceptions.RequestException, httpx.HTTPError) as e:
            logger.error(f"HuggingFace API unreachable: {e}")
            raise ProviderUnavailable(f"HuggingFace API unreachable: {e}") from e

        text = getattr(output, "generated_text", output)
        if not text or not str(text).strip():
            raise MalformedResponse("HuggingFace returned an empty description")

        description = str(text).strip()
        logger.info(f"Generated description ({len(description)} chars)")
        return description
