"""Storyboard orchestration: generate, vary and edit."""

import logging
import threading
import time
from typing import Any, Mapping, Optional, Union

from pydantic import ValidationError

from storyboard.core.base_adapter import BaseAdapter
from storyboard.core.errors import InvalidRequest, StoryboardError
from storyboard.core.models import (
    EditRequest,
    EncodedImage,
    GenerationRequest,
    ImageInput,
    ProviderRequest,
)
from storyboard.utils.image_codec import decode_image, from_data_uri, get_image_info
from storyboard.utils.prompt_composer import EDIT_TEMPLATE, GENERATE_TEMPLATE, PromptTemplate

logger = logging.getLogger(__name__)

ImageLike = Union[ImageInput, EncodedImage, Mapping[str, Any], str, None]


class StoryboardOrchestrator:
    """Runs the sketch-to-frame pipeline against one configured adapter.

    Every operation validates its inputs before touching the network,
    composes the prompt, submits it through the adapter and returns a single
    EncodedImage. All failures surface as :class:`StoryboardError`
    subclasses.

    Attributes:
        adapter: The provider adapter chosen at startup
        generate_template: Template for generate/vary
        edit_template: Template for edit
    """

    def __init__(
        self,
        adapter: BaseAdapter,
        generate_template: PromptTemplate = GENERATE_TEMPLATE,
        edit_template: PromptTemplate = EDIT_TEMPLATE
    ):
        self.adapter = adapter
        self.generate_template = generate_template
        self.edit_template = edit_template

        logger.info(f"Initialized StoryboardOrchestrator with adapter: {adapter.name} ({adapter.protocol})")

    def generate(
        self,
        prompt: Optional[str],
        image: ImageLike,
        style_prompt: Optional[str],
        cancel_event: Optional[threading.Event] = None
    ) -> EncodedImage:
        """Turn a sketch, a scene description and a style into a frame.

        Args:
            prompt: Scene description
            image: The sketch (ImageInput, EncodedImage, mapping or data URI)
            style_prompt: Style instructions

        Returns:
            The generated frame

        Raises:
            InvalidRequest: If any input is missing or malformed
            StoryboardError: If generation fails
        """
        self._require(prompt=prompt, image=image, stylePrompt=style_prompt)
        request = self._build(
            GenerationRequest,
            scene_text=prompt.strip(),
            source_image=validate_image(image),
            style_instructions=style_prompt.strip()
        )
        return self._run(
            "generate",
            self.generate_template,
            request.source_image,
            request.style_instructions,
            request.scene_text,
            cancel_event
        )

    def vary(
        self,
        prompt: Optional[str],
        image: ImageLike,
        style_prompt: Optional[str],
        cancel_event: Optional[threading.Event] = None
    ) -> EncodedImage:
        """Re-run generation using one of our own frames as the source.

        The frame usually arrives as the data URI returned by an earlier
        call; it is decoded back into an EncodedImage unchanged.
        """
        logger.info("Varying a previously generated frame")
        return self.generate(prompt, image, style_prompt, cancel_event)

    def edit(
        self,
        image: ImageLike,
        edit_instruction: Optional[str],
        style_prompt: Optional[str],
        cancel_event: Optional[threading.Event] = None
    ) -> EncodedImage:
        """Apply an edit instruction to an existing frame.

        Args:
            image: The frame to edit
            edit_instruction: What to change
            style_prompt: Style instructions to preserve

        Returns:
            The edited frame

        Raises:
            InvalidRequest: If any input is missing or malformed
            StoryboardError: If the edit fails
        """
        self._require(originalImage=image, editInstruction=edit_instruction, stylePrompt=style_prompt)
        request = self._build(
            EditRequest,
            source_image=validate_image(image),
            edit_instruction=edit_instruction.strip(),
            style_instructions=style_prompt.strip()
        )
        return self._run(
            "edit",
            self.edit_template,
            request.source_image,
            request.style_instructions,
            request.edit_instruction,
            cancel_event
        )

    def _run(
        self,
        operation: str,
        template: PromptTemplate,
        source_image: EncodedImage,
        style_instructions: str,
        content: str,
        cancel_event: Optional[threading.Event]
    ) -> EncodedImage:
        prompt = template.render(style_instructions, content)
        logger.info(
            f"Starting {operation} with {self.adapter.name} "
            f"(prompt {len(prompt)} chars, image {len(source_image.payload)} base64 chars)"
        )

        start_time = time.time()
        try:
            result = self.adapter.submit(
                ProviderRequest(prompt=prompt, source_image=source_image),
                cancel_event=cancel_event
            )
        except StoryboardError as e:
            logger.error(f"{operation} failed [{e.kind}]: {e}")
            raise
        except Exception as e:
            logger.error(f"Unexpected error during {operation}: {e}")
            raise StoryboardError(f"Failed to {operation} image: {e}") from e

        duration_ms = int((time.time() - start_time) * 1000)
        logger.info(f"{operation} succeeded in {duration_ms}ms")
        return result

    @staticmethod
    def _require(**fields: Any) -> None:
        missing = [
            name for name, value in fields.items()
            if value is None or (isinstance(value, str) and not value.strip())
        ]
        if missing:
            raise InvalidRequest(f"Missing required fields: {', '.join(missing)}")

    @staticmethod
    def _build(model, **values):
        try:
            return model(**values)
        except ValidationError as e:
            raise InvalidRequest("Invalid request", details=str(e)) from e


def validate_image(image: ImageLike) -> EncodedImage:
    """Validate an incoming image and convert it to an EncodedImage.

    Accepts an ImageInput, an EncodedImage, a plain mapping with
    ``base64``/``mimeType`` keys, or a data-URI string. The payload must be
    valid base64 and decode to an image Pillow can read.

    Raises:
        InvalidRequest: If the image is missing fields or unreadable
    """
    if isinstance(image, EncodedImage):
        encoded = image
    elif isinstance(image, str):
        encoded = from_data_uri(image)
    else:
        if isinstance(image, Mapping):
            try:
                image = ImageInput.model_validate(image)
            except ValidationError as e:
                raise InvalidRequest("Invalid image data", details=str(e)) from e
        elif not isinstance(image, ImageInput):
            raise InvalidRequest("Invalid image data")
        if not image.base64 or not image.mimeType:
            raise InvalidRequest("Invalid image data")
        if image.base64.startswith("data:"):
            encoded = from_data_uri(image.base64)
        else:
            try:
                encoded = EncodedImage(media_type=image.mimeType, payload=image.base64)
            except ValidationError as e:
                raise InvalidRequest("Invalid image data", details=str(e)) from e

    try:
        info = get_image_info(decode_image(encoded))
    except ValueError as e:
        raise InvalidRequest("Invalid image data", details=str(e)) from e

    if info["mime_type"] and info["mime_type"] != encoded.media_type:
        logger.debug(f"Declared {encoded.media_type} but payload looks like {info['mime_type']}")
    logger.debug(f"Source image {info['width']}x{info['height']} ({info['size_bytes']} bytes)")
    return encoded
