"""Core data models for storyboard generation."""

import base64
import binascii
from enum import Enum
from typing import Optional, List
from pydantic import BaseModel, ConfigDict, Field, field_validator


class EncodedImage(BaseModel):
    """An image in transportable form.

    Attributes:
        media_type: MIME type of the image (e.g. "image/png")
        payload: Base64-encoded image bytes
    """

    model_config = ConfigDict(frozen=True)

    media_type: str = Field(
        default="image/png",
        pattern=r"^image/[A-Za-z0-9.+-]+$",
        description="MIME type of the encoded image"
    )
    payload: str = Field(
        ...,
        min_length=1,
        description="Base64-encoded image bytes"
    )

    @field_validator("payload")
    @classmethod
    def _payload_is_base64(cls, value: str) -> str:
        try:
            base64.b64decode(value, validate=True)
        except (binascii.Error, ValueError) as e:
            raise ValueError(f"payload is not valid base64: {e}") from e
        return value


class GenerationRequest(BaseModel):
    """A validated request to turn a sketch into a storyboard frame.

    Attributes:
        scene_text: Free-form description of the scene
        source_image: The sketch (or prior frame) to condition on
        style_instructions: Rendering technique block for the prompt
    """

    scene_text: str = Field(..., min_length=1)
    source_image: EncodedImage
    style_instructions: str = Field(..., min_length=1)


class EditRequest(BaseModel):
    """A validated request to edit an existing frame.

    Attributes:
        source_image: The frame being edited
        edit_instruction: What to change
        style_instructions: Rendering technique block to preserve
    """

    source_image: EncodedImage
    edit_instruction: str = Field(..., min_length=1)
    style_instructions: str = Field(..., min_length=1)


class ProviderRequest(BaseModel):
    """What an adapter submits: the composed prompt plus the image."""

    prompt: str = Field(..., min_length=1)
    source_image: EncodedImage


class TaskStatus(str, Enum):
    """Lifecycle states of a provider-side generation task."""
    SUBMITTED = "submitted"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (TaskStatus.SUCCEEDED, TaskStatus.FAILED)


class RawResult(BaseModel):
    """One result entry as returned by a provider.

    Either ``payload`` (inline base64 data) or ``url`` (remote image) is
    populated. Normalization rejects entries with neither or both.
    """

    payload: Optional[str] = None
    media_type: Optional[str] = None
    url: Optional[str] = None

    @classmethod
    def inline(cls, payload: str, media_type: Optional[str] = None) -> "RawResult":
        return cls(payload=payload, media_type=media_type)

    @classmethod
    def remote(cls, url: str) -> "RawResult":
        return cls(url=url)


class ProviderTask(BaseModel):
    """Snapshot of a provider task as seen by the latest submit or status query.

    Attributes:
        task_id: Provider-assigned identifier (None for inline responses)
        status: Current lifecycle state
        results: Result entries, usually empty until SUCCEEDED
        message: Provider-supplied failure message, if any
    """

    task_id: Optional[str] = None
    status: TaskStatus = TaskStatus.SUBMITTED
    results: List[RawResult] = Field(default_factory=list)
    message: Optional[str] = None


class ImageInput(BaseModel):
    """Image as it arrives in an HTTP body. Fields are checked by the orchestrator."""

    base64: Optional[str] = None
    mimeType: Optional[str] = None

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "base64": "iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAYAAAAfFcSJAAAADUlEQVR42mNkYPhfDwAChwGA60e6kgAAAABJRU5ErkJggg==",
                "mimeType": "image/png"
            }
        }
    )
