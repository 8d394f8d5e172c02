"""Request bodies for the storyboard HTTP API.

Fields are optional at the schema level so that missing values reach the
orchestrator's own validation and produce the uniform 400 error body.
"""

from typing import Optional, Union
from pydantic import BaseModel

from storyboard.core.models import ImageInput


class GenerateStoryboardsBody(BaseModel):
    """Body of POST /api/generate-storyboards."""

    prompt: Optional[str] = None
    image: Optional[ImageInput] = None
    stylePrompt: Optional[str] = None
    styleId: Optional[str] = None


class VaryBody(BaseModel):
    """Body of POST /api/vary. ``image`` may be a data URI returned earlier."""

    prompt: Optional[str] = None
    image: Optional[Union[ImageInput, str]] = None
    stylePrompt: Optional[str] = None
    styleId: Optional[str] = None


class EditImageBody(BaseModel):
    """Body of POST /api/edit-image."""

    originalImage: Optional[Union[ImageInput, str]] = None
    editInstruction: Optional[str] = None
    stylePrompt: Optional[str] = None
    styleId: Optional[str] = None


class DescribeBody(BaseModel):
    """Body of POST /api/generate-description."""

    image: Optional[ImageInput] = None
