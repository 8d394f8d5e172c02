"""Prompt templates and style presets for storyboard frames."""

import logging
import re
from dataclasses import dataclass
from typing import Optional, List, Dict

logger = logging.getLogger(__name__)

STYLE_SLOT = "{STYLE_INSTRUCTIONS}"
CONTENT_SLOT = "{CONTENT}"

_SLOT_PATTERN = re.compile(re.escape(STYLE_SLOT) + "|" + re.escape(CONTENT_SLOT))


def compose(template: str, style_instructions: str, content: str) -> str:
    """Fill the style and content slots of a template.

    Substitution is a single left-to-right pass, so text inserted into one
    slot is never re-scanned for the other placeholder.

    Args:
        template: Template text containing ``{STYLE_INSTRUCTIONS}`` and/or ``{CONTENT}``
        style_instructions: Rendering technique block
        content: Scene description or edit instruction

    Returns:
        The rendered prompt
    """
    values = {STYLE_SLOT: style_instructions, CONTENT_SLOT: content}
    return _SLOT_PATTERN.sub(lambda match: values[match.group(0)], template)


@dataclass(frozen=True)
class PromptTemplate:
    """A named prompt template with style and content slots."""
    name: str
    template: str
    description: str

    def render(self, style_instructions: str, content: str) -> str:
        """Render this template.

        Args:
            style_instructions: Rendering technique block
            content: Scene description or edit instruction

        Returns:
            Rendered prompt text
        """
        return compose(self.template, style_instructions, content)


GENERATE_TEMPLATE = PromptTemplate(
    name="generate",
    description="Turn a rough sketch into a finished storyboard frame",
    template="""Transform this rough sketch into a professional monochrome storyboard frame.

{STYLE_INSTRUCTIONS}

Requirements:
- Maintain the exact composition and camera angle from the sketch
- Apply dramatic cinematic lighting
- Use only black and white (monochrome)
- Professional storyboard quality
- Clear character poses and forms

Scene description: {CONTENT}""",
)

EDIT_TEMPLATE = PromptTemplate(
    name="edit",
    description="Apply a targeted change to an existing frame",
    template="""Based on the provided image, apply the following edit: "{CONTENT}".

Maintain the original artistic style which is defined as: "{STYLE_INSTRUCTIONS}".

Requirements:
- Integrate the edit seamlessly with the existing composition
- Preserve the original mood and atmosphere
- Use only black and white (monochrome)
- Maintain professional storyboard quality""",
)


@dataclass(frozen=True)
class StylePreset:
    """A selectable rendering style."""
    id: str
    name: str
    prompt: str

    def to_dict(self) -> Dict[str, str]:
        return {"id": self.id, "name": self.name, "prompt": self.prompt}


class StyleLibrary:
    """Built-in style presets offered to clients."""

    STYLES: List[StylePreset] = [
        StylePreset(
            id="enhanced-shadows",
            name="Chiaroscuro Pro",
            prompt="""Transform this into a highly detailed, refined sketch composition with emphasis on sophisticated shadow work and lighting.

Style Requirements:
- Medium: Professional pencil/graphite with selective charcoal for deep shadows
- Line Quality: Precise, confident linework with varying line weights (thin for highlights, thick for shadow boundaries)
- Shadow Technique: Use a combination of cross-hatching, gradient shading, and solid blacks
- Tonal Range: Full spectrum from bright highlights to deep, rich blacks with at least 7-9 distinct gray values
- Details: High level of refinement in both foreground and background elements

Lighting and Shadow Instructions:
- Establish a clear, consistent light source direction
- Create dramatic cast shadows with soft, graduated edges where appropriate
- Use core shadows to define three-dimensional form
- Add reflected light in shadow areas for depth and realism
- Employ occlusion shadows in crevices and contact points
- Create atmospheric depth through shadow intensity variation

Composition:
- Maintain strong focal points through contrast and detail density
- Use shadows to guide the viewer's eye through the composition
- Balance detailed areas with simplified passages for visual rest
- Preserve the original composition's intent while elevating execution quality

Technical Execution:
- Avoid flat, uniform tones - always show subtle variation
- Blend transitions between light and shadow smoothly
- Preserve edge quality - sharp where needed, soft where appropriate
- Ensure shadows feel grounded and dimensionally accurate

The final result should feel like a masterful architectural concept sketch or film storyboard - polished, professional, and production-ready with exceptional attention to light, form, and atmosphere through shadow rendering.""",
        ),
        StylePreset(
            id="pencil-sketch",
            name="Pencil Sketch",
            prompt="pencil sketch, line art, hand-drawn, artistic study, loose gestural strokes, light hatching for midtones",
        ),
    ]

    @classmethod
    def get(cls, style_id: str) -> Optional[StylePreset]:
        """Look up a preset by id.

        Args:
            style_id: Preset identifier

        Returns:
            The preset, or None if unknown
        """
        for style in cls.STYLES:
            if style.id == style_id:
                return style
        logger.debug(f"Unknown style preset requested: {style_id}")
        return None

    @classmethod
    def list_styles(cls) -> List[StylePreset]:
        return list(cls.STYLES)
