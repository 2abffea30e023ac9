"""
Shape classification and inherited geometry resolution.

A p:sp can become a text box, a drawn shape, or nothing at all. The rules are
kept as an ordered table so the precedence is visible in one place; the first
rule whose predicate matches decides the element kind.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Mapping, Optional, Tuple

from deckport.models.presentation import PlaceholderTransform
from deckport.services.pptx.placeholders import PlaceholderRef
from deckport.services.pptx.shape_parser import has_visible_outline, preset_name
from deckport.services.pptx.text_parser import has_visible_text
from deckport.services.pptx.xml_utils import Transform, child

logger = logging.getLogger(__name__)


class ElementKind(str, Enum):
    TEXT = "text"
    SHAPE = "shape"


@dataclass(frozen=True)
class ShapeFacts:
    """Observable properties of a p:sp that drive classification"""
    has_text: bool = False
    geometry: Optional[str] = None
    has_visible_fill: bool = False
    has_outline: bool = False
    has_text_body: bool = False

    @property
    def is_plain_box(self) -> bool:
        return self.geometry is None or self.geometry == 'rect'


Rule = Tuple[str, Callable[[ShapeFacts], bool], ElementKind]

CLASSIFICATION_RULES: List[Rule] = [
    ('text-in-plain-box', lambda f: f.has_text and f.is_plain_box and not f.has_visible_fill, ElementKind.TEXT),
    ('non-rect-geometry', lambda f: not f.is_plain_box, ElementKind.SHAPE),
    ('visible-paint', lambda f: f.has_visible_fill or f.has_outline, ElementKind.SHAPE),
    ('text-fallback', lambda f: f.has_text, ElementKind.TEXT),
    # Placeholders with a whitespace-only body still try the text path,
    # which drops them when nothing visible remains
    ('text-body-fallback', lambda f: f.has_text_body, ElementKind.TEXT),
]


def shape_facts(sp) -> ShapeFacts:
    sp_pr = child(sp, 'p:spPr')
    tx_body = child(sp, 'p:txBody')
    return ShapeFacts(
        has_text=has_visible_text(tx_body),
        geometry=preset_name(sp_pr),
        has_visible_fill=child(sp_pr, 'a:solidFill') is not None or child(sp_pr, 'a:gradFill') is not None,
        has_outline=has_visible_outline(sp_pr),
        has_text_body=tx_body is not None,
    )


def classify(facts: ShapeFacts) -> Optional[ElementKind]:
    """First matching rule's kind; None means the shape is dropped"""
    for name, predicate, kind in CLASSIFICATION_RULES:
        if predicate(facts):
            logger.debug(f"Classified shape as {kind.value} by rule {name}")
            return kind
    return None


# Default frames in source pixels for a 1280x720 canvas
PLACEHOLDER_DEFAULTS = {
    'title': PlaceholderTransform(x=67, y=27, width=1147, height=107),
    'ctrTitle': PlaceholderTransform(x=133, y=240, width=1013, height=133),
    'subTitle': PlaceholderTransform(x=133, y=400, width=1013, height=80),
    'body': PlaceholderTransform(x=67, y=160, width=1147, height=467),
    'dt': PlaceholderTransform(x=67, y=667, width=267, height=40),
    'ftr': PlaceholderTransform(x=400, y=667, width=480, height=40),
    'sldNum': PlaceholderTransform(x=947, y=667, width=267, height=40),
}


def resolve_shape_geometry(
    transform: Optional[Transform],
    placeholder: Optional[PlaceholderRef],
    layout_placeholders: Mapping[str, PlaceholderTransform],
) -> Optional[PlaceholderTransform]:
    """
    Frame for a shape: its own transform, else the layout placeholder by index,
    then by type, then the defaults table. Non-placeholders without an extent
    resolve to None and are dropped.
    """
    if transform is not None and not transform.is_empty:
        return PlaceholderTransform(x=transform.x, y=transform.y, width=transform.width, height=transform.height)
    if placeholder is None:
        return None

    if placeholder.idx:
        inherited = layout_placeholders.get(f"idx:{placeholder.idx}")
        if inherited is not None:
            return inherited
    inherited = layout_placeholders.get(f"type:{placeholder.kind}")
    if inherited is not None:
        return inherited
    return PLACEHOLDER_DEFAULTS.get(placeholder.kind, PLACEHOLDER_DEFAULTS['body'])
