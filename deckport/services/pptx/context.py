"""
Per-import parse state threaded through every parser call.
"""

import logging
from dataclasses import dataclass, field, replace
from typing import Dict, List, Mapping, Optional, Sequence

from deckport.models.presentation import FontScheme, ThemeBgFillStyle
from deckport.services.pptx.colors import DEFAULT_THEME_COLORS
from deckport.services.pptx.package_reader import ImageHandle
from deckport.services.pptx.scaler import BOTTOM_OVERFLOW_TOLERANCE_PX, TARGET_HEIGHT, TARGET_WIDTH

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ParseContext:
    """
    Immutable inputs for parsing one slide (or layout/master layer).

    Attributes:
        scale_factor: Uniform source->target canvas multiplier
        font_scheme: Resolved theme fonts for '+mj'/'+mn' substitution
        theme_colors: Colour scheme key -> hex for the slide's theme
        image_map: Relationship id -> media handle for the part being parsed
        bg_fill_styles: Theme background fill catalog
        warnings: Sink for recoverable problems, shared by derived contexts
    """
    scale_factor: float = 1.0
    font_scheme: FontScheme = field(default_factory=FontScheme)
    theme_colors: Mapping[str, str] = field(default_factory=lambda: dict(DEFAULT_THEME_COLORS))
    image_map: Mapping[str, ImageHandle] = field(default_factory=dict)
    bg_fill_styles: Sequence[ThemeBgFillStyle] = ()
    target_width: int = TARGET_WIDTH
    target_height: int = TARGET_HEIGHT
    overflow_tolerance: int = BOTTOM_OVERFLOW_TOLERANCE_PX
    part_name: str = ''
    warnings: List[str] = field(default_factory=list)

    def with_images(self, image_map: Mapping[str, ImageHandle], part_name: Optional[str] = None) -> "ParseContext":
        return replace(self, image_map=image_map, part_name=part_name if part_name is not None else self.part_name)

    def with_theme(
        self,
        theme_colors: Mapping[str, str],
        bg_fill_styles: Sequence[ThemeBgFillStyle] = (),
        font_scheme: Optional[FontScheme] = None,
    ) -> "ParseContext":
        return replace(
            self,
            theme_colors=theme_colors,
            bg_fill_styles=tuple(bg_fill_styles),
            font_scheme=font_scheme or self.font_scheme,
        )

    def with_warnings(self, warnings: List[str]) -> "ParseContext":
        return replace(self, warnings=warnings)

    def resolve_font(self, typeface: Optional[str]) -> str:
        """Substitute theme font sentinels; no typeface means the body font"""
        if not typeface:
            return self.font_scheme.minor_font
        if typeface.startswith('+mn'):
            return self.font_scheme.minor_font
        if typeface.startswith('+mj'):
            return self.font_scheme.major_font
        return typeface

    def warn(self, message: str) -> None:
        logger.warning(message)
        self.warnings.append(message)

    def image(self, rel_id: Optional[str]) -> Optional[ImageHandle]:
        if not rel_id:
            return None
        return self.image_map.get(rel_id)


def build_image_map(rels: Dict[str, str], media: Mapping[str, ImageHandle]) -> Dict[str, ImageHandle]:
    """Join a part's image relationships with the extracted media"""
    return {rel_id: media[target] for rel_id, target in rels.items() if target in media}
