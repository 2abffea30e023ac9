"""
Slide, layout and master background resolution.

Every result is a concrete paint: bgPr fills are read directly, bgRef
entries index the theme's background fill catalog and anything we cannot
resolve falls back to plain white.
"""

import logging
from typing import Mapping, Optional, Sequence

from deckport.models.elements import GradientFill, GradientStop
from deckport.models.presentation import Background, ThemeBgFillStyle
from deckport.services.pptx.colors import color_in, resolve_scheme_color, scheme_reference
from deckport.services.pptx.package_reader import ImageHandle
from deckport.services.pptx.theme_parser import BG_FILL_INDEX_BASE
from deckport.services.pptx.units import angle_to_degrees
from deckport.services.pptx.xml_utils import attr_int, attr_percent, child, children, path, r_attr

logger = logging.getLogger(__name__)

DEFAULT_BACKGROUND_COLOR = '#FFFFFF'
# Picture backgrounds we cannot resolve are approximated by the Office light2 grey
IMAGE_BACKGROUND_FALLBACK = '#E7E6E6'
MISSING_STOP_COLOR = '#808080'


def default_background() -> Background:
    return Background.solid(DEFAULT_BACKGROUND_COLOR)


def gradient_background(grad_fill, theme_colors: Mapping[str, str]) -> Optional[Background]:
    """a:gradFill -> gradient (>= 2 stops), solid (1 stop) or None"""
    stops = []
    for gs in children(child(grad_fill, 'a:gsLst'), 'a:gs'):
        color = color_in(gs, theme_colors)
        if color:
            stops.append(GradientStop(position=attr_percent(gs, 'pos'), color=color))
    if not stops:
        return None
    if len(stops) == 1:
        return Background.solid(stops[0].color)
    lin = child(grad_fill, 'a:lin')
    angle = angle_to_degrees(attr_int(lin, 'ang')) if lin is not None else 0
    kind = 'radial' if child(grad_fill, 'a:path') is not None else 'linear'
    return Background(type='gradient', gradient=GradientFill(type=kind, angle=angle, stops=stops))


def _from_bg_pr(bg_pr, theme_colors, image_map) -> Optional[Background]:
    solid = child(bg_pr, 'a:solidFill')
    if solid is not None:
        color = color_in(solid, theme_colors)
        if color:
            return Background.solid(color)

    grad = child(bg_pr, 'a:gradFill')
    if grad is not None:
        background = gradient_background(grad, theme_colors)
        if background is not None:
            return background

    blip_fill = child(bg_pr, 'a:blipFill')
    if blip_fill is not None:
        handle = (image_map or {}).get(r_attr(child(blip_fill, 'a:blip'), 'embed') or '')
        if handle is not None:
            return Background(type='image', image_url=handle.data_url, color=IMAGE_BACKGROUND_FALLBACK)
        return Background.solid(IMAGE_BACKGROUND_FALLBACK)
    return None


def _from_catalog(style: ThemeBgFillStyle, override: Optional[str], theme_colors) -> Optional[Background]:
    if style.type == 'solid':
        if style.solid_color:
            return Background.solid(style.solid_color)
        for scheme in (override, style.scheme_color):
            if scheme:
                color = resolve_scheme_color(scheme, theme_colors)
                if color:
                    return Background.solid(color)
        return None

    if style.gradient is None:
        return None
    stops = []
    for stop in style.gradient.stops:
        color = stop.color
        # The bgRef colour substitutes for 'phClr' placeholders in the catalog
        scheme = stop.scheme_color if stop.scheme_color and stop.scheme_color != 'phClr' else override
        if not color and scheme:
            color = resolve_scheme_color(scheme, theme_colors) or MISSING_STOP_COLOR
        if color:
            stops.append(GradientStop(position=stop.position, color=color))
    if len(stops) >= 2:
        return Background(type='gradient', gradient=GradientFill(angle=style.gradient.angle, stops=stops))
    if len(stops) == 1:
        return Background.solid(stops[0].color)
    return None


def _from_bg_ref(bg_ref, theme_colors, bg_fill_styles) -> Optional[Background]:
    idx = attr_int(bg_ref, 'idx')
    override = scheme_reference(bg_ref)
    if idx >= BG_FILL_INDEX_BASE and bg_fill_styles:
        position = idx - BG_FILL_INDEX_BASE
        if position < len(bg_fill_styles):
            background = _from_catalog(bg_fill_styles[position], override, theme_colors)
            if background is not None:
                return background
        else:
            logger.debug(f"bgRef idx {idx} outside catalog of {len(bg_fill_styles)}")
    color = color_in(bg_ref, theme_colors)
    if color:
        return Background.solid(color)
    return None


def part_background(
    root,
    theme_colors: Mapping[str, str],
    bg_fill_styles: Sequence[ThemeBgFillStyle] = (),
    image_map: Optional[Mapping[str, ImageHandle]] = None,
) -> Optional[Background]:
    """Background declared by a slide/layout/master root; None when it has no p:bg"""
    bg = path(root, 'p:cSld', 'p:bg')
    if bg is None:
        return None
    bg_pr = child(bg, 'p:bgPr')
    if bg_pr is not None:
        background = _from_bg_pr(bg_pr, theme_colors, image_map)
        if background is not None:
            return background
    bg_ref = child(bg, 'p:bgRef')
    if bg_ref is not None:
        background = _from_bg_ref(bg_ref, theme_colors, bg_fill_styles)
        if background is not None:
            return background
    return default_background()


def parse_background(
    root,
    theme_colors: Mapping[str, str],
    bg_fill_styles: Sequence[ThemeBgFillStyle] = (),
    image_map: Optional[Mapping[str, ImageHandle]] = None,
) -> Background:
    """Background of a part, defaulting to plain white"""
    return part_background(root, theme_colors, bg_fill_styles, image_map) or default_background()
