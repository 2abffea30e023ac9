"""
Theme part parsing: colour scheme, font scheme and background fill catalog.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Union

from deckport.models.presentation import (
    DEFAULT_MAJOR_FONT,
    DEFAULT_MINOR_FONT,
    ColorScheme,
    FontScheme,
    ThemeBgFillStyle,
    ThemeGradient,
    ThemeGradientStop,
)
from deckport.services.pptx.colors import DEFAULT_THEME_COLORS, THEME_COLOR_MAP, color_in, scheme_reference
from deckport.services.pptx.units import angle_to_degrees
from deckport.services.pptx.xml_utils import (
    attr_int,
    attr_percent,
    child,
    children,
    element_children,
    find_first,
    local_name,
    parse_xml,
    path,
)

logger = logging.getLogger(__name__)

# Theme slot tags in scheme order
THEME_SLOTS = ('dk1', 'lt1', 'dk2', 'lt2', 'accent1', 'accent2', 'accent3',
               'accent4', 'accent5', 'accent6', 'hlink', 'folHlink')

# bgRef idx values at or above this index the background fill catalog
BG_FILL_INDEX_BASE = 1001


@dataclass
class ParsedTheme:
    colors: Dict[str, str] = field(default_factory=lambda: dict(DEFAULT_THEME_COLORS))
    color_scheme: ColorScheme = field(default_factory=ColorScheme)
    font_scheme: FontScheme = field(default_factory=FontScheme)
    bg_fill_styles: List[ThemeBgFillStyle] = field(default_factory=list)
    name: str = "Imported Theme"


def parse_theme(xml: Union[str, bytes]) -> ParsedTheme:
    """Parse a theme part into colours, fonts and the background fill catalog"""
    root = parse_xml(xml)
    elements = child(root, 'a:themeElements')

    colors = _parse_colors(child(elements, 'a:clrScheme'))
    font_scheme = _parse_fonts(child(elements, 'a:fontScheme'))
    bg_fill_styles = _parse_bg_fill_styles(path(elements, 'a:fmtScheme', 'a:bgFillStyleLst'), colors)

    return ParsedTheme(
        colors=colors,
        color_scheme=ColorScheme.from_colors(colors),
        font_scheme=font_scheme,
        bg_fill_styles=bg_fill_styles,
        name=root.get('name') or "Imported Theme",
    )


def _parse_colors(clr_scheme) -> Dict[str, str]:
    colors = dict(DEFAULT_THEME_COLORS)
    if clr_scheme is None:
        return colors
    # Only the literal value matters here; slots never reference each other
    for slot in THEME_SLOTS:
        slot_el = child(clr_scheme, f"a:{slot}")
        color = color_in(slot_el, {})
        if color:
            colors[THEME_COLOR_MAP[slot]] = color
    return colors


def _parse_fonts(font_scheme) -> FontScheme:
    def _latin(tag: str, default: str) -> str:
        latin = path(font_scheme, tag, 'a:latin')
        typeface = latin.get('typeface') if latin is not None else None
        return typeface or default

    if font_scheme is None:
        return FontScheme()
    return FontScheme(
        major_font=_latin('a:majorFont', DEFAULT_MAJOR_FONT),
        minor_font=_latin('a:minorFont', DEFAULT_MINOR_FONT),
    )


def _parse_bg_fill_styles(bg_fill_lst, colors: Dict[str, str]) -> List[ThemeBgFillStyle]:
    styles: List[ThemeBgFillStyle] = []
    if bg_fill_lst is None:
        return styles
    for fill_el in element_children(bg_fill_lst):
        tag = local_name(fill_el)
        if tag == 'solidFill':
            srgb = child(fill_el, 'a:srgbClr')
            styles.append(ThemeBgFillStyle(
                type='solid',
                solid_color=color_in(fill_el, colors) if srgb is not None else None,
                scheme_color=scheme_reference(fill_el),
            ))
        elif tag == 'gradFill':
            stops = []
            for gs in children(child(fill_el, 'a:gsLst'), 'a:gs'):
                srgb = child(gs, 'a:srgbClr')
                stops.append(ThemeGradientStop(
                    position=attr_percent(gs, 'pos'),
                    color=color_in(gs, colors) if srgb is not None else None,
                    scheme_color=scheme_reference(gs),
                ))
            lin = find_first(fill_el, 'a:lin')
            angle = angle_to_degrees(attr_int(lin, 'ang')) if lin is not None else 0
            styles.append(ThemeBgFillStyle(type='gradient', gradient=ThemeGradient(angle=angle, stops=stops)))
        else:
            # Pattern and picture fills degrade to the light background colour
            logger.debug(f"Background fill style {tag} approximated as solid bg1")
            styles.append(ThemeBgFillStyle(type='solid', scheme_color='bg1'))
    return styles
