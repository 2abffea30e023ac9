"""
Colour resolution for DrawingML colour elements.

Handles literal (srgbClr), theme (schemeClr), system (sysClr) and preset
(prstClr) colours, plus the lumMod/lumOff/tint/shade transforms.
"""

import colorsys
import logging
from typing import Dict, Optional

from deckport.models.presentation import OFFICE_THEME_COLORS
from deckport.services.pptx.units import PERCENT_UNITS, parse_int
from deckport.services.pptx.xml_utils import child, local_name

logger = logging.getLogger(__name__)

DEFAULT_THEME_COLORS = OFFICE_THEME_COLORS

# Theme slot tag / scheme reference -> colour scheme key
THEME_COLOR_MAP: Dict[str, str] = {
    'dk1': 'dark1',
    'dk2': 'dark2',
    'lt1': 'light1',
    'lt2': 'light2',
    'accent1': 'accent1',
    'accent2': 'accent2',
    'accent3': 'accent3',
    'accent4': 'accent4',
    'accent5': 'accent5',
    'accent6': 'accent6',
    'hlink': 'hyperlink',
    'folHlink': 'followedHyperlink',
    # Semantic references used inside slides
    'bg1': 'light1',
    'tx1': 'dark1',
    'bg2': 'light2',
    'tx2': 'dark2',
}

SYSTEM_COLORS: Dict[str, str] = {
    'windowText': '#000000',
    'window': '#FFFFFF',
    'highlight': '#0078D4',
    'highlightText': '#FFFFFF',
    'buttonFace': '#F0F0F0',
    'btnFace': '#F0F0F0',
    'buttonText': '#000000',
    'btnText': '#000000',
    'captionText': '#000000',
    'grayText': '#808080',
    'infoBackground': '#FFFFE1',
    'infoBk': '#FFFFE1',
    'infoText': '#000000',
    'menuText': '#000000',
    'scrollbar': '#C0C0C0',
    'scrollBar': '#C0C0C0',
    'windowFrame': '#000000',
    'menuHighlight': '#0078D4',
}

PRESET_COLORS: Dict[str, str] = {
    'black': '#000000',
    'white': '#FFFFFF',
    'red': '#FF0000',
    'green': '#00FF00',
    'blue': '#0000FF',
    'yellow': '#FFFF00',
    'cyan': '#00FFFF',
    'magenta': '#FF00FF',
    'gray': '#808080',
    'grey': '#808080',
    'silver': '#C0C0C0',
    'maroon': '#800000',
    'olive': '#808000',
    'navy': '#000080',
    'purple': '#800080',
    'teal': '#008080',
    'orange': '#FFA500',
    'pink': '#FFC0CB',
}

COLOR_TAGS = ('srgbClr', 'schemeClr', 'sysClr', 'prstClr', 'scrgbClr', 'hslClr')


def normalize_hex(value: str) -> str:
    """'4472c4' / '#4472C4' -> '#4472C4'"""
    value = value.strip().lstrip('#')
    return f"#{value.upper()}"


def system_color(name: str) -> str:
    return SYSTEM_COLORS.get(name, '#000000')


def preset_color(name: str) -> str:
    return PRESET_COLORS.get(name.lower(), '#000000')


def scheme_key(name: str) -> str:
    return THEME_COLOR_MAP.get(name, name)


def resolve_scheme_color(name: str, theme_colors: Dict[str, str]) -> Optional[str]:
    """Theme reference ('accent1', 'bg1', 'tx2', ...) -> hex, None when unknown"""
    key = scheme_key(name)
    return theme_colors.get(key) or DEFAULT_THEME_COLORS.get(key)


def _apply_transforms(hex_color: str, color_el) -> str:
    transforms = [(local_name(t), parse_int(t.get('val'))) for t in color_el if isinstance(t.tag, str)]
    if not transforms:
        return hex_color
    r, g, b = (int(hex_color[i:i + 2], 16) / 255 for i in (1, 3, 5))
    for name, val in transforms:
        amount = val / PERCENT_UNITS
        if name == 'lumMod':
            h, l, s = colorsys.rgb_to_hls(r, g, b)
            r, g, b = colorsys.hls_to_rgb(h, min(1.0, l * amount), s)
        elif name == 'lumOff':
            h, l, s = colorsys.rgb_to_hls(r, g, b)
            r, g, b = colorsys.hls_to_rgb(h, max(0.0, min(1.0, l + amount)), s)
        elif name == 'tint':
            r, g, b = (c + (1 - c) * (1 - amount) for c in (r, g, b))
        elif name == 'shade':
            r, g, b = (c * amount for c in (r, g, b))
    return "#{:02X}{:02X}{:02X}".format(*(max(0, min(255, int(round(c * 255)))) for c in (r, g, b)))


def color_from_element(color_el, theme_colors: Dict[str, str]) -> Optional[str]:
    """Resolve one colour element (a:srgbClr, a:schemeClr, ...) to hex"""
    tag = local_name(color_el)
    base: Optional[str] = None
    if tag == 'srgbClr':
        val = color_el.get('val')
        base = normalize_hex(val) if val else None
    elif tag == 'schemeClr':
        val = color_el.get('val')
        base = resolve_scheme_color(val, theme_colors) if val else None
    elif tag == 'sysClr':
        last = color_el.get('lastClr')
        base = normalize_hex(last) if last else system_color(color_el.get('val', ''))
    elif tag == 'prstClr':
        base = preset_color(color_el.get('val', ''))
    elif tag == 'scrgbClr':
        channels = [parse_int(color_el.get(c)) / PERCENT_UNITS for c in ('r', 'g', 'b')]
        base = "#{:02X}{:02X}{:02X}".format(*(max(0, min(255, int(round(c * 255)))) for c in channels))
    elif tag == 'hslClr':
        hue = parse_int(color_el.get('hue')) / 60000 / 360
        sat = parse_int(color_el.get('sat')) / PERCENT_UNITS
        lum = parse_int(color_el.get('lum')) / PERCENT_UNITS
        r, g, b = colorsys.hls_to_rgb(hue, lum, sat)
        base = "#{:02X}{:02X}{:02X}".format(*(int(round(c * 255)) for c in (r, g, b)))
    if base is None:
        return None
    if len(base) != 7:
        logger.debug(f"Ignoring malformed colour value {base!r}")
        return None
    return _apply_transforms(base, color_el)


def color_in(parent, theme_colors: Dict[str, str]) -> Optional[str]:
    """Resolve the first colour child of a fill/stop element"""
    if parent is None:
        return None
    for tag in COLOR_TAGS:
        el = child(parent, f"a:{tag}")
        if el is not None:
            return color_from_element(el, theme_colors)
    return None


def scheme_reference(parent) -> Optional[str]:
    """Raw schemeClr value of a fill, when the fill is a theme reference"""
    el = child(parent, 'a:schemeClr')
    return el.get('val') if el is not None else None
