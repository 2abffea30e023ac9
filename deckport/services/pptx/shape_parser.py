"""
Shape, fill, stroke and connector parsing.
"""

import logging
from typing import Dict, Mapping, Optional

from deckport.models.elements import Fill, GradientFill, GradientStop, ShapeElement, ShapeType, Stroke
from deckport.models.presentation import PlaceholderTransform
from deckport.services.pptx.colors import color_in
from deckport.services.pptx.context import ParseContext
from deckport.services.pptx.text_parser import parse_text_body
from deckport.services.pptx.units import EMU_PER_POINT, angle_to_degrees, emu_to_pixels
from deckport.services.pptx.xml_utils import attr_int, child, children, path, shape_transform

logger = logging.getLogger(__name__)

DEFAULT_SHAPE_FILL = '#4472C4'
DEFAULT_OUTLINE_COLOR = '#2F528F'
DEFAULT_CONNECTOR_COLOR = '#000000'

# Preset geometry name -> editor shape kind. Names not listed draw as rectangles.
PRESET_GEOMETRY_MAP: Dict[str, ShapeType] = {
    # Rectangles
    'rect': ShapeType.RECTANGLE,
    'roundRect': ShapeType.ROUNDED_RECTANGLE,
    'snip1Rect': ShapeType.RECTANGLE,
    'snip2DiagRect': ShapeType.RECTANGLE,
    'snip2SameRect': ShapeType.RECTANGLE,
    'snipRoundRect': ShapeType.ROUNDED_RECTANGLE,
    'round1Rect': ShapeType.ROUNDED_RECTANGLE,
    'round2DiagRect': ShapeType.ROUNDED_RECTANGLE,
    'round2SameRect': ShapeType.ROUNDED_RECTANGLE,
    'parallelogram': ShapeType.RECTANGLE,
    'trapezoid': ShapeType.RECTANGLE,
    'cube': ShapeType.RECTANGLE,
    'frame': ShapeType.RECTANGLE,
    'plaque': ShapeType.ROUNDED_RECTANGLE,

    # Ellipses
    'ellipse': ShapeType.ELLIPSE,
    'pie': ShapeType.ELLIPSE,
    'chord': ShapeType.ELLIPSE,
    'arc': ShapeType.ELLIPSE,
    'donut': ShapeType.ELLIPSE,
    'can': ShapeType.ELLIPSE,
    'blockArc': ShapeType.ELLIPSE,

    # Triangles
    'triangle': ShapeType.TRIANGLE,
    'rtTriangle': ShapeType.RIGHT_TRIANGLE,

    # Arrows
    'rightArrow': ShapeType.ARROW_RIGHT,
    'leftArrow': ShapeType.ARROW_LEFT,
    'upArrow': ShapeType.ARROW_UP,
    'downArrow': ShapeType.ARROW_DOWN,
    'leftRightArrow': ShapeType.ARROW,
    'upDownArrow': ShapeType.ARROW,
    'bentArrow': ShapeType.ARROW,
    'uturnArrow': ShapeType.ARROW,
    'stripedRightArrow': ShapeType.ARROW_RIGHT,
    'notchedRightArrow': ShapeType.ARROW_RIGHT,
    'curvedRightArrow': ShapeType.ARROW_RIGHT,
    'curvedLeftArrow': ShapeType.ARROW_LEFT,
    'homePlate': ShapeType.PENTAGON,
    'chevron': ShapeType.ARROW,

    # Stars
    'star4': ShapeType.STAR5,
    'star5': ShapeType.STAR5,
    'star6': ShapeType.STAR6,
    'star7': ShapeType.STAR6,
    'star8': ShapeType.STAR5,
    'star10': ShapeType.STAR5,
    'star12': ShapeType.STAR5,
    'star16': ShapeType.STAR5,
    'star24': ShapeType.STAR5,
    'star32': ShapeType.STAR5,

    # Polygons
    'diamond': ShapeType.DIAMOND,
    'pentagon': ShapeType.PENTAGON,
    'hexagon': ShapeType.HEXAGON,
    'heptagon': ShapeType.HEXAGON,
    'octagon': ShapeType.OCTAGON,
    'decagon': ShapeType.OCTAGON,
    'dodecagon': ShapeType.OCTAGON,

    # Lines
    'line': ShapeType.LINE,
    'straightConnector1': ShapeType.LINE,
    'bentConnector2': ShapeType.LINE,
    'bentConnector3': ShapeType.LINE,
    'curvedConnector2': ShapeType.LINE,
    'curvedConnector3': ShapeType.LINE,

    # Callouts
    'wedgeRectCallout': ShapeType.CALLOUT,
    'wedgeRoundRectCallout': ShapeType.CALLOUT,
    'wedgeEllipseCallout': ShapeType.CALLOUT,
    'cloudCallout': ShapeType.CALLOUT,
    'borderCallout1': ShapeType.CALLOUT,
    'borderCallout2': ShapeType.CALLOUT,
    'borderCallout3': ShapeType.CALLOUT,

    # Special shapes
    'heart': ShapeType.HEART,
    'cloud': ShapeType.CLOUD,
    'lightningBolt': ShapeType.LIGHTNING,
    'plus': ShapeType.PLUS,
    'cross': ShapeType.PLUS,
    'mathPlus': ShapeType.PLUS,
    'mathMinus': ShapeType.MINUS,

    # Flowchart
    'flowChartProcess': ShapeType.RECTANGLE,
    'flowChartAlternateProcess': ShapeType.ROUNDED_RECTANGLE,
    'flowChartDecision': ShapeType.DIAMOND,
    'flowChartTerminator': ShapeType.ROUNDED_RECTANGLE,
    'flowChartDocument': ShapeType.RECTANGLE,
    'flowChartConnector': ShapeType.ELLIPSE,
}

DASH_STYLES = {
    'dash': 'dashed',
    'lgDash': 'dashed',
    'sysDash': 'dashed',
    'dashDot': 'dashed',
    'lgDashDot': 'dashed',
    'dot': 'dotted',
    'sysDot': 'dotted',
}


def geometry_kind(preset: Optional[str]) -> ShapeType:
    return PRESET_GEOMETRY_MAP.get(preset or 'rect', ShapeType.RECTANGLE)


def preset_name(sp_pr) -> Optional[str]:
    geom = child(sp_pr, 'a:prstGeom')
    return geom.get('prst') if geom is not None else None


def parse_gradient_fill(grad_fill, theme_colors: Mapping[str, str]) -> Optional[Fill]:
    """a:gradFill with at least two resolvable stops, evenly spaced"""
    stops = children(child(grad_fill, 'a:gsLst'), 'a:gs')
    if len(stops) < 2:
        return None
    colors = [c for c in (color_in(gs, theme_colors) for gs in stops) if c]
    if len(colors) < 2:
        return None
    lin = child(grad_fill, 'a:lin')
    angle = angle_to_degrees(attr_int(lin, 'ang')) if lin is not None else 0
    return Fill(
        type='gradient',
        gradient=GradientFill(
            type='linear',
            angle=angle,
            stops=[GradientStop(position=i / (len(colors) - 1), color=c) for i, c in enumerate(colors)],
        ),
    )


def _style_fill(sp, theme_colors: Mapping[str, str]) -> Optional[Fill]:
    # p:style/a:fillRef supplies the theme fill when spPr declares none
    fill_ref = path(sp, 'p:style', 'a:fillRef')
    if fill_ref is None:
        return None
    if attr_int(fill_ref, 'idx') == 0:
        return Fill(type='none')
    color = color_in(fill_ref, theme_colors)
    return Fill(type='solid', color=color) if color else None


def parse_fill(sp_pr, theme_colors: Mapping[str, str], sp=None) -> Fill:
    """Solid, then explicit none, gradient, pattern; anything else gets the accent default"""
    solid = child(sp_pr, 'a:solidFill')
    if solid is not None:
        color = color_in(solid, theme_colors)
        if color:
            return Fill(type='solid', color=color)

    if child(sp_pr, 'a:noFill') is not None:
        return Fill(type='none')

    grad = child(sp_pr, 'a:gradFill')
    if grad is not None:
        fill = parse_gradient_fill(grad, theme_colors)
        if fill is not None:
            return fill

    patt = child(sp_pr, 'a:pattFill')
    if patt is not None:
        color = color_in(child(patt, 'a:fgClr'), theme_colors)
        if color:
            return Fill(type='pattern', color=color, pattern_type=patt.get('prst'))

    if sp is not None and grad is None and patt is None:
        fill = _style_fill(sp, theme_colors)
        if fill is not None:
            return fill

    return Fill(type='solid', color=DEFAULT_SHAPE_FILL)


def dash_style(ln) -> str:
    dash = child(ln, 'a:prstDash')
    if dash is None:
        return 'solid'
    return DASH_STYLES.get(dash.get('val'), 'solid')


def parse_stroke(sp_pr, theme_colors: Mapping[str, str], default_color: str = DEFAULT_OUTLINE_COLOR) -> Optional[Stroke]:
    """a:ln -> Stroke; None when there is no outline or it is explicitly unfilled"""
    ln = child(sp_pr, 'a:ln')
    if ln is None or child(ln, 'a:noFill') is not None:
        return None
    width = max(1, emu_to_pixels(attr_int(ln, 'w', EMU_PER_POINT)))
    color = color_in(child(ln, 'a:solidFill'), theme_colors) or default_color
    return Stroke(color=color, width=width, style=dash_style(ln))


def has_visible_outline(sp_pr) -> bool:
    ln = child(sp_pr, 'a:ln')
    return ln is not None and child(ln, 'a:noFill') is None


def parse_shape(sp, ctx: ParseContext, fallback: Optional[PlaceholderTransform] = None) -> Optional[ShapeElement]:
    """
    Parse a p:sp into a ShapeElement.

    Geometry comes from spPr/xfrm, or from fallback when the shape inherits
    its frame. Shapes that end up with no extent are dropped.
    """
    sp_pr = child(sp, 'p:spPr')
    if sp_pr is None:
        return None

    transform = shape_transform(sp)
    x = y = width = height = 0
    rotation = 0.0
    if transform is not None:
        x, y, width, height, rotation = transform.x, transform.y, transform.width, transform.height, transform.rotation
    if width == 0 and height == 0 and fallback is not None:
        x, y, width, height = fallback.x, fallback.y, fallback.width, fallback.height
    if width == 0 and height == 0:
        return None

    tx_body = child(sp, 'p:txBody')
    return ShapeElement(
        position={'x': x, 'y': y},
        size={'width': width, 'height': height},
        rotation=rotation,
        shape_type=geometry_kind(preset_name(sp_pr)),
        fill=parse_fill(sp_pr, ctx.theme_colors, sp),
        stroke=parse_stroke(sp_pr, ctx.theme_colors),
        text=parse_text_body(tx_body, ctx) if tx_body is not None else None,
        name=shape_name(sp),
    )


def parse_connector(cxn_sp, ctx: ParseContext) -> Optional[ShapeElement]:
    """
    p:cxnSp -> line shape. Horizontal and vertical connectors have a zero
    extent on one axis, so the final box is clamped to at least 1px each way.
    """
    sp_pr = child(cxn_sp, 'p:spPr')
    xfrm = child(sp_pr, 'a:xfrm')
    if xfrm is None or child(xfrm, 'a:off') is None or child(xfrm, 'a:ext') is None:
        return None
    transform = shape_transform(cxn_sp)
    if transform.is_empty:
        return None

    stroke = Stroke(color=DEFAULT_CONNECTOR_COLOR, width=1, style='solid')
    ln = child(sp_pr, 'a:ln')
    if ln is not None:
        stroke = Stroke(
            color=color_in(child(ln, 'a:solidFill'), ctx.theme_colors) or DEFAULT_CONNECTOR_COLOR,
            width=max(1, emu_to_pixels(attr_int(ln, 'w', EMU_PER_POINT))),
            style=dash_style(ln),
        )

    return ShapeElement(
        position={'x': transform.x, 'y': transform.y},
        size={'width': max(transform.width, 1), 'height': max(transform.height, 1)},
        rotation=transform.rotation,
        shape_type=ShapeType.LINE,
        fill=Fill(type='none'),
        stroke=stroke,
        name=shape_name(cxn_sp),
        flip_h=transform.flip_h or None,
        flip_v=transform.flip_v or None,
    )


def shape_name(sp) -> Optional[str]:
    for nv in ('p:nvSpPr', 'p:nvCxnSpPr', 'p:nvPicPr', 'p:nvGraphicFramePr'):
        c_nv_pr = path(sp, nv, 'p:cNvPr')
        if c_nv_pr is not None:
            return c_nv_pr.get('name') or None
    return None
