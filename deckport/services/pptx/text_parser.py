"""
Text body parsing: paragraphs, runs, field runs and run-level styling.
"""

import logging
from typing import Optional

from deckport.models.elements import Padding, Paragraph, TextBoxStyle, TextContent, TextRun, TextStyle
from deckport.services.pptx.colors import color_in
from deckport.services.pptx.context import ParseContext
from deckport.services.pptx.units import emu_to_pixels, font_size_points, percent_to_decimal, round_half_up
from deckport.services.pptx.xml_utils import (
    attr_bool,
    attr_int,
    child,
    children,
    element_children,
    find_first,
    local_name,
    path,
    qn,
    text_of,
)

logger = logging.getLogger(__name__)

DEFAULT_FONT_SIZE = 18
DEFAULT_TEXT_COLOR = '#000000'
DEFAULT_BOX_PADDING = 5

ALIGNMENT_MAP = {
    'l': 'left',
    'ctr': 'center',
    'r': 'right',
    'just': 'justify',
    'dist': 'justify',
}

ANCHOR_MAP = {
    't': 'top',
    'ctr': 'middle',
    'b': 'bottom',
}

INSET_ATTRS = {
    'left': 'lIns',
    'top': 'tIns',
    'right': 'rIns',
    'bottom': 'bIns',
}


def default_text_style(ctx: ParseContext) -> TextStyle:
    return TextStyle(
        font_family=ctx.font_scheme.minor_font,
        font_size=DEFAULT_FONT_SIZE,
        font_weight='normal',
        font_style='normal',
        text_decoration='none',
        color=DEFAULT_TEXT_COLOR,
    )


def apply_run_properties(style: TextStyle, r_pr, ctx: ParseContext) -> TextStyle:
    """Overlay an a:rPr / a:defRPr onto a style, returning a new style"""
    if r_pr is None:
        return style
    updates = {}

    sz = attr_int(r_pr, 'sz')
    if sz > 0:
        updates['font_size'] = font_size_points(sz, ctx.scale_factor)

    bold = attr_bool(r_pr, 'b')
    if bold is not None:
        updates['font_weight'] = 'bold' if bold else 'normal'

    italic = attr_bool(r_pr, 'i')
    if italic is not None:
        updates['font_style'] = 'italic' if italic else 'normal'

    underline = r_pr.get('u')
    if underline is not None:
        updates['text_decoration'] = 'underline' if underline != 'none' else 'none'

    # Strike wins over underline; the model carries a single decoration
    strike = r_pr.get('strike')
    if strike is not None and strike != 'noStrike':
        updates['text_decoration'] = 'line-through'

    latin = child(r_pr, 'a:latin')
    if latin is not None and latin.get('typeface'):
        updates['font_family'] = ctx.resolve_font(latin.get('typeface'))

    solid = child(r_pr, 'a:solidFill')
    if solid is not None:
        color = color_in(solid, ctx.theme_colors)
        if color:
            updates['color'] = color

    if not updates:
        return style
    return style.model_copy(update=updates)


def _list_level_style(lst_style, level: int):
    if lst_style is None:
        return None
    return child(lst_style, f"a:lvl{level + 1}pPr")


def _paragraph(p_el, base_style: TextStyle, lst_style, ctx: ParseContext) -> Paragraph:
    p_pr = child(p_el, 'a:pPr')
    level = attr_int(p_pr, 'lvl')
    level_pr = _list_level_style(lst_style, level)

    style = apply_run_properties(base_style, child(level_pr, 'a:defRPr') if level_pr is not None else None, ctx)

    algn = (p_pr.get('algn') if p_pr is not None else None) or (level_pr.get('algn') if level_pr is not None else None)
    paragraph = Paragraph(alignment=ALIGNMENT_MAP.get(algn, 'left'))

    if p_pr is not None:
        if level:
            paragraph.indent_level = level
        if child(p_pr, 'a:buNone') is not None:
            paragraph.bullet_type = 'none'
        elif child(p_pr, 'a:buAutoNum') is not None:
            paragraph.bullet_type = 'number'
        elif child(p_pr, 'a:buChar') is not None:
            paragraph.bullet_type = 'bullet'
            paragraph.bullet_char = child(p_pr, 'a:buChar').get('char')
        spc_pct = path(p_pr, 'a:lnSpc', 'a:spcPct')
        if spc_pct is not None:
            paragraph.line_spacing = percent_to_decimal(attr_int(spc_pct, 'val'))
        before = path(p_pr, 'a:spcBef', 'a:spcPts')
        if before is not None:
            paragraph.space_before = attr_int(before, 'val') / 100
        after = path(p_pr, 'a:spcAft', 'a:spcPts')
        if after is not None:
            paragraph.space_after = attr_int(after, 'val') / 100

    for node in element_children(p_el):
        tag = local_name(node)
        if tag == 'r':
            text = text_of(child(node, 'a:t'))
            if not text:
                continue
        elif tag == 'fld':
            # Field runs carry their last rendered value (slide number, date)
            text = text_of(child(node, 'a:t'))
        elif tag == 'br':
            text = '\n'
        else:
            continue
        run_style = apply_run_properties(style, child(node, 'a:rPr'), ctx)
        paragraph.runs.append(TextRun(text=text, style=run_style))

    if not paragraph.runs:
        stray = text_of(p_el).strip()
        if stray:
            paragraph.runs.append(TextRun(text=stray, style=style))
    return paragraph


def parse_text_body(tx_body, ctx: ParseContext, base_style: Optional[TextStyle] = None) -> TextContent:
    """
    Parse a p:txBody / a:txBody into paragraphs of styled runs.

    Empty paragraphs after the first are dropped; a body with no paragraphs
    yields a single empty one so callers always get a usable structure.
    """
    style = base_style or default_text_style(ctx)
    lst_style = child(tx_body, 'a:lstStyle')

    paragraphs = []
    for p_el in children(tx_body, 'a:p'):
        paragraph = _paragraph(p_el, style, lst_style, ctx)
        if paragraph.runs or not paragraphs:
            paragraphs.append(paragraph)

    if not paragraphs:
        paragraphs.append(Paragraph(runs=[TextRun(text='', style=style)]))
    return TextContent(paragraphs=paragraphs)


def has_visible_text(tx_body) -> bool:
    """True when any run or field carries non-whitespace text"""
    if tx_body is None:
        return False
    for t in tx_body.iter(qn('a:t')):
        if (t.text or '').strip():
            return True
    return False


def body_box_style(tx_body, ctx: ParseContext) -> TextBoxStyle:
    """Text box insets, anchoring and wrapping from a:bodyPr"""
    box = TextBoxStyle()
    body_pr = child(tx_body, 'a:bodyPr')
    if body_pr is None:
        return box

    if any(body_pr.get(attr) is not None for attr in INSET_ATTRS.values()):
        padding = {}
        for name, attr in INSET_ATTRS.items():
            if body_pr.get(attr) is None:
                padding[name] = DEFAULT_BOX_PADDING
            else:
                padding[name] = round_half_up(emu_to_pixels(attr_int(body_pr, attr)) * ctx.scale_factor)
        box.padding = Padding(**padding)

    anchor = body_pr.get('anchor')
    if anchor in ANCHOR_MAP:
        box.vertical_align = ANCHOR_MAP[anchor]
    if body_pr.get('wrap') == 'none':
        box.word_wrap = False
    if find_first(body_pr, 'a:normAutofit') is not None or find_first(body_pr, 'a:spAutoFit') is not None:
        box.auto_fit = True
    return box
