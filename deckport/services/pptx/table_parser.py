"""
Table parsing from p:graphicFrame elements.
"""

import logging
from typing import List, Mapping, Optional

from deckport.models.elements import CellBorders, Fill, Stroke, TableCell, TableElement, TableStyle, TextContent, TextStyle
from deckport.services.pptx.colors import color_in
from deckport.services.pptx.context import ParseContext
from deckport.services.pptx.shape_parser import dash_style, shape_name
from deckport.services.pptx.text_parser import ANCHOR_MAP, parse_text_body
from deckport.services.pptx.units import EMU_PER_POINT, emu_to_pixels, round_half_up
from deckport.services.pptx.xml_utils import attr_bool, attr_int, child, children, find_first, read_transform

logger = logging.getLogger(__name__)

TABLE_URI = 'http://schemas.openxmlformats.org/drawingml/2006/table'
EMPTY_CELL_FONT_SIZE = 14
DEFAULT_BORDER_COLOR = '#000000'

BORDER_SIDES = {
    'left': 'a:lnL',
    'right': 'a:lnR',
    'top': 'a:lnT',
    'bottom': 'a:lnB',
}


def _empty_content() -> TextContent:
    return TextContent.empty(TextStyle(font_size=EMPTY_CELL_FONT_SIZE))


def _border(tc_pr, tag: str, theme_colors: Mapping[str, str]) -> Stroke:
    ln = child(tc_pr, tag)
    if ln is None or child(ln, 'a:noFill') is not None:
        return Stroke.none()
    return Stroke(
        color=color_in(child(ln, 'a:solidFill'), theme_colors) or DEFAULT_BORDER_COLOR,
        width=max(1, round_half_up(attr_int(ln, 'w', EMU_PER_POINT) / EMU_PER_POINT)),
        style=dash_style(ln),
    )


def parse_cell_borders(tc_pr, theme_colors: Mapping[str, str]) -> CellBorders:
    """Sides the cell does not declare get an explicit no-border"""
    if tc_pr is None:
        return CellBorders()
    return CellBorders(**{side: _border(tc_pr, tag, theme_colors) for side, tag in BORDER_SIDES.items()})


def _parse_cell(tc, ctx: ParseContext) -> TableCell:
    tx_body = child(tc, 'a:txBody')
    tc_pr = child(tc, 'a:tcPr')

    fill: Optional[Fill] = None
    color = color_in(child(tc_pr, 'a:solidFill'), ctx.theme_colors)
    if color:
        fill = Fill(type='solid', color=color)

    anchor = tc_pr.get('anchor') if tc_pr is not None else None
    grid_span = attr_int(tc, 'gridSpan', 1)
    row_span = attr_int(tc, 'rowSpan', 1)
    merged = bool(attr_bool(tc, 'hMerge')) or bool(attr_bool(tc, 'vMerge'))

    return TableCell(
        content=_empty_content() if merged or tx_body is None else parse_text_body(tx_body, ctx),
        fill=fill,
        borders=parse_cell_borders(tc_pr, ctx.theme_colors),
        vertical_align=ANCHOR_MAP.get(anchor, 'middle'),
        col_span=grid_span if grid_span > 1 else None,
        row_span=row_span if row_span > 1 else None,
        merged=merged,
    )


def parse_graphic_frame(frame, ctx: ParseContext) -> List[TableElement]:
    """
    p:graphicFrame -> table elements (zero or one).

    Frames holding charts, diagrams or OLE objects yield nothing. Column widths
    come from the table grid, or split the frame evenly by the first row's cell
    count; rows are padded or truncated so the grid is always rectangular.
    """
    transform = read_transform(child(frame, 'p:xfrm')) or read_transform(find_first(frame, 'a:xfrm'))
    if transform is None or transform.is_empty:
        return []

    tbl = find_first(frame, 'a:tbl')
    if tbl is None:
        graphic_data = find_first(frame, 'a:graphicData')
        if graphic_data is not None and graphic_data.get('uri') != TABLE_URI:
            logger.debug(f"Skipping graphic frame with content {graphic_data.get('uri')}")
        return []

    rows = children(tbl, 'a:tr')
    if not rows:
        return []

    column_widths: List[float] = [emu_to_pixels(attr_int(col, 'w')) for col in children(child(tbl, 'a:tblGrid'), 'a:gridCol')]
    if not column_widths:
        first_count = len(children(rows[0], 'a:tc'))
        column_widths = [transform.width / max(first_count, 1)] * first_count
    columns = len(column_widths)
    if columns == 0:
        return []

    row_heights: List[float] = []
    cells: List[List[TableCell]] = []
    for tr in rows:
        row_heights.append(emu_to_pixels(attr_int(tr, 'h')) or round_half_up(transform.height / len(rows)))
        row = [_parse_cell(tc, ctx) for tc in children(tr, 'a:tc')[:columns]]
        while len(row) < columns:
            row.append(TableCell(content=_empty_content()))
        cells.append(row)

    tbl_pr = child(tbl, 'a:tblPr')
    header_fill = None
    if attr_bool(tbl_pr, 'firstRow') and cells and cells[0] and cells[0][0].fill is not None:
        header_fill = cells[0][0].fill

    table = TableElement(
        position={'x': transform.x, 'y': transform.y},
        size={'width': transform.width, 'height': transform.height},
        rows=len(rows),
        columns=columns,
        cells=cells,
        column_widths=column_widths,
        row_heights=row_heights,
        style=TableStyle(border_collapse=True, header_row_fill=header_fill),
        name=shape_name(frame),
    )
    return [table]
