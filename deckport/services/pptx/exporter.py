"""
Package Export Service
Writes editor Documents back into .pptx packages with python-pptx.

Canvas pixels are mapped linearly onto a 10 x 5.625 inch slide. Elements are
written in ascending z_index so the package's shape tree order matches the
editor's paint order. Groups are flattened; tables are written as native
table frames.
"""

import asyncio
import base64
import binascii
import io
import logging
import zipfile
from typing import Dict, Iterable, List, Optional

import httpx
from lxml import etree
from pptx import Presentation
from pptx.dml.color import RGBColor
from pptx.enum.dml import MSO_LINE_DASH_STYLE
from pptx.enum.shapes import MSO_CONNECTOR, MSO_SHAPE
from pptx.enum.text import MSO_ANCHOR, MSO_AUTO_SIZE, PP_ALIGN
from pptx.oxml.ns import qn
from pptx.util import Emu, Inches, Pt

from deckport.config.settings import ExportConfig, get_config
from deckport.models.elements import (
    CellBorders,
    ElementBase,
    Fill,
    GroupElement,
    ImageElement,
    Padding,
    ShapeElement,
    ShapeType,
    Stroke,
    TableCell,
    TableElement,
    TextContent,
    TextElement,
)
from deckport.models.presentation import Background, Document, DocumentMetadata, ExportResult, Slide
from deckport.services.pptx.exceptions import ExportError, ImageEmbedFailure
from deckport.services.pptx.progress import ExportStage, ProgressCallback, ProgressTracker
from deckport.services.pptx.units import EMU_PER_INCH, pixels_to_emu, pixels_to_inches, round_half_up

logger = logging.getLogger(__name__)

BLANK_LAYOUT_INDEX = 6
APP_PROPERTIES_PART = 'docProps/app.xml'
EXTENDED_PROPERTIES_NS = 'http://schemas.openxmlformats.org/officeDocument/2006/extended-properties'

SHAPE_TYPE_EXPORT_MAP: Dict[ShapeType, MSO_SHAPE] = {
    ShapeType.RECTANGLE: MSO_SHAPE.RECTANGLE,
    ShapeType.ROUNDED_RECTANGLE: MSO_SHAPE.ROUNDED_RECTANGLE,
    ShapeType.ELLIPSE: MSO_SHAPE.OVAL,
    ShapeType.TRIANGLE: MSO_SHAPE.ISOSCELES_TRIANGLE,
    ShapeType.RIGHT_TRIANGLE: MSO_SHAPE.RIGHT_TRIANGLE,
    ShapeType.DIAMOND: MSO_SHAPE.DIAMOND,
    ShapeType.PENTAGON: MSO_SHAPE.REGULAR_PENTAGON,
    ShapeType.HEXAGON: MSO_SHAPE.HEXAGON,
    ShapeType.OCTAGON: MSO_SHAPE.OCTAGON,
    ShapeType.STAR5: MSO_SHAPE.STAR_5_POINT,
    ShapeType.STAR6: MSO_SHAPE.STAR_6_POINT,
    ShapeType.ARROW: MSO_SHAPE.RIGHT_ARROW,
    ShapeType.ARROW_RIGHT: MSO_SHAPE.RIGHT_ARROW,
    ShapeType.ARROW_LEFT: MSO_SHAPE.LEFT_ARROW,
    ShapeType.ARROW_UP: MSO_SHAPE.UP_ARROW,
    ShapeType.ARROW_DOWN: MSO_SHAPE.DOWN_ARROW,
    ShapeType.PLUS: MSO_SHAPE.MATH_PLUS,
    ShapeType.MINUS: MSO_SHAPE.MATH_MINUS,
    ShapeType.CLOUD: MSO_SHAPE.CLOUD,
    ShapeType.HEART: MSO_SHAPE.HEART,
    ShapeType.CALLOUT: MSO_SHAPE.RECTANGULAR_CALLOUT,
    ShapeType.LIGHTNING: MSO_SHAPE.LIGHTNING_BOLT,
    ShapeType.CUSTOM: MSO_SHAPE.RECTANGLE,
}

CLIP_SHAPE_EXPORT_MAP = {
    'ellipse': MSO_SHAPE.OVAL,
    'roundedRectangle': MSO_SHAPE.ROUNDED_RECTANGLE,
}

ALIGNMENT_EXPORT_MAP = {
    'left': PP_ALIGN.LEFT,
    'center': PP_ALIGN.CENTER,
    'right': PP_ALIGN.RIGHT,
    'justify': PP_ALIGN.JUSTIFY,
}

ANCHOR_EXPORT_MAP = {
    'top': MSO_ANCHOR.TOP,
    'middle': MSO_ANCHOR.MIDDLE,
    'bottom': MSO_ANCHOR.BOTTOM,
}

DASH_EXPORT_MAP = {
    'dashed': MSO_LINE_DASH_STYLE.DASH,
    'dotted': MSO_LINE_DASH_STYLE.ROUND_DOT,
}

BORDER_TAGS = (('left', 'a:lnL'), ('right', 'a:lnR'), ('top', 'a:lnT'), ('bottom', 'a:lnB'))
BORDER_DASH_VALUES = {'solid': 'solid', 'dashed': 'dash', 'dotted': 'sysDot'}

DEFAULT_FONT_FACE = 'Calibri'
DEFAULT_FONT_SIZE = 18
MAX_INDENT_LEVEL = 8


def hex_color(value: Optional[str]) -> Optional[RGBColor]:
    """'#RRGGBB' (or 'RRGGBB') to RGBColor; anything else is None"""
    if not value:
        return None
    digits = value.lstrip('#')
    if len(digits) == 3:
        digits = ''.join(c * 2 for c in digits)
    if len(digits) != 6:
        return None
    try:
        return RGBColor.from_string(digits.upper())
    except ValueError:
        return None


def flatten_elements(elements: Iterable[ElementBase]) -> List[ElementBase]:
    """Expand groups into their children, keeping paint order"""
    flat: List[ElementBase] = []
    for element in sorted(elements, key=lambda el: el.z_index):
        if isinstance(element, GroupElement):
            flat.extend(flatten_elements(element.children))
        else:
            flat.append(element)
    return flat


def decode_data_url(src: str) -> bytes:
    header, _, payload = src.partition(',')
    if not payload:
        raise ValueError("data URL has no payload")
    if header.endswith(';base64'):
        return base64.b64decode(payload, validate=False)
    return payload.encode('utf-8')


class CanvasMapper:
    """Maps editor canvas pixels onto slide EMU"""

    def __init__(self, config: ExportConfig):
        self.config = config

    def x(self, pixels: float) -> Emu:
        inches = pixels_to_inches(pixels, self.config.source_width_px, self.config.canvas_width_in)
        return Emu(round_half_up(inches * EMU_PER_INCH))

    def y(self, pixels: float) -> Emu:
        inches = pixels_to_inches(pixels, self.config.source_height_px, self.config.canvas_height_in)
        return Emu(round_half_up(inches * EMU_PER_INCH))

    def frame(self, element: ElementBase):
        """(left, top, width, height) for an element"""
        return (
            self.x(element.position.x),
            self.y(element.position.y),
            self.x(max(element.size.width, 1)),
            self.y(max(element.size.height, 1)),
        )

    def slide_size(self):
        return Inches(self.config.canvas_width_in), Inches(self.config.canvas_height_in)


class PackageExporter:
    """
    Converts one Document into package bytes.

    A single image that cannot be embedded becomes a grey placeholder
    rectangle plus a warning; only a failure to build or save the
    presentation as a whole fails the export.
    """

    def __init__(self, config: Optional[ExportConfig] = None):
        self.config = config or get_config().exporting
        self.mapper = CanvasMapper(self.config)
        self.stats = {
            "slides": 0,
            "elements": 0,
            "images": 0,
            "tables": 0,
            "image_failures": 0,
        }

    async def export_document(
        self,
        document: Document,
        on_progress: Optional[ProgressCallback] = None,
    ) -> ExportResult:
        tracker = ProgressTracker(on_progress)
        tracker.start(ExportStage.PREPARING)
        warnings: List[str] = []

        try:
            prs = self.new_presentation()
            remote_images = await self.fetch_remote_images(document)

            loop = asyncio.get_running_loop()
            slides = sorted(document.slides, key=lambda s: s.order)
            total = len(slides)
            for index, slide in enumerate(slides):
                # python-pptx is not thread-safe; slides are written one at a time
                await loop.run_in_executor(None, self.export_slide, prs, slide, remote_images, warnings)
                tracker.step(ExportStage.SLIDES, index + 1, total, f"Exporting slide {index + 1} of {total}...")

            tracker.start(ExportStage.FINALIZING)
            data = await loop.run_in_executor(None, self.save, prs, document.metadata, document.name)
        except ExportError as e:
            logger.error(f"Failed to export document: {e}")
            return ExportResult(success=False, error=e.message, warnings=warnings)
        except Exception as e:
            logger.exception(f"Unexpected export failure: {e}")
            return ExportResult(success=False, error=f"Failed to export presentation: {e}", warnings=warnings)

        tracker.complete(ExportStage.COMPLETE)
        logger.info(f"Export complete. Stats: {self.stats}")
        return ExportResult(success=True, data=data, warnings=warnings)

    def new_presentation(self):
        prs = Presentation()
        prs.slide_width, prs.slide_height = self.mapper.slide_size()
        return prs

    async def fetch_remote_images(self, document: Document) -> Dict[str, bytes]:
        """Download every http(s) image source once, up front"""
        urls = sorted({
            element.src
            for slide in document.slides
            for element in flatten_elements(slide.elements)
            if isinstance(element, ImageElement) and element.src.startswith(('http://', 'https://'))
        })
        if not urls or not self.config.fetch_remote_images:
            return {}

        fetched: Dict[str, bytes] = {}
        async with httpx.AsyncClient(timeout=self.config.remote_timeout, follow_redirects=True) as client:
            responses = await asyncio.gather(*(client.get(url) for url in urls), return_exceptions=True)
        for url, response in zip(urls, responses):
            if isinstance(response, Exception):
                logger.warning(f"Failed to fetch image {url}: {response}")
                continue
            if response.status_code != 200:
                logger.warning(f"Failed to fetch image {url}: HTTP {response.status_code}")
                continue
            fetched[url] = response.content
        logger.debug(f"Fetched {len(fetched)}/{len(urls)} remote images")
        return fetched

    def export_slide(self, prs, slide: Slide, remote_images: Dict[str, bytes], warnings: List[str]):
        """Append one slide: background, then every element in paint order"""
        out = prs.slides.add_slide(prs.slide_layouts[BLANK_LAYOUT_INDEX])
        self.write_background(out, slide.background)

        for element in flatten_elements(slide.elements):
            if isinstance(element, TextElement):
                self.add_text(out, element)
            elif isinstance(element, ShapeElement):
                self.add_shape(out, element)
            elif isinstance(element, ImageElement):
                self.add_image(out, element, remote_images, warnings)
            elif isinstance(element, TableElement):
                self.add_table(out, element, warnings)
            else:
                continue
            self.stats["elements"] += 1

        if slide.notes:
            out.notes_slide.notes_text_frame.text = slide.notes
        self.stats["slides"] += 1
        return out

    # === Backgrounds ===

    def write_background(self, out, background: Background) -> None:
        fill = out.background.fill
        if background.type == 'gradient' and background.gradient is not None:
            stops = background.gradient.stops
            fill.gradient()
            fill.gradient_angle = background.gradient.angle % 360
            for target, stop in zip(fill.gradient_stops, stops[:2]):
                color = hex_color(stop.color)
                if color is not None:
                    target.color.rgb = color
                target.position = min(max(stop.position, 0.0), 1.0)
            return

        # Image backgrounds keep their solid fallback
        color = hex_color(background.color) or RGBColor(0xFF, 0xFF, 0xFF)
        fill.solid()
        fill.fore_color.rgb = color

    # === Text ===

    def add_text(self, out, element: TextElement):
        box = out.shapes.add_textbox(*self.mapper.frame(element))
        if element.rotation:
            box.rotation = element.rotation
        if element.name:
            box.name = element.name

        frame = box.text_frame
        frame.word_wrap = element.style.word_wrap
        frame.vertical_anchor = ANCHOR_EXPORT_MAP[element.style.vertical_align]
        frame.auto_size = MSO_AUTO_SIZE.TEXT_TO_FIT_SHAPE if element.style.auto_fit else MSO_AUTO_SIZE.NONE
        set_margins(frame, element.style.padding)
        write_text(frame, element.content)
        return box

    # === Shapes ===

    def add_shape(self, out, element: ShapeElement):
        if element.shape_type is ShapeType.LINE:
            return self.add_line(out, element)

        auto_shape = SHAPE_TYPE_EXPORT_MAP.get(element.shape_type, MSO_SHAPE.RECTANGLE)
        shape = out.shapes.add_shape(auto_shape, *self.mapper.frame(element))
        if element.rotation:
            shape.rotation = element.rotation
        if element.name:
            shape.name = element.name
        write_fill(shape.fill, element.fill)
        write_stroke(shape.line, element.stroke)

        if element.text is not None and element.text.has_visible_text():
            frame = shape.text_frame
            frame.vertical_anchor = MSO_ANCHOR.MIDDLE
            frame.word_wrap = True
            write_text(frame, element.text, default_alignment='center')
        return shape

    def add_line(self, out, element: ShapeElement):
        left, top, width, height = self.mapper.frame(element)
        if element.size.height <= 1:
            begin = (left, top + height // 2)
            end = (left + width, top + height // 2)
        elif element.size.width <= 1:
            begin = (left + width // 2, top)
            end = (left + width // 2, top + height)
        else:
            begin, end = (left, top), (left + width, top + height)
        if element.flip_h:
            begin, end = (end[0], begin[1]), (begin[0], end[1])
        if element.flip_v:
            begin, end = (begin[0], end[1]), (end[0], begin[1])

        connector = out.shapes.add_connector(MSO_CONNECTOR.STRAIGHT, begin[0], begin[1], end[0], end[1])
        if element.rotation:
            connector.rotation = element.rotation
        stroke = element.stroke
        if stroke is None and element.fill is not None and element.fill.color:
            # Lines painted only by fill take the fill colour as their stroke
            stroke = Stroke(color=element.fill.color)
        write_stroke(connector.line, stroke)
        return connector

    # === Images ===

    def image_bytes(self, element: ImageElement, remote_images: Dict[str, bytes]) -> bytes:
        src = element.src
        try:
            if src.startswith('data:'):
                return decode_data_url(src)
            if src.startswith(('http://', 'https://')):
                if src not in remote_images:
                    raise ImageEmbedFailure(element.id, f"Image {element.id} could not be downloaded: {src}")
                return remote_images[src]
            with open(src, 'rb') as f:
                return f.read()
        except (OSError, ValueError, binascii.Error) as e:
            raise ImageEmbedFailure(element.id, f"Image {element.id} could not be read", cause=e)

    def add_image(self, out, element: ImageElement, remote_images: Dict[str, bytes], warnings: List[str]):
        left, top, width, height = self.mapper.frame(element)
        try:
            data = self.image_bytes(element, remote_images)
            try:
                picture = out.shapes.add_picture(io.BytesIO(data), left, top, width, height)
            except (OSError, ValueError, KeyError, SyntaxError) as e:
                raise ImageEmbedFailure(element.id, f"Image {element.id} could not be embedded", cause=e)
        except ImageEmbedFailure as e:
            message = str(e)
            logger.warning(message)
            warnings.append(message)
            self.stats["image_failures"] += 1
            return self.add_image_placeholder(out, element)

        if element.rotation:
            picture.rotation = element.rotation
        if element.alt:
            picture._element.nvPicPr.cNvPr.set('descr', element.alt)
        clip = CLIP_SHAPE_EXPORT_MAP.get(element.clip_shape or '')
        if clip is not None:
            picture.auto_shape_type = clip
        self.stats["images"] += 1
        return picture

    def add_image_placeholder(self, out, element: ImageElement):
        shape = out.shapes.add_shape(MSO_SHAPE.RECTANGLE, *self.mapper.frame(element))
        shape.fill.solid()
        shape.fill.fore_color.rgb = hex_color(self.config.placeholder_color)
        shape.line.fill.background()
        if element.rotation:
            shape.rotation = element.rotation
        return shape

    # === Tables ===

    def add_table(self, out, element: TableElement, warnings: List[str]):
        left, top, width, height = self.mapper.frame(element)
        graphic_frame = out.shapes.add_table(element.rows, element.columns, left, top, width, height)
        table = graphic_frame.table
        # Cell fills are explicit; the default style's banding would override them
        table.first_row = False
        table.horz_banding = False

        for index, column_width in enumerate(element.column_widths):
            table.columns[index].width = self.mapper.x(max(column_width, 1))
        for index, row_height in enumerate(element.row_heights):
            table.rows[index].height = self.mapper.y(max(row_height, 1))

        for r, row in enumerate(element.cells):
            for c, cell in enumerate(row):
                target = table.cell(r, c)
                if cell.merged:
                    continue
                fill = cell.fill
                if fill is None and r == 0:
                    fill = element.style.header_row_fill
                if fill is None:
                    fill = element.style.default_cell_fill
                write_cell(target, cell, fill)

        for r, row in enumerate(element.cells):
            for c, cell in enumerate(row):
                row_span, col_span = cell.row_span or 1, cell.col_span or 1
                if cell.merged or (row_span == 1 and col_span == 1):
                    continue
                last_row = min(r + row_span, element.rows) - 1
                last_col = min(c + col_span, element.columns) - 1
                try:
                    table.cell(r, c).merge(table.cell(last_row, last_col))
                except ValueError as e:
                    message = f"Table {element.id}: could not merge cell ({r}, {c}): {e}"
                    logger.warning(message)
                    warnings.append(message)

        self.stats["tables"] += 1
        return graphic_frame

    # === Package ===

    def save(self, prs, metadata: DocumentMetadata, name: str) -> bytes:
        props = prs.core_properties
        props.title = metadata.title or name
        props.author = metadata.author or ''
        if metadata.subject:
            props.subject = metadata.subject
        if metadata.revision and metadata.revision.isdigit():
            props.revision = int(metadata.revision)

        stream = io.BytesIO()
        try:
            prs.save(stream)
        except (OSError, ValueError) as e:
            raise ExportError("Failed to write presentation package", cause=e)
        data = stream.getvalue()
        if metadata.company:
            data = set_company(data, metadata.company)
        return data


def set_margins(frame, padding: Padding) -> None:
    frame.margin_left = Emu(pixels_to_emu(padding.left))
    frame.margin_right = Emu(pixels_to_emu(padding.right))
    frame.margin_top = Emu(pixels_to_emu(padding.top))
    frame.margin_bottom = Emu(pixels_to_emu(padding.bottom))


def write_text(frame, content: TextContent, default_alignment: Optional[str] = None) -> None:
    """Fill a text frame paragraph by paragraph, run by run"""
    paragraphs = content.paragraphs or []
    for index, paragraph in enumerate(paragraphs):
        target = frame.paragraphs[0] if index == 0 else frame.add_paragraph()
        alignment = default_alignment if default_alignment and paragraph.alignment == 'left' else paragraph.alignment
        target.alignment = ALIGNMENT_EXPORT_MAP.get(alignment, PP_ALIGN.LEFT)
        if paragraph.indent_level:
            target.level = min(paragraph.indent_level, MAX_INDENT_LEVEL)
        if paragraph.line_spacing:
            target.line_spacing = paragraph.line_spacing
        if paragraph.space_before:
            target.space_before = Pt(paragraph.space_before)
        if paragraph.space_after:
            target.space_after = Pt(paragraph.space_after)

        for run in paragraph.runs:
            if run.text == '\n':
                target.add_line_break()
                continue
            out = target.add_run()
            out.text = run.text
            style = run.style
            font = out.font
            font.name = style.font_family or DEFAULT_FONT_FACE
            font.size = Pt(style.font_size or DEFAULT_FONT_SIZE)
            font.bold = style.font_weight == 'bold' or (isinstance(style.font_weight, int) and style.font_weight >= 600)
            font.italic = style.font_style == 'italic'
            font.underline = style.text_decoration == 'underline'
            if style.text_decoration == 'line-through':
                out._r.get_or_add_rPr().set('strike', 'sngStrike')
            color = hex_color(style.color)
            if color is not None:
                font.color.rgb = color


def write_fill(fill, value: Optional[Fill]) -> None:
    if value is None or value.type == 'none':
        fill.background()
        return
    if value.type == 'gradient' and value.gradient is not None and len(value.gradient.stops) >= 2:
        fill.gradient()
        fill.gradient_angle = value.gradient.angle % 360
        for target, stop in zip(fill.gradient_stops, value.gradient.stops[:2]):
            color = hex_color(stop.color)
            if color is not None:
                target.color.rgb = color
            target.position = min(max(stop.position, 0.0), 1.0)
        return

    color = hex_color(value.color)
    if value.type == 'gradient' and value.gradient is not None and value.gradient.stops:
        color = color or hex_color(value.gradient.stops[0].color)
    if color is None:
        fill.background()
        return
    fill.solid()
    fill.fore_color.rgb = color


def write_stroke(line, stroke: Optional[Stroke]) -> None:
    if stroke is None or stroke.style == 'none' or stroke.width <= 0:
        line.fill.background()
        return
    color = hex_color(stroke.color)
    if color is None:
        line.fill.background()
        return
    line.color.rgb = color
    line.width = Emu(pixels_to_emu(stroke.width))
    dash = DASH_EXPORT_MAP.get(stroke.style)
    if dash is not None:
        line.dash_style = dash


def _border_line(tag: str, stroke: Stroke):
    if stroke.style == 'none' or stroke.width <= 0 or hex_color(stroke.color) is None:
        ln = etree.Element(qn(tag), w='0')
        etree.SubElement(ln, qn('a:noFill'))
        return ln
    ln = etree.Element(qn(tag), w=str(pixels_to_emu(stroke.width)))
    solid = etree.SubElement(ln, qn('a:solidFill'))
    etree.SubElement(solid, qn('a:srgbClr'), val=str(hex_color(stroke.color)))
    etree.SubElement(ln, qn('a:prstDash'), val=BORDER_DASH_VALUES.get(stroke.style, 'solid'))
    return ln


def write_borders(cell, borders: CellBorders) -> None:
    """Border lines precede any fill inside a:tcPr"""
    tc_pr = cell._tc.get_or_add_tcPr()
    for side, tag in reversed(BORDER_TAGS):
        existing = tc_pr.find(qn(tag))
        if existing is not None:
            tc_pr.remove(existing)
        tc_pr.insert(0, _border_line(tag, getattr(borders, side)))


def write_cell(target, cell: TableCell, fill: Optional[Fill]) -> None:
    frame = target.text_frame
    write_text(frame, cell.content)
    target.margin_left = Emu(pixels_to_emu(cell.padding.left))
    target.margin_right = Emu(pixels_to_emu(cell.padding.right))
    target.margin_top = Emu(pixels_to_emu(cell.padding.top))
    target.margin_bottom = Emu(pixels_to_emu(cell.padding.bottom))
    target.vertical_anchor = ANCHOR_EXPORT_MAP[cell.vertical_align]

    write_borders(target, cell.borders)
    color = hex_color(fill.color) if fill is not None and fill.type == 'solid' else None
    if color is not None:
        target.fill.solid()
        target.fill.fore_color.rgb = color
    else:
        target.fill.background()


def set_company(data: bytes, company: str) -> bytes:
    """Rewrite docProps/app.xml with a Company element"""
    source = zipfile.ZipFile(io.BytesIO(data))
    if APP_PROPERTIES_PART not in source.namelist():
        return data

    root = etree.fromstring(source.read(APP_PROPERTIES_PART))
    tag = f"{{{EXTENDED_PROPERTIES_NS}}}Company"
    node = root.find(tag)
    if node is None:
        node = etree.SubElement(root, tag)
    node.text = company

    output = io.BytesIO()
    with zipfile.ZipFile(output, 'w', zipfile.ZIP_DEFLATED) as target:
        for info in source.infolist():
            if info.filename == APP_PROPERTIES_PART:
                target.writestr(info, etree.tostring(root, xml_declaration=True, encoding='UTF-8', standalone=True))
            else:
                target.writestr(info, source.read(info.filename))
    source.close()
    return output.getvalue()


async def export_package(
    document: Document,
    on_progress: Optional[ProgressCallback] = None,
    *,
    config: Optional[ExportConfig] = None,
) -> ExportResult:
    """Export a Document to package bytes; image problems become warnings"""
    exporter = PackageExporter(config)
    return await exporter.export_document(document, on_progress)


def export_package_sync(
    document: Document,
    on_progress: Optional[ProgressCallback] = None,
    *,
    config: Optional[ExportConfig] = None,
) -> ExportResult:
    """Blocking wrapper for scripts and the CLI"""
    return asyncio.run(export_package(document, on_progress, config=config))
