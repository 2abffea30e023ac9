"""
Slide assembly: layers, z-order, groups and per-element scaling.

Paint order on an imported slide is:
  1. shapes and frames unwrapped from mc:AlternateContent
  2. master layer elements
  3. layout layer elements
  4. the slide's own shape tree, in document order
"""

import logging
from typing import Iterable, List, Optional, Set

from deckport.models.elements import ElementBase, TableElement, TextElement
from deckport.models.presentation import Background, PlaceholderTransform, Slide
from deckport.services.pptx.background_parser import default_background, part_background
from deckport.services.pptx.classifier import ElementKind, classify, resolve_shape_geometry, shape_facts
from deckport.services.pptx.context import ParseContext
from deckport.services.pptx.image_parser import parse_picture, parse_picture_fill_shape
from deckport.services.pptx.placeholders import LayoutBundle, PlaceholderMap, collect_filled_placeholders, placeholder_info
from deckport.services.pptx.scaler import ZIndexCounter, scale_element
from deckport.services.pptx.shape_parser import has_visible_outline, parse_connector, parse_shape, shape_name
from deckport.services.pptx.table_parser import parse_graphic_frame
from deckport.services.pptx.text_parser import body_box_style, has_visible_text, parse_text_body
from deckport.services.pptx.units import EMU_PER_PIXEL
from deckport.services.pptx.xml_utils import attr_int, child, children, element_children, find_first, local_name, path, qn, shape_transform

logger = logging.getLogger(__name__)


def parse_text_element(sp, frame: PlaceholderTransform, rotation: float, ctx: ParseContext) -> Optional[TextElement]:
    """Text box from a shape's body; dropped when no run carries visible text"""
    tx_body = child(sp, 'p:txBody')
    if tx_body is None:
        return None
    content = parse_text_body(tx_body, ctx)
    if not content.has_visible_text():
        return None
    return TextElement(
        position={'x': frame.x, 'y': frame.y},
        size={'width': frame.width, 'height': frame.height},
        rotation=rotation,
        content=content,
        style=body_box_style(tx_body, ctx),
        name=shape_name(sp),
    )


def parse_shape_element(sp, ctx: ParseContext, layout_placeholders: PlaceholderMap) -> Optional[ElementBase]:
    """
    Classify a slide p:sp and parse it as text, shape or picture.

    Shapes without their own frame inherit one from the layout placeholder
    they point at, or from the default placeholder frames.
    """
    if child(child(sp, 'p:spPr'), 'a:blipFill') is not None:
        image = parse_picture_fill_shape(sp, ctx)
        if image is not None:
            return image

    transform = shape_transform(sp)
    frame = resolve_shape_geometry(transform, placeholder_info(sp), layout_placeholders)
    if frame is None:
        return None
    rotation = transform.rotation if transform is not None else 0

    kind = classify(shape_facts(sp))
    if kind is ElementKind.TEXT:
        return parse_text_element(sp, frame, rotation, ctx)
    if kind is ElementKind.SHAPE:
        return parse_shape(sp, ctx, fallback=frame)
    return None


def _group_offsets(grp_sp):
    """(scale_x, scale_y, offset_x, offset_y) mapping child space to parent pixels"""
    xfrm = path(grp_sp, 'p:grpSpPr', 'a:xfrm')
    off, ext = child(xfrm, 'a:off'), child(xfrm, 'a:ext')
    ch_off, ch_ext = child(xfrm, 'a:chOff'), child(xfrm, 'a:chExt')

    scale_x = scale_y = 1.0
    if ext is not None and ch_ext is not None:
        if attr_int(ch_ext, 'cx') > 0:
            scale_x = attr_int(ext, 'cx') / attr_int(ch_ext, 'cx')
        if attr_int(ch_ext, 'cy') > 0:
            scale_y = attr_int(ext, 'cy') / attr_int(ch_ext, 'cy')

    offset_x = offset_y = 0.0
    if off is not None and ch_off is not None:
        offset_x = (attr_int(off, 'x') - attr_int(ch_off, 'x') * scale_x) / EMU_PER_PIXEL
        offset_y = (attr_int(off, 'y') - attr_int(ch_off, 'y') * scale_y) / EMU_PER_PIXEL
    return scale_x, scale_y, offset_x, offset_y


def _place_in_group(element: ElementBase, scale_x: float, scale_y: float, offset_x: float, offset_y: float) -> None:
    element.position.x = element.position.x * scale_x + offset_x
    element.position.y = element.position.y * scale_y + offset_y
    element.size.width = element.size.width * scale_x
    element.size.height = element.size.height * scale_y
    if isinstance(element, TableElement):
        element.column_widths = [w * scale_x for w in element.column_widths]
        element.row_heights = [h * scale_y for h in element.row_heights]


def parse_group(grp_sp, ctx: ParseContext, layout_placeholders: PlaceholderMap) -> List[ElementBase]:
    """
    Flatten a p:grpSp into slide-space elements.

    Each child is mapped from the group's child coordinate space into the
    parent's: position * (ext / chExt) + (off - chOff * scale). Nested groups
    compose the mapping level by level.
    """
    scale_x, scale_y, offset_x, offset_y = _group_offsets(grp_sp)
    elements: List[ElementBase] = []
    for node in element_children(grp_sp):
        for element in _parse_node_safely(node, ctx, layout_placeholders, 'group'):
            _place_in_group(element, scale_x, scale_y, offset_x, offset_y)
            elements.append(element)
    return elements


def _parse_node(node, ctx: ParseContext, layout_placeholders: PlaceholderMap) -> List[ElementBase]:
    tag = local_name(node)
    if tag == 'sp':
        element = parse_shape_element(node, ctx, layout_placeholders)
    elif tag == 'pic':
        element = parse_picture(node, ctx)
    elif tag == 'cxnSp':
        element = parse_connector(node, ctx)
    elif tag == 'graphicFrame':
        return list(parse_graphic_frame(node, ctx))
    elif tag == 'grpSp':
        return parse_group(node, ctx, layout_placeholders)
    else:
        return []
    return [element] if element is not None else []


def _parse_node_safely(node, ctx: ParseContext, layout_placeholders: PlaceholderMap, where: str) -> List[ElementBase]:
    """_parse_node, except a failure drops only this node with a warning"""
    try:
        return _parse_node(node, ctx, layout_placeholders)
    except Exception as e:
        ctx.warn(f"Skipped {local_name(node)} in {where}: {type(e).__name__}: {e}")
        return []


def _parse_layer_shape(sp, ctx: ParseContext, suppressed: Set[str]) -> Optional[ElementBase]:
    ref = placeholder_info(sp)
    if ref is not None and any(key in suppressed for key in ref.keys()):
        return None

    sp_pr = child(sp, 'p:spPr')
    has_blip = find_first(sp_pr, 'a:blipFill') is not None
    has_fill = has_blip or any(find_first(sp_pr, tag) is not None for tag in ('a:solidFill', 'a:gradFill', 'a:pattFill'))
    has_line = has_visible_outline(sp_pr)
    has_text = has_visible_text(find_first(sp, 'p:txBody'))
    transform = shape_transform(sp)

    if transform is not None and (has_fill or has_line or has_text):
        if has_blip:
            image = parse_picture_fill_shape(sp, ctx)
            if image is not None:
                return image
        if (has_fill or has_line) and not has_blip:
            return parse_shape(sp, ctx)
        if has_text:
            frame = PlaceholderTransform(x=transform.x, y=transform.y, width=transform.width, height=transform.height)
            return parse_text_element(sp, frame, transform.rotation, ctx)
        return None

    if ref is None and (has_fill or has_line) and transform is None:
        # Frameless decoration; parse_shape drops it unless it gains an extent
        return parse_shape(sp, ctx)
    return None


def parse_layer_elements(root, ctx: ParseContext, suppressed: Optional[Set[str]] = None) -> List[ElementBase]:
    """
    Visible elements of a master or layout shape tree: pictures, painted
    shapes, text-bearing placeholders the layer above does not override,
    tables, connectors and groups. Positions are in source pixels.
    """
    suppressed = suppressed or set()
    sp_tree = path(root, 'p:cSld', 'p:spTree')
    where = ctx.part_name or 'layer'
    elements: List[ElementBase] = []
    for node in element_children(sp_tree):
        if local_name(node) != 'sp':
            elements.extend(_parse_node_safely(node, ctx, {}, where))
            continue
        try:
            element = _parse_layer_shape(node, ctx, suppressed)
        except Exception as e:
            ctx.warn(f"Skipped sp in {where}: {type(e).__name__}: {e}")
            continue
        if element is not None:
            elements.append(element)
    return elements


def _alternate_content_elements(sp_tree, ctx: ParseContext, layout_placeholders: PlaceholderMap) -> List[ElementBase]:
    elements: List[ElementBase] = []
    for block in children(sp_tree, 'mc:AlternateContent'):
        source = child(block, 'mc:Choice')
        if source is None:
            source = child(block, 'mc:Fallback')
        if source is None:
            continue
        for node in source.iter(qn('p:graphicFrame'), qn('p:sp')):
            elements.extend(_parse_node_safely(node, ctx, layout_placeholders, 'alternate content'))
    return elements


def resolve_slide_background(root, ctx: ParseContext, inherited: Optional[Background]) -> Background:
    """The slide's own paint unless it is missing or plain white"""
    background = part_background(root, ctx.theme_colors, ctx.bg_fill_styles, ctx.image_map)
    if background is None or background.is_default_white():
        return inherited or background or default_background()
    return background


def parse_slide(
    root,
    index: int,
    ctx: ParseContext,
    bundle: Optional[LayoutBundle] = None,
    include_layers: bool = True,
) -> Slide:
    """
    Build a Slide from a parsed slide part.

    Every element is scaled onto the target canvas as it is placed, and
    z-indices are issued densely in paint order.
    """
    inherited = bundle.background if bundle is not None else None
    background = resolve_slide_background(root, ctx, inherited)
    layout_id = bundle.layout_path if bundle is not None else None
    hidden = root.get('show') in ('0', 'false')

    sp_tree = path(root, 'p:cSld', 'p:spTree')
    if sp_tree is None:
        return Slide(order=index, background=background, layout_id=layout_id, hidden=hidden)

    layout_placeholders = bundle.placeholders if bundle is not None else {}
    counter = ZIndexCounter()
    elements: List[ElementBase] = []

    def place(batch: Iterable[ElementBase]) -> None:
        for element in batch:
            element.z_index = counter.next()
            elements.append(scale_element(element, ctx.scale_factor, ctx.target_height, ctx.overflow_tolerance))

    place(_alternate_content_elements(sp_tree, ctx, layout_placeholders))

    if include_layers and bundle is not None:
        slide_filled = collect_filled_placeholders(sp_tree)
        if bundle.master_root is not None:
            master_ctx = ctx.with_images(bundle.master_images, bundle.master_path)
            place(parse_layer_elements(bundle.master_root, master_ctx, slide_filled | set(bundle.master_filled)))
        if bundle.layout_root is not None:
            layout_ctx = ctx.with_images(bundle.layout_images, bundle.layout_path)
            place(parse_layer_elements(bundle.layout_root, layout_ctx, slide_filled))

    for node in element_children(sp_tree):
        place(_parse_node_safely(node, ctx, layout_placeholders, f"slide {index + 1}"))

    logger.debug(f"Parsed slide {index + 1}: {len(elements)} elements")
    return Slide(order=index, elements=elements, background=background, layout_id=layout_id, hidden=hidden)
