"""
Picture parsing: p:pic elements and picture-filled shapes.
"""

import logging
from typing import Optional

from deckport.models.elements import ImageElement, Size
from deckport.services.pptx.context import ParseContext
from deckport.services.pptx.exceptions import UnresolvedRelationship
from deckport.services.pptx.shape_parser import preset_name, shape_name
from deckport.services.pptx.xml_utils import child, find_first, path, r_attr, shape_transform

logger = logging.getLogger(__name__)

# Preset geometries that become a clip path on the rendered image
CLIP_SHAPES = {
    'ellipse': 'ellipse',
    'roundRect': 'roundedRectangle',
}


def _image_element(sp, blip, ctx: ParseContext, clip_shape: Optional[str] = None) -> Optional[ImageElement]:
    transform = shape_transform(sp)
    if transform is None or transform.is_empty:
        return None

    rel_id = r_attr(blip, 'embed')
    if not rel_id:
        return None
    handle = ctx.image(rel_id)
    if handle is None:
        ctx.warn(str(UnresolvedRelationship(rel_id, ctx.part_name)))
        return None

    c_nv_pr = find_first(sp, 'p:cNvPr')
    alt = (c_nv_pr.get('descr') or '') if c_nv_pr is not None else ''
    original = None
    if handle.width and handle.height:
        original = Size(width=handle.width, height=handle.height)

    return ImageElement(
        position={'x': transform.x, 'y': transform.y},
        size={'width': transform.width, 'height': transform.height},
        rotation=transform.rotation,
        src=handle.data_url,
        alt=alt,
        original_size=original,
        clip_shape=clip_shape,
        opacity=1,
        name=shape_name(sp),
    )


def parse_picture(pic, ctx: ParseContext) -> Optional[ImageElement]:
    """
    p:pic -> ImageElement.

    Pictures without a transform, with an empty extent or without a blip
    are dropped. A blip whose relationship does not resolve to extracted
    media is reported as a warning and dropped.
    """
    sp_pr = child(pic, 'p:spPr')
    if sp_pr is None:
        return None
    blip = path(pic, 'p:blipFill', 'a:blip')
    if blip is None:
        return None
    return _image_element(pic, blip, ctx, CLIP_SHAPES.get(preset_name(sp_pr)))


def parse_picture_fill_shape(sp, ctx: ParseContext) -> Optional[ImageElement]:
    """A p:sp whose spPr is filled with a picture; ellipse geometry clips it to a circle"""
    sp_pr = child(sp, 'p:spPr')
    blip = find_first(child(sp_pr, 'a:blipFill'), 'a:blip')
    if blip is None:
        return None
    clip = 'ellipse' if preset_name(sp_pr) == 'ellipse' else None
    return _image_element(sp, blip, ctx, clip)
