from deckport.services.pptx.context import ParseContext
from deckport.services.pptx.image_parser import parse_picture, parse_picture_fill_shape
from deckport.services.pptx.package_reader import ImageHandle
from pptx_builders import element, pic, png_bytes, sp, xfrm

EMU = 9525


def _ctx() -> ParseContext:
    handle = ImageHandle(path="ppt/media/image1.png", data=png_bytes(4, 3), mime_type="image/png", width=4, height=3)
    return ParseContext(image_map={"rId2": handle}, part_name="ppt/slides/slide1.xml")


def test_picture_becomes_image_element():
    image = parse_picture(element(pic(3, "rId2", xfrm(EMU, 2 * EMU, 40 * EMU, 30 * EMU), descr="A logo")), _ctx())
    assert image.src.startswith("data:image/png;base64,")
    assert image.alt == "A logo"
    assert (image.position.x, image.size.width) == (1, 40)
    assert (image.original_size.width, image.original_size.height) == (4, 3)
    assert image.clip_shape is None


def test_ellipse_picture_is_clipped():
    image = parse_picture(element(pic(3, "rId2", xfrm(0, 0, EMU, EMU), geometry="ellipse")), _ctx())
    assert image.clip_shape == "ellipse"


def test_unresolved_relationship_warns_and_drops():
    ctx = _ctx()
    assert parse_picture(element(pic(3, "rId9", xfrm(0, 0, EMU, EMU))), ctx) is None
    assert any("rId9" in warning for warning in ctx.warnings)


def test_picture_without_extent_is_dropped():
    assert parse_picture(element(pic(3, "rId2", xfrm(0, 0, 0, 0))), _ctx()) is None


def test_picture_filled_shape():
    fill = '<a:blipFill><a:blip r:embed="rId2"/><a:stretch><a:fillRect/></a:stretch></a:blipFill>'
    image = parse_picture_fill_shape(element(sp(geometry="ellipse", frame=xfrm(0, 0, 10 * EMU, 10 * EMU), fill=fill)), _ctx())
    assert image.clip_shape == "ellipse"
    assert image.size.width == 10
