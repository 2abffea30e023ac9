from deckport.services.pptx.background_parser import parse_background, part_background
from deckport.services.pptx.colors import DEFAULT_THEME_COLORS
from deckport.services.pptx.package_reader import ImageHandle
from deckport.services.pptx.theme_parser import parse_theme
from deckport.services.pptx.xml_utils import parse_xml
from pptx_builders import png_bytes, slide_xml, solid, theme_xml

CATALOG = parse_theme(theme_xml()).bg_fill_styles


def _background(bg: str, image_map=None):
    root = parse_xml(slide_xml(background=bg))
    return part_background(root, DEFAULT_THEME_COLORS, CATALOG, image_map)


def test_solid_bg_pr():
    background = _background(f'<p:bgPr>{solid("FF0000")}<a:effectLst/></p:bgPr>')
    assert background.type == "solid"
    assert background.color == "#FF0000"


def test_gradient_bg_pr():
    background = _background(
        '<p:bgPr><a:gradFill><a:gsLst>'
        '<a:gs pos="0"><a:srgbClr val="FF0000"/></a:gs>'
        '<a:gs pos="100000"><a:srgbClr val="0000FF"/></a:gs>'
        '</a:gsLst><a:lin ang="5400000"/></a:gradFill></p:bgPr>'
    )
    assert background.type == "gradient"
    assert background.gradient.angle == 90
    assert [s.color for s in background.gradient.stops] == ["#FF0000", "#0000FF"]
    assert background.gradient.stops[1].position == 1.0


def test_single_stop_gradient_degrades_to_solid():
    background = _background(
        '<p:bgPr><a:gradFill><a:gsLst><a:gs pos="0"><a:srgbClr val="00FF00"/></a:gs>'
        '</a:gsLst></a:gradFill></p:bgPr>'
    )
    assert background.type == "solid"
    assert background.color == "#00FF00"


def test_bg_ref_indexes_theme_catalog():
    background = _background('<p:bgRef idx="1002"><a:schemeClr val="accent1"/></p:bgRef>')
    assert background.type == "gradient"
    # phClr takes the bgRef colour
    assert background.gradient.stops[0].color == "#4472C4"
    assert background.gradient.stops[1].color == "#000000"


def test_bg_ref_solid_catalog_entry():
    background = _background('<p:bgRef idx="1001"><a:schemeClr val="bg1"/></p:bgRef>')
    assert background.color == "#FFFFFF"


def test_picture_background_keeps_solid_fallback():
    handle = ImageHandle(path="ppt/media/image1.png", data=png_bytes(), mime_type="image/png")
    background = _background(
        '<p:bgPr><a:blipFill><a:blip r:embed="rId3"/></a:blipFill></p:bgPr>',
        {"rId3": handle},
    )
    assert background.type == "image"
    assert background.image_url.startswith("data:image/png")
    assert background.color


def test_missing_background():
    root = parse_xml(slide_xml())
    assert part_background(root, DEFAULT_THEME_COLORS) is None
    assert parse_background(root, DEFAULT_THEME_COLORS).color == "#FFFFFF"
