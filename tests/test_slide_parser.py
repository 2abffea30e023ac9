from deckport.models.elements import ShapeElement, TextElement
from deckport.models.presentation import Background
from deckport.services.pptx.context import ParseContext
from deckport.services.pptx.placeholders import LayoutBundle, parse_placeholder_transforms
from deckport.services.pptx import slide_parser
from deckport.services.pptx.slide_parser import parse_slide
from deckport.services.pptx.theme_parser import ParsedTheme
from deckport.services.pptx.xml_utils import parse_xml
from pptx_builders import layer_xml, slide_xml, solid, sp, text_body, xfrm

EMU = 9525


def _group(*shapes: str, off=(100, 0), ext=(200, 100), ch_off=(50, 0), ch_ext=(100, 50)) -> str:
    return (
        '<p:grpSp><p:nvGrpSpPr><p:cNvPr id="20" name="Group 19"/><p:cNvGrpSpPr/><p:nvPr/></p:nvGrpSpPr>'
        '<p:grpSpPr><a:xfrm>'
        f'<a:off x="{off[0] * EMU}" y="{off[1] * EMU}"/><a:ext cx="{ext[0] * EMU}" cy="{ext[1] * EMU}"/>'
        f'<a:chOff x="{ch_off[0] * EMU}" y="{ch_off[1] * EMU}"/><a:chExt cx="{ch_ext[0] * EMU}" cy="{ch_ext[1] * EMU}"/>'
        f'</a:xfrm></p:grpSpPr>{"".join(shapes)}</p:grpSp>'
    )


def _bundle(master_root=None, layout_root=None, background=None) -> LayoutBundle:
    return LayoutBundle(
        layout_path="ppt/slideLayouts/slideLayout1.xml",
        master_path="ppt/slideMasters/slideMaster1.xml",
        theme_path="ppt/theme/theme1.xml",
        theme=ParsedTheme(),
        background=background or Background.solid("#FFFFFF"),
        master_root=master_root,
        layout_root=layout_root,
    )


def test_elements_are_scaled_and_layered():
    root = parse_xml(slide_xml(
        sp(2, geometry="ellipse", frame=xfrm(100 * EMU, 100 * EMU, 200 * EMU, 100 * EMU), fill=solid("FF0000")),
        sp(3, frame=xfrm(0, 0, 400 * EMU, 40 * EMU), body=text_body("Caption")),
    ))
    slide = parse_slide(root, 0, ParseContext(scale_factor=0.5))
    assert [el.z_index for el in slide.elements] == [1, 2]
    shape, text = slide.elements
    assert isinstance(shape, ShapeElement)
    assert (shape.position.x, shape.position.y, shape.size.width, shape.size.height) == (50, 50, 100, 50)
    assert isinstance(text, TextElement)
    assert text.content.plain_text == "Caption"


def test_group_children_map_into_slide_space(ctx):
    child = sp(2, frame=xfrm(50 * EMU, 0, 50 * EMU, 25 * EMU), fill=solid("00FF00"))
    slide = parse_slide(parse_xml(slide_xml(_group(child))), 0, ctx)
    element = slide.elements[0]
    # Child at chOff lands on the group offset; extents scale by ext / chExt
    assert (element.position.x, element.position.y) == (100, 0)
    assert (element.size.width, element.size.height) == (100, 50)


def test_nested_groups_compose(ctx):
    inner_child = sp(2, frame=xfrm(0, 0, 10 * EMU, 10 * EMU), fill=solid("00FF00"))
    inner = _group(inner_child, off=(10, 10), ext=(20, 20), ch_off=(0, 0), ch_ext=(10, 10))
    outer = _group(inner, off=(100, 100), ext=(100, 100), ch_off=(0, 0), ch_ext=(100, 100))
    element = parse_slide(parse_xml(slide_xml(outer)), 0, ctx).elements[0]
    assert (element.position.x, element.position.y) == (110, 110)
    assert element.size.width == 20


def test_hidden_flag():
    assert parse_slide(parse_xml(slide_xml(show="0")), 0, ParseContext()).hidden
    assert not parse_slide(parse_xml(slide_xml()), 0, ParseContext()).hidden


def test_master_decorations_paint_first_and_filled_placeholders_are_suppressed(ctx):
    master = parse_xml(layer_xml(
        'p:sldMaster',
        sp(10, name="Band", frame=xfrm(0, 0, 960 * EMU, 10 * EMU), fill=solid("123456")),
        sp(11, ph='<p:ph type="title"/>', frame=xfrm(0, 20 * EMU, 960 * EMU, 60 * EMU), body=text_body("Click to add title")),
        sp(12, ph='<p:ph type="ftr" idx="11"/>', frame=xfrm(0, 500 * EMU, 300 * EMU, 30 * EMU), body=text_body("Footer")),
    ))
    slide_root = parse_xml(slide_xml(
        sp(2, ph='<p:ph type="title"/>', body=text_body("Real title")),
    ))
    slide = parse_slide(slide_root, 0, ctx, _bundle(master_root=master))
    texts = [el.content.plain_text for el in slide.elements if isinstance(el, TextElement)]

    assert slide.elements[0].name == "Band"
    assert "Click to add title" not in texts
    assert texts == ["Footer", "Real title"]
    assert [el.z_index for el in slide.elements] == [1, 2, 3]


def test_layer_elements_can_be_excluded(ctx):
    master = parse_xml(layer_xml('p:sldMaster', sp(10, frame=xfrm(0, 0, 10 * EMU, 10 * EMU), fill=solid("123456"))))
    slide = parse_slide(parse_xml(slide_xml()), 0, ctx, _bundle(master_root=master), include_layers=False)
    assert slide.elements == []


def test_placeholder_inherits_layout_frame(ctx):
    layout = parse_xml(layer_xml(
        'p:sldLayout',
        sp(2, ph='<p:ph type="body" idx="1"/>', frame=xfrm(40 * EMU, 120 * EMU, 800 * EMU, 300 * EMU)),
    ))
    bundle = _bundle(layout_root=layout)
    bundle.placeholders = parse_placeholder_transforms(layout)

    slide = parse_slide(parse_xml(slide_xml(sp(2, ph='<p:ph idx="1"/>', body=text_body("Point")))), 0, ctx, bundle)
    text = slide.elements[-1]
    assert text.content.plain_text == "Point"
    assert (text.position.x, text.position.y, text.size.width) == (40, 120, 800)


def test_background_inherits_from_bundle_unless_slide_paints(ctx):
    bundle = _bundle(background=Background.solid("#FF0000"))
    assert parse_slide(parse_xml(slide_xml()), 0, ctx, bundle).background.color == "#FF0000"

    painted = slide_xml(background=f'<p:bgPr>{solid("0000FF")}</p:bgPr>')
    assert parse_slide(parse_xml(painted), 0, ctx, bundle).background.color == "#0000FF"


def test_malformed_shape_is_skipped_with_warning():
    ctx = ParseContext()
    good = sp(2, geometry="ellipse", frame=xfrm(0, 0, 10 * EMU, 10 * EMU))
    bad = sp(3, geometry="ellipse", frame=xfrm(0, 0, -10 * EMU, 10 * EMU))
    slide = parse_slide(parse_xml(slide_xml(good, bad)), 0, ctx)
    assert len(slide.elements) == 1
    assert ctx.warnings


def _connector(shape_id: int = 5) -> str:
    return (
        f'<p:cxnSp><p:nvCxnSpPr><p:cNvPr id="{shape_id}" name="Connector"/><p:cNvCxnSpPr/><p:nvPr/></p:nvCxnSpPr>'
        f'<p:spPr>{xfrm(0, 0, 50 * EMU, 0)}<a:prstGeom prst="line"><a:avLst/></a:prstGeom></p:spPr></p:cxnSp>'
    )


def _alternate_content(*shapes: str) -> str:
    return (
        '<mc:AlternateContent xmlns:mc="http://schemas.openxmlformats.org/markup-compatibility/2006">'
        f'<mc:Choice Requires="p14">{"".join(shapes)}</mc:Choice>'
        '<mc:Fallback/></mc:AlternateContent>'
    )


def test_unexpected_element_error_drops_only_that_element(monkeypatch):
    def broken_connector(node, ctx):
        raise KeyError("stCxn")

    monkeypatch.setattr(slide_parser, "parse_connector", broken_connector)
    ctx = ParseContext()
    root = parse_xml(slide_xml(
        sp(2, frame=xfrm(0, 0, 10 * EMU, 10 * EMU), fill=solid("FF0000")),
        _connector(5),
        _group(_connector(21), sp(22, frame=xfrm(50 * EMU, 0, 10 * EMU, 10 * EMU), fill=solid("00FF00"))),
    ))
    slide = parse_slide(root, 0, ctx)

    assert [el.fill.color for el in slide.elements] == ["#FF0000", "#00FF00"]
    assert [el.z_index for el in slide.elements] == [1, 2]
    assert len(ctx.warnings) == 2
    assert all("KeyError" in warning for warning in ctx.warnings)


def test_unexpected_layer_error_keeps_the_slide(monkeypatch, ctx):
    def broken_group(node, ctx, placeholders):
        raise AttributeError("grpSpPr")

    monkeypatch.setattr(slide_parser, "parse_group", broken_group)
    master = parse_xml(layer_xml('p:sldMaster', _group(sp(30, frame=xfrm(0, 0, 10 * EMU, 10 * EMU), fill=solid("123456")))))
    slide_root = parse_xml(slide_xml(sp(2, frame=xfrm(0, 0, 10 * EMU, 10 * EMU), fill=solid("FF0000"))))
    slide = parse_slide(slide_root, 0, ctx, _bundle(master_root=master))

    assert [el.fill.color for el in slide.elements] == ["#FF0000"]
    assert any("AttributeError" in warning for warning in ctx.warnings)


def test_alternate_content_paints_first(ctx):
    master = parse_xml(layer_xml(
        'p:sldMaster',
        sp(10, name="Band", frame=xfrm(0, 0, 960 * EMU, 10 * EMU), fill=solid("123456")),
    ))
    slide_root = parse_xml(slide_xml(
        sp(2, frame=xfrm(0, 100 * EMU, 10 * EMU, 10 * EMU), fill=solid("FF0000")),
        _alternate_content(sp(3, frame=xfrm(0, 200 * EMU, 10 * EMU, 10 * EMU), fill=solid("00FF00"))),
        sp(4, frame=xfrm(0, 300 * EMU, 10 * EMU, 10 * EMU), fill=solid("0000FF")),
    ))
    slide = parse_slide(slide_root, 0, ctx, _bundle(master_root=master))

    assert [el.fill.color for el in slide.elements] == ["#00FF00", "#123456", "#FF0000", "#0000FF"]
    assert [el.z_index for el in slide.elements] == [1, 2, 3, 4]


def test_alternate_content_falls_back_when_choice_is_missing(ctx):
    block = (
        '<mc:AlternateContent xmlns:mc="http://schemas.openxmlformats.org/markup-compatibility/2006">'
        f'<mc:Fallback>{sp(3, frame=xfrm(0, 0, 10 * EMU, 10 * EMU), fill=solid("ABCDEF"))}</mc:Fallback>'
        '</mc:AlternateContent>'
    )
    slide = parse_slide(parse_xml(slide_xml(block)), 0, ctx)
    assert [el.fill.color for el in slide.elements] == ["#ABCDEF"]
    assert slide.elements[0].z_index == 1
