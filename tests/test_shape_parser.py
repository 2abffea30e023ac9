from deckport.models.elements import ShapeType
from deckport.models.presentation import PlaceholderTransform
from deckport.services.pptx.colors import DEFAULT_THEME_COLORS
from deckport.services.pptx.shape_parser import geometry_kind, parse_connector, parse_fill, parse_shape
from deckport.services.pptx.xml_utils import child
from pptx_builders import element, scheme, solid, sp, text_body, xfrm

EMU = 9525


def _connector(frame: str, line: str = '') -> str:
    return (
        '<p:cxnSp><p:nvCxnSpPr><p:cNvPr id="5" name="Connector 4"/><p:cNvCxnSpPr/><p:nvPr/></p:nvCxnSpPr>'
        f'<p:spPr>{frame}<a:prstGeom prst="line"><a:avLst/></a:prstGeom>{line}</p:spPr></p:cxnSp>'
    )


def test_parse_ellipse_with_theme_fill_and_dashed_outline(ctx):
    shape = parse_shape(element(sp(
        name="Oval 1",
        geometry="ellipse",
        frame=xfrm(10 * EMU, 20 * EMU, 100 * EMU, 50 * EMU, rot=2700000),
        fill=scheme("accent1"),
        line=f'<a:ln w="25400">{solid("FF0000")}<a:prstDash val="dash"/></a:ln>',
    )), ctx)
    assert shape.shape_type is ShapeType.ELLIPSE
    assert (shape.position.x, shape.position.y) == (10, 20)
    assert (shape.size.width, shape.size.height) == (100, 50)
    assert shape.rotation == 45
    assert shape.fill.color == "#4472C4"
    assert shape.stroke.color == "#FF0000"
    assert shape.stroke.width == 3
    assert shape.stroke.style == "dashed"
    assert shape.name == "Oval 1"


def test_unknown_preset_draws_as_rectangle():
    assert geometry_kind("teardrop") is ShapeType.RECTANGLE
    assert geometry_kind(None) is ShapeType.RECTANGLE
    assert geometry_kind("rtTriangle") is ShapeType.RIGHT_TRIANGLE


def test_fill_precedence():
    sp_pr = element(f'<p:spPr>{solid("00FF00")}</p:spPr>')
    assert parse_fill(sp_pr, DEFAULT_THEME_COLORS).color == "#00FF00"
    assert parse_fill(element('<p:spPr><a:noFill/></p:spPr>'), DEFAULT_THEME_COLORS).type == "none"
    assert parse_fill(element('<p:spPr/>'), DEFAULT_THEME_COLORS).color == "#4472C4"


def test_pattern_fill_keeps_preset_and_foreground():
    sp_pr = element(
        '<p:spPr><a:pattFill prst="pct20">'
        f'<a:fgClr>{scheme("accent2")}</a:fgClr><a:bgClr><a:srgbClr val="FFFFFF"/></a:bgClr>'
        '</a:pattFill></p:spPr>'
    )
    fill = parse_fill(sp_pr, DEFAULT_THEME_COLORS)
    assert fill.type == "pattern"
    assert fill.pattern_type == "pct20"
    assert fill.color == "#ED7D31"


def test_style_fill_ref_used_when_sp_pr_has_no_fill():
    shape_el = element(sp(
        frame=xfrm(0, 0, EMU, EMU),
        style='<p:style><a:lnRef idx="1"><a:schemeClr val="accent1"/></a:lnRef>'
              '<a:fillRef idx="1"><a:schemeClr val="accent2"/></a:fillRef></p:style>',
    ))
    fill = parse_fill(child(shape_el, 'p:spPr'), DEFAULT_THEME_COLORS, shape_el)
    assert fill.color == "#ED7D31"


def test_gradient_stops_are_evenly_spaced():
    sp_pr = element(
        '<p:spPr><a:gradFill><a:gsLst>'
        '<a:gs pos="0"><a:srgbClr val="FF0000"/></a:gs>'
        '<a:gs pos="20000"><a:srgbClr val="00FF00"/></a:gs>'
        '<a:gs pos="100000"><a:srgbClr val="0000FF"/></a:gs>'
        '</a:gsLst><a:lin ang="10800000"/></a:gradFill></p:spPr>'
    )
    fill = parse_fill(sp_pr, DEFAULT_THEME_COLORS)
    assert fill.type == "gradient"
    assert fill.gradient.angle == 180
    assert [s.position for s in fill.gradient.stops] == [0, 0.5, 1]


def test_shape_text_is_parsed(ctx):
    shape = parse_shape(element(sp(geometry="ellipse", frame=xfrm(0, 0, EMU, EMU), body=text_body("Inside"))), ctx)
    assert shape.text.plain_text == "Inside"


def test_shape_without_extent_uses_fallback(ctx):
    shape_el = element(sp(geometry="ellipse"))
    assert parse_shape(shape_el, ctx) is None
    shape = parse_shape(shape_el, ctx, fallback=PlaceholderTransform(x=1, y=2, width=3, height=4))
    assert (shape.position.x, shape.size.height) == (1, 4)


def test_horizontal_connector_is_clamped_to_one_pixel(ctx):
    line = parse_connector(element(_connector(xfrm(0, 10 * EMU, 96 * EMU, 0))), ctx)
    assert line.shape_type is ShapeType.LINE
    assert (line.size.width, line.size.height) == (96, 1)
    assert line.stroke.color == "#000000"
    assert line.fill.type == "none"


def test_connector_outline(ctx):
    line = parse_connector(element(_connector(
        xfrm(0, 0, 0, 50 * EMU),
        f'<a:ln w="38100">{solid("0000FF")}<a:prstDash val="sysDot"/></a:ln>',
    )), ctx)
    assert line.size.width == 1
    assert line.stroke.color == "#0000FF"
    assert line.stroke.width == 4
    assert line.stroke.style == "dotted"


def test_flipped_connector_keeps_its_direction(ctx):
    frame = f'<a:xfrm flipH="1"><a:off x="0" y="0"/><a:ext cx="{96 * EMU}" cy="{48 * EMU}"/></a:xfrm>'
    line = parse_connector(element(_connector(frame)), ctx)
    assert line.flip_h is True
    assert line.flip_v is None
    assert line.to_wire()["flipH"] is True

    plain = parse_connector(element(_connector(xfrm(0, 0, 96 * EMU, 48 * EMU))), ctx)
    assert "flipH" not in plain.to_wire()


def test_connector_without_transform_is_dropped(ctx):
    assert parse_connector(element(_connector('')), ctx) is None
