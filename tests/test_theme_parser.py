from deckport.services.pptx.theme_parser import parse_theme
from pptx_builders import A_NS, theme_xml


def test_colour_scheme_is_read():
    theme = parse_theme(theme_xml(accent1="FF0000"))
    assert theme.colors["accent1"] == "#FF0000"
    assert theme.colors["dark1"] == "#000000"
    assert theme.color_scheme.accent1 == "#FF0000"
    assert theme.color_scheme.background1 == "#FFFFFF"
    assert theme.name == "Test Theme"


def test_font_scheme_is_read():
    theme = parse_theme(theme_xml(major="Georgia", minor="Arial"))
    assert theme.font_scheme.major_font == "Georgia"
    assert theme.font_scheme.minor_font == "Arial"


def test_background_fill_catalog():
    styles = parse_theme(theme_xml()).bg_fill_styles
    assert [s.type for s in styles] == ["solid", "gradient"]
    assert styles[0].solid_color == "#FFFFFF"
    gradient = styles[1].gradient
    assert gradient.angle == 90
    assert gradient.stops[0].scheme_color == "phClr"
    assert gradient.stops[1].color == "#000000"


def test_theme_without_schemes_uses_office_defaults():
    theme = parse_theme(f'<a:theme xmlns:a="{A_NS}"><a:themeElements/></a:theme>')
    assert theme.colors["accent1"] == "#4472C4"
    assert theme.font_scheme.minor_font == "Calibri"
    assert theme.bg_fill_styles == []
