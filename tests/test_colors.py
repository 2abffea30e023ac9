from deckport.services.pptx.colors import DEFAULT_THEME_COLORS, color_in, resolve_scheme_color
from pptx_builders import element


def _fill(inner: str):
    return element(f'<a:solidFill>{inner}</a:solidFill>')


def test_literal_colours_are_normalized():
    assert color_in(_fill('<a:srgbClr val="ff0000"/>'), {}) == "#FF0000"


def test_scheme_colours_use_theme_then_defaults():
    theme = {"accent1": "#112233"}
    assert color_in(_fill('<a:schemeClr val="accent1"/>'), theme) == "#112233"
    assert color_in(_fill('<a:schemeClr val="accent2"/>'), theme) == DEFAULT_THEME_COLORS["accent2"]


def test_semantic_aliases_map_to_slots():
    assert resolve_scheme_color("bg1", DEFAULT_THEME_COLORS) == "#FFFFFF"
    assert resolve_scheme_color("tx1", DEFAULT_THEME_COLORS) == "#000000"
    assert resolve_scheme_color("tx2", DEFAULT_THEME_COLORS) == "#44546A"


def test_system_and_preset_colours():
    assert color_in(_fill('<a:sysClr val="window" lastClr="FAFAFA"/>'), {}) == "#FAFAFA"
    assert color_in(_fill('<a:sysClr val="windowText"/>'), {}) == "#000000"
    assert color_in(_fill('<a:prstClr val="red"/>'), {}) == "#FF0000"


def test_shade_transform_darkens():
    assert color_in(_fill('<a:srgbClr val="FFFFFF"><a:shade val="50000"/></a:srgbClr>'), {}) == "#808080"


def test_missing_colour_is_none():
    assert color_in(None, {}) is None
    assert color_in(_fill(''), {}) is None
