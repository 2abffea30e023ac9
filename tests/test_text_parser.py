from deckport.models.presentation import FontScheme
from deckport.services.pptx.context import ParseContext
from deckport.services.pptx.text_parser import body_box_style, has_visible_text, parse_text_body
from pptx_builders import element, text_body


def _body(*paragraphs, body_pr='<a:bodyPr/>'):
    return element(text_body(*paragraphs, body_pr=body_pr))


def test_run_properties(ctx):
    content = parse_text_body(_body(
        '<a:p><a:r><a:rPr sz="2400" b="1" i="1" u="sng">'
        '<a:solidFill><a:schemeClr val="accent2"/></a:solidFill></a:rPr><a:t>Styled</a:t></a:r></a:p>'
    ), ctx)
    style = content.paragraphs[0].runs[0].style
    assert style.font_size == 24
    assert style.font_weight == "bold"
    assert style.font_style == "italic"
    assert style.text_decoration == "underline"
    assert style.color == "#ED7D31"


def test_font_size_follows_scale_factor():
    ctx = ParseContext(scale_factor=0.75)
    content = parse_text_body(_body('<a:p><a:r><a:rPr sz="2400"/><a:t>x</a:t></a:r></a:p>'), ctx)
    assert content.paragraphs[0].runs[0].style.font_size == 18


def test_theme_font_sentinels_resolve():
    ctx = ParseContext(font_scheme=FontScheme(major_font="Georgia", minor_font="Arial"))
    content = parse_text_body(_body(
        '<a:p><a:r><a:rPr><a:latin typeface="+mj-lt"/></a:rPr><a:t>Title</a:t></a:r>'
        '<a:r><a:rPr/><a:t> body</a:t></a:r></a:p>'
    ), ctx)
    runs = content.paragraphs[0].runs
    assert runs[0].style.font_family == "Georgia"
    assert runs[1].style.font_family == "Arial"


def test_strike_through(ctx):
    content = parse_text_body(_body('<a:p><a:r><a:rPr strike="sngStrike"/><a:t>gone</a:t></a:r></a:p>'), ctx)
    assert content.paragraphs[0].runs[0].style.text_decoration == "line-through"


def test_paragraph_properties(ctx):
    content = parse_text_body(_body(
        '<a:p><a:pPr algn="ctr" lvl="1"><a:lnSpc><a:spcPct val="150000"/></a:lnSpc>'
        '<a:spcBef><a:spcPts val="600"/></a:spcBef><a:buChar char="*"/></a:pPr>'
        '<a:r><a:t>Point</a:t></a:r></a:p>'
    ), ctx)
    paragraph = content.paragraphs[0]
    assert paragraph.alignment == "center"
    assert paragraph.indent_level == 1
    assert paragraph.line_spacing == 1.5
    assert paragraph.space_before == 6
    assert paragraph.bullet_type == "bullet"
    assert paragraph.bullet_char == "*"


def test_empty_paragraphs_after_first_are_dropped(ctx):
    content = parse_text_body(_body("First", "<a:p/>", "Second"), ctx)
    assert [p.plain_text for p in content.paragraphs] == ["First", "Second"]


def test_fields_and_breaks_keep_document_order(ctx):
    content = parse_text_body(_body(
        '<a:p><a:r><a:t>Slide </a:t></a:r><a:fld id="{1}" type="slidenum"><a:t>3</a:t></a:fld>'
        '<a:br/><a:r><a:t>of 9</a:t></a:r></a:p>'
    ), ctx)
    assert [r.text for r in content.paragraphs[0].runs] == ["Slide ", "3", "\n", "of 9"]


def test_empty_body_yields_one_empty_paragraph(ctx):
    content = parse_text_body(element('<p:txBody><a:bodyPr/></p:txBody>'), ctx)
    assert len(content.paragraphs) == 1
    assert not content.has_visible_text()


def test_has_visible_text_ignores_whitespace():
    assert has_visible_text(_body("Words"))
    assert not has_visible_text(_body("   "))
    assert not has_visible_text(None)


def test_body_box_style(ctx):
    style = body_box_style(_body("x", body_pr='<a:bodyPr lIns="91440" anchor="ctr" wrap="none"><a:normAutofit/></a:bodyPr>'), ctx)
    assert style.padding.left == 10
    assert style.padding.top == 5
    assert style.vertical_align == "middle"
    assert style.word_wrap is False
    assert style.auto_fit is True
