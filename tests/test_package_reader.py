import asyncio

import pytest

from deckport.services.pptx.exceptions import CorruptArchive, MissingPart
from deckport.services.pptx.package_reader import (
    extract_media,
    is_package_filename,
    normalize_target,
    open_package,
    rels_path_for,
)
from pptx_builders import png_bytes, slide_xml


def test_open_package_rejects_non_zip_data():
    with pytest.raises(CorruptArchive):
        open_package(b"definitely not a zip archive")
    with pytest.raises(CorruptArchive):
        open_package(b"")


def test_read_missing_part_raises(builder):
    with open_package(builder.build()) as handle:
        with pytest.raises(MissingPart) as info:
            handle.read_bytes("ppt/slides/slide99.xml")
    assert info.value.path == "ppt/slides/slide99.xml"
    assert info.value.recoverable


def test_relationship_targets_are_normalized(builder):
    builder.add_slide(slide_xml())
    with open_package(builder.build()) as handle:
        rels = handle.relationships("ppt/slides/slide1.xml")
    layout = [rel for rel in rels if rel.kind == "slideLayout"]
    assert layout[0].target == "ppt/slideLayouts/slideLayout1.xml"


def test_has_part_checks_archive_entries(builder):
    builder.add_slide(slide_xml())
    with open_package(builder.build()) as handle:
        assert handle.has_part("ppt/presentation.xml")
        assert handle.has_part("ppt/slides/slide1.xml")
        assert not handle.has_part("ppt/slides/slide2.xml")
        assert not handle.has_part("ppt/slides/")


def test_missing_rels_part_means_no_relationships(builder):
    with open_package(builder.build()) as handle:
        assert handle.relationships("ppt/slides/slide7.xml") == []


def test_list_parts_uses_natural_order(builder):
    for _ in range(11):
        builder.add_slide(slide_xml())
    with open_package(builder.build()) as handle:
        slides = handle.list_parts("ppt/slides/", r"^ppt/slides/slide\d+\.xml$")
    assert slides[1] == "ppt/slides/slide2.xml"
    assert slides[-1] == "ppt/slides/slide11.xml"


def test_extract_media_skips_unsupported_entries(builder):
    builder.set_part("ppt/media/image1.png", png_bytes(4, 3))
    builder.set_part("ppt/media/image2.emf", b"\x01\x00\x00\x00")
    with open_package(builder.build()) as handle:
        media = asyncio.run(extract_media(handle))

    assert list(media) == ["ppt/media/image1.png"]
    image = media["ppt/media/image1.png"]
    assert (image.width, image.height) == (4, 3)
    assert image.data_url.startswith("data:image/png;base64,")


def test_path_helpers():
    assert rels_path_for("ppt/slides/slide1.xml") == "ppt/slides/_rels/slide1.xml.rels"
    assert normalize_target("ppt/slides/slide1.xml", "../media/image1.png") == "ppt/media/image1.png"
    assert normalize_target("ppt/slides/slide1.xml", "/ppt/media/a.png") == "ppt/media/a.png"
    assert is_package_filename("Deck.PPTX")
    assert is_package_filename("macro.pptm")
    assert not is_package_filename("deck.key")
