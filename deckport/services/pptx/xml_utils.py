"""
lxml helpers shared by the part parsers.
"""

from dataclasses import dataclass
from typing import Iterator, List, Optional, Union

from lxml import etree

from deckport.services.pptx.units import angle_to_degrees, emu_to_pixels, parse_int, percent_to_decimal

NS = {
    'a': 'http://schemas.openxmlformats.org/drawingml/2006/main',
    'p': 'http://schemas.openxmlformats.org/presentationml/2006/main',
    'r': 'http://schemas.openxmlformats.org/officeDocument/2006/relationships',
    'mc': 'http://schemas.openxmlformats.org/markup-compatibility/2006',
    'pr': 'http://schemas.openxmlformats.org/package/2006/relationships',
    'cp': 'http://schemas.openxmlformats.org/package/2006/metadata/core-properties',
    'dc': 'http://purl.org/dc/elements/1.1/',
    'dcterms': 'http://purl.org/dc/terms/',
    'ep': 'http://schemas.openxmlformats.org/officeDocument/2006/extended-properties',
}

_PARSER = etree.XMLParser(resolve_entities=False, no_network=True, huge_tree=True)


def qn(tag: str) -> str:
    """'a:off' -> '{http://...drawingml/2006/main}off'"""
    prefix, local = tag.split(':', 1)
    return f"{{{NS[prefix]}}}{local}"


def parse_xml(data: Union[str, bytes]) -> etree._Element:
    """Parse an XML part; raises etree.XMLSyntaxError on malformed input"""
    if isinstance(data, str):
        data = data.encode('utf-8')
    return etree.fromstring(data, parser=_PARSER)


def local_name(el) -> str:
    tag = el.tag
    if not isinstance(tag, str):
        return ''
    return tag.rsplit('}', 1)[-1]


def child(el, tag: str):
    if el is None:
        return None
    return el.find(qn(tag))


def children(el, tag: str) -> List:
    if el is None:
        return []
    return el.findall(qn(tag))


def element_children(el) -> Iterator:
    """Direct element children, skipping comments and processing instructions"""
    if el is None:
        return iter(())
    return (c for c in el if isinstance(c.tag, str))


def find_first(el, tag: str):
    """First descendant with the given tag, any depth"""
    if el is None:
        return None
    return next(el.iter(qn(tag)), None)


def path(el, *tags: str):
    """Follow a chain of direct children; None when any link is missing"""
    current = el
    for tag in tags:
        current = child(current, tag)
        if current is None:
            return None
    return current


def attr_int(el, name: str, default: int = 0) -> int:
    if el is None:
        return default
    return parse_int(el.get(name), default)


def attr_percent(el, name: str, default: int = 0) -> float:
    """Percentage attribute (100000 = 100%) as a 0..1 decimal"""
    return percent_to_decimal(attr_int(el, name, default))


def attr_bool(el, name: str) -> Optional[bool]:
    """OOXML boolean ('1'/'true'/'0'/'false'); None when absent"""
    if el is None:
        return None
    value = el.get(name)
    if value is None:
        return None
    return value in ('1', 'true')


def r_attr(el, name: str) -> Optional[str]:
    """Relationship-namespaced attribute such as r:embed / r:id"""
    if el is None:
        return None
    return el.get(qn(f"r:{name}")) or el.get(name)


def text_of(el) -> str:
    if el is None:
        return ''
    return ''.join(el.itertext())


@dataclass
class Transform:
    """An a:xfrm converted to source pixels"""
    x: int = 0
    y: int = 0
    width: int = 0
    height: int = 0
    rotation: float = 0.0
    flip_h: bool = False
    flip_v: bool = False

    @property
    def is_empty(self) -> bool:
        return self.width == 0 and self.height == 0


def read_transform(xfrm) -> Optional[Transform]:
    """Read off/ext/rot from an a:xfrm or p:xfrm element"""
    if xfrm is None:
        return None
    off = child(xfrm, 'a:off')
    ext = child(xfrm, 'a:ext')
    if off is None and ext is None:
        return None
    return Transform(
        x=emu_to_pixels(attr_int(off, 'x')),
        y=emu_to_pixels(attr_int(off, 'y')),
        width=emu_to_pixels(attr_int(ext, 'cx')),
        height=emu_to_pixels(attr_int(ext, 'cy')),
        rotation=angle_to_degrees(attr_int(xfrm, 'rot')),
        flip_h=attr_bool(xfrm, 'flipH') or False,
        flip_v=attr_bool(xfrm, 'flipV') or False,
    )


def shape_transform(sp) -> Optional[Transform]:
    """Transform of a p:sp / p:pic / p:cxnSp from its spPr"""
    return read_transform(path(sp, 'p:spPr', 'a:xfrm'))
