"""
Placeholder inheritance across the master -> layout -> slide chain.

Slide placeholders frequently omit their transform and inherit it from the
layout, which in turn inherits from the master. This module records the
geometry each layer declares, merges it per layout and bundles everything a
slide needs from its layout (theme, background, layer shape trees) so that
slide parsing never has to touch the package again.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, List, Mapping, Optional, Set

from lxml import etree

from deckport.models.presentation import Background, PlaceholderTransform
from deckport.services.pptx.background_parser import default_background, part_background
from deckport.services.pptx.context import build_image_map
from deckport.services.pptx.exceptions import MissingPart
from deckport.services.pptx.package_reader import ImageHandle, PackageHandle
from deckport.services.pptx.text_parser import has_visible_text
from deckport.services.pptx.theme_parser import ParsedTheme
from deckport.services.pptx.xml_utils import element_children, find_first, local_name, path, qn, shape_transform

logger = logging.getLogger(__name__)

PlaceholderMap = Dict[str, PlaceholderTransform]

LAYOUT_PATTERN = r'^ppt/slideLayouts/slideLayout\d+\.xml$'
DEFAULT_MASTER_PATH = 'ppt/slideMasters/slideMaster1.xml'
DEFAULT_THEME_PATH = 'ppt/theme/theme1.xml'
DEFAULT_PLACEHOLDER_TYPE = 'body'


@dataclass(frozen=True)
class PlaceholderRef:
    """The p:ph marker of a shape: explicit type and index attributes"""
    type: Optional[str] = None
    idx: Optional[str] = None

    @property
    def kind(self) -> str:
        return self.type or DEFAULT_PLACEHOLDER_TYPE

    def keys(self) -> List[str]:
        """Lookup keys from the explicit attributes only"""
        result = []
        if self.idx:
            result.append(f"idx:{self.idx}")
        if self.type:
            result.append(f"type:{self.type}")
        return result


def placeholder_info(sp) -> Optional[PlaceholderRef]:
    """p:ph from the shape's non-visual properties, None for ordinary shapes"""
    for nv in element_children(sp):
        name = local_name(nv)
        if name.startswith('nv') and name.endswith('Pr'):
            ph = path(nv, 'p:nvPr', 'p:ph')
            if ph is not None:
                return PlaceholderRef(type=ph.get('type'), idx=ph.get('idx'))
            return None
    return None


def _any_placeholder(sp) -> Optional[PlaceholderRef]:
    # Slide and layout filled-sets look for p:ph at any depth
    ph = find_first(sp, 'p:ph')
    if ph is None:
        return None
    return PlaceholderRef(type=ph.get('type'), idx=ph.get('idx'))


def parse_placeholder_transforms(root) -> PlaceholderMap:
    """
    Record the geometry of every placeholder shape in one part.

    Keys are 'type:<kind>' (kind defaults to body) and 'idx:<n>'. Placeholders
    with an empty extent carry no usable geometry and are skipped.
    """
    placeholders: PlaceholderMap = {}
    if root is None:
        return placeholders
    for sp in root.iter(qn('p:sp')):
        ref = placeholder_info(sp)
        if ref is None:
            continue
        transform = shape_transform(sp)
        if transform is None or transform.is_empty:
            continue
        geometry = PlaceholderTransform(
            x=transform.x, y=transform.y, width=transform.width, height=transform.height,
        )
        placeholders[f"type:{ref.kind}"] = geometry
        if ref.idx:
            placeholders[f"idx:{ref.idx}"] = geometry
    return placeholders


def merge_placeholder_maps(*maps: Mapping[str, PlaceholderTransform]) -> PlaceholderMap:
    """Merge in order; later maps (the layout) win on key collisions"""
    merged: PlaceholderMap = {}
    for mapping in maps:
        merged.update(mapping)
    return merged


def has_actual_text(tx_body) -> bool:
    return has_visible_text(tx_body)


def collect_filled_placeholders(root, include_filled_shapes: bool = False) -> Set[str]:
    """
    Keys of placeholders in a part that carry their own content.

    Inherited copies of these placeholders are suppressed on the layer below.
    With include_filled_shapes, placeholders that only carry a transform and a
    solid or gradient fill count as filled too (layouts restyling the master).
    """
    filled: Set[str] = set()
    if root is None:
        return filled
    for sp in root.iter(qn('p:sp')):
        ref = _any_placeholder(sp)
        if ref is None:
            continue
        tx_body = find_first(sp, 'p:txBody')
        if tx_body is not None and has_actual_text(tx_body):
            filled.update(ref.keys())
        if include_filled_shapes:
            sp_pr = find_first(sp, 'p:spPr')
            if sp_pr is None:
                continue
            painted = find_first(sp_pr, 'a:solidFill') is not None or find_first(sp_pr, 'a:gradFill') is not None
            if painted and find_first(sp_pr, 'a:xfrm') is not None:
                filled.update(ref.keys())
    return filled


@dataclass
class LayoutBundle:
    """Everything a slide inherits from its layout and master"""
    layout_path: Optional[str]
    master_path: Optional[str]
    theme_path: Optional[str]
    theme: ParsedTheme
    background: Background
    placeholders: PlaceholderMap = field(default_factory=dict)
    layout_root: Optional[etree._Element] = None
    layout_images: Dict[str, ImageHandle] = field(default_factory=dict)
    master_root: Optional[etree._Element] = None
    master_images: Dict[str, ImageHandle] = field(default_factory=dict)
    # Layout placeholders that hide the master's copies
    master_filled: FrozenSet[str] = frozenset()


@dataclass
class _MasterEntry:
    path: str
    root: etree._Element
    images: Dict[str, ImageHandle]
    placeholders: PlaceholderMap
    theme_path: Optional[str]
    theme: ParsedTheme
    background: Optional[Background]


class LayoutResolver:
    """
    Resolves slide layouts to LayoutBundles, following layout -> master ->
    theme relationships. Master parts are parsed once and shared by every
    layout that points at them.
    """

    def __init__(
        self,
        handle: PackageHandle,
        themes: Mapping[str, ParsedTheme],
        default_theme: Optional[ParsedTheme] = None,
        media: Optional[Mapping[str, ImageHandle]] = None,
    ):
        self.handle = handle
        self.themes = themes
        self.default_theme = default_theme or themes.get(DEFAULT_THEME_PATH) or ParsedTheme()
        self.media = media or {}
        self._masters: Dict[str, Optional[_MasterEntry]] = {}
        self._bundles: Dict[str, LayoutBundle] = {}

    def layout_paths(self) -> List[str]:
        return self.handle.list_parts('ppt/slideLayouts/', LAYOUT_PATTERN)

    def resolve_all(self) -> Dict[str, LayoutBundle]:
        for layout_path in self.layout_paths():
            self.resolve(layout_path)
        return dict(self._bundles)

    def resolve(self, layout_path: Optional[str]) -> LayoutBundle:
        """Bundle for a layout part; a bare bundle when it is absent or unreadable"""
        if not layout_path:
            return self.fallback_bundle()
        if layout_path in self._bundles:
            return self._bundles[layout_path]

        try:
            layout_root = self.handle.read_xml(layout_path)
        except (MissingPart, etree.XMLSyntaxError) as e:
            logger.warning(f"Could not read layout {layout_path}: {e}")
            bundle = self.fallback_bundle()
            self._bundles[layout_path] = bundle
            return bundle

        master_path = self._related(layout_path, 'slideMaster')
        if master_path is None and self.handle.has_part(DEFAULT_MASTER_PATH):
            master_path = DEFAULT_MASTER_PATH
        master = self._master(master_path) if master_path else None

        theme = master.theme if master else self.default_theme
        layout_images = build_image_map(self.handle.image_relationships(layout_path), self.media)

        background = master.background if master and master.background else default_background()
        if background.is_default_white():
            layout_background = part_background(layout_root, theme.colors, theme.bg_fill_styles, layout_images)
            if layout_background is not None:
                background = layout_background

        bundle = LayoutBundle(
            layout_path=layout_path,
            master_path=master.path if master else None,
            theme_path=master.theme_path if master else None,
            theme=theme,
            background=background,
            placeholders=merge_placeholder_maps(
                master.placeholders if master else {},
                parse_placeholder_transforms(layout_root),
            ),
            layout_root=layout_root,
            layout_images=layout_images,
            master_root=master.root if master else None,
            master_images=master.images if master else {},
            master_filled=frozenset(collect_filled_placeholders(layout_root, include_filled_shapes=True)),
        )
        self._bundles[layout_path] = bundle
        logger.debug(f"Resolved layout {layout_path} (master={bundle.master_path}, "
                     f"{len(bundle.placeholders)} placeholder keys)")
        return bundle

    def fallback_bundle(self) -> LayoutBundle:
        """Bundle for slides without a usable layout: default theme, white page"""
        master = self._master(DEFAULT_MASTER_PATH) if self.handle.has_part(DEFAULT_MASTER_PATH) else None
        theme = master.theme if master else self.default_theme
        return LayoutBundle(
            layout_path=None,
            master_path=master.path if master else None,
            theme_path=master.theme_path if master else None,
            theme=theme,
            background=(master.background if master and master.background else default_background()),
            placeholders=dict(master.placeholders) if master else {},
        )

    def _related(self, part: str, kind: str) -> Optional[str]:
        return related_part(self.handle, part, kind)

    def _master(self, master_path: str) -> Optional[_MasterEntry]:
        if master_path in self._masters:
            return self._masters[master_path]
        try:
            root = self.handle.read_xml(master_path)
        except (MissingPart, etree.XMLSyntaxError) as e:
            logger.warning(f"Could not read slide master {master_path}: {e}")
            self._masters[master_path] = None
            return None

        theme_path = self._related(master_path, 'theme') or DEFAULT_THEME_PATH
        theme = self.themes.get(theme_path, self.default_theme)
        images = build_image_map(self.handle.image_relationships(master_path), self.media)
        entry = _MasterEntry(
            path=master_path,
            root=root,
            images=images,
            placeholders=parse_placeholder_transforms(root),
            theme_path=theme_path,
            theme=theme,
            background=part_background(root, theme.colors, theme.bg_fill_styles, images),
        )
        self._masters[master_path] = entry
        return entry


def related_part(handle: PackageHandle, part: str, kind: str) -> Optional[str]:
    """First internal relationship target of the given kind"""
    for rel in handle.relationships(part):
        if rel.kind == kind and not rel.external:
            return rel.target
    return None
