"""
Package Import Service
Converts presentation packages (.pptx/.pptm) into editor Documents.

The archive is read part by part with lxml; themes, media and layouts are
resolved once up front and every slide is then parsed independently against
that shared, read-only state.
"""

import asyncio
import logging
import posixpath
from typing import Dict, List, Optional, Tuple

from lxml import etree

from deckport.config.settings import ImportConfig, get_config
from deckport.models.presentation import (
    Background,
    Document,
    DocumentMetadata,
    ImportResult,
    Slide,
    Theme,
)
from deckport.services.pptx.background_parser import default_background
from deckport.services.pptx.context import ParseContext, build_image_map
from deckport.services.pptx.exceptions import (
    CorruptArchive,
    MalformedSlide,
    MissingPart,
    MissingRequiredPart,
    PackageError,
    UnsupportedFileType,
)
from deckport.services.pptx.package_reader import (
    ImageHandle,
    PackageHandle,
    extract_media,
    is_package_filename,
    open_package,
)
from deckport.services.pptx.placeholders import DEFAULT_THEME_PATH, LayoutResolver, placeholder_info, related_part
from deckport.services.pptx.progress import ImportStage, ProgressCallback, ProgressTracker
from deckport.services.pptx.scaler import compute_scale_factor
from deckport.services.pptx.slide_parser import parse_slide
from deckport.services.pptx.theme_parser import ParsedTheme, parse_theme
from deckport.services.pptx.units import emu_to_pixels
from deckport.services.pptx.xml_utils import NS, attr_int, child, children, path, qn, r_attr, text_of

logger = logging.getLogger(__name__)

PRESENTATION_PART = 'ppt/presentation.xml'
CORE_PROPERTIES_PART = 'docProps/core.xml'
APP_PROPERTIES_PART = 'docProps/app.xml'
SLIDE_PATTERN = r'^ppt/slides/slide\d+\.xml$'
THEME_PATTERN = r'^ppt/theme/theme\d+\.xml$'

INVALID_FILE_TYPE_MESSAGE = "Invalid file type. Please select a .pptx or .pptm file."
MISSING_PRESENTATION_MESSAGE = "Invalid PPTX file: missing presentation.xml"
DEFAULT_DOCUMENT_NAME = "Imported Presentation"


class PackageImporter:
    """
    Converts one package into a Document.

    Archive-level failures (unreadable zip, missing presentation part) end the
    import with a failure result. Anything smaller (a slide, a media entry, a
    relationship) is logged, recorded as a warning and skipped.
    """

    def __init__(self, config: Optional[ImportConfig] = None):
        self.config = config or get_config().importing
        self.stats = {
            "slides": 0,
            "skipped_slides": 0,
            "elements": 0,
            "media": 0,
            "warnings": 0,
        }

    async def import_bytes(
        self,
        data: bytes,
        on_progress: Optional[ProgressCallback] = None,
        filename: Optional[str] = None,
    ) -> ImportResult:
        tracker = ProgressTracker(on_progress)
        tracker.start(ImportStage.LOADING)

        if filename is not None and not is_package_filename(filename):
            error = UnsupportedFileType(INVALID_FILE_TYPE_MESSAGE, context={'filename': filename})
            logger.warning(str(error))
            return ImportResult(success=False, error=error.message)

        try:
            handle = open_package(data)
        except CorruptArchive as e:
            logger.error(f"Failed to open package: {e}")
            return ImportResult(success=False, error=e.message)

        warnings: List[str] = []
        with handle:
            try:
                document = await self._process_package(handle, tracker, warnings, filename)
            except MissingRequiredPart as e:
                logger.error(f"Failed to import package: {e}")
                return ImportResult(success=False, error=MISSING_PRESENTATION_MESSAGE, warnings=warnings)
            except PackageError as e:
                logger.error(f"Failed to import package: {e}")
                return ImportResult(success=False, error=e.message, warnings=warnings)
            except etree.XMLSyntaxError as e:
                logger.error(f"Malformed presentation part: {e}")
                return ImportResult(success=False, error=f"Invalid PPTX file: {e}", warnings=warnings)
            except Exception as e:
                logger.exception(f"Unexpected import failure: {e}")
                return ImportResult(success=False, error=f"Failed to import presentation: {e}", warnings=warnings)

        self.stats["warnings"] = len(warnings)
        tracker.complete(ImportStage.COMPLETE)
        logger.info(f"Import complete. Stats: {self.stats}")
        return ImportResult(success=True, document=document, warnings=warnings)

    async def _process_package(
        self,
        handle: PackageHandle,
        tracker: ProgressTracker,
        warnings: List[str],
        filename: Optional[str],
    ) -> Document:
        try:
            presentation = handle.read_xml(PRESENTATION_PART)
        except MissingPart as e:
            raise MissingRequiredPart(PRESENTATION_PART, cause=e)

        slide_paths = self.slide_paths(handle, presentation)
        scale_factor = self.scale_factor(presentation)
        logger.info(f"Processing package with {len(slide_paths)} slides (scale {scale_factor:.4f})")

        tracker.start(ImportStage.PARSING_THEME)
        themes = self.parse_themes(handle, warnings)
        default_theme = self.default_theme(handle, themes)

        tracker.start(ImportStage.EXTRACTING_MEDIA)
        media = await extract_media(handle)
        self.stats["media"] = len(media)

        resolver = LayoutResolver(handle, themes, default_theme, media)
        resolver.resolve_all()

        base_ctx = ParseContext(
            scale_factor=scale_factor,
            font_scheme=default_theme.font_scheme,
            theme_colors=default_theme.colors,
            bg_fill_styles=tuple(default_theme.bg_fill_styles),
            target_width=self.config.target_width,
            target_height=self.config.target_height,
            overflow_tolerance=self.config.overflow_tolerance_px,
        )

        tracker.start(ImportStage.PARSING_SLIDES)
        slides = await self._parse_slides(handle, resolver, media, slide_paths, base_ctx, tracker, warnings)

        if not slides:
            logger.warning("No slides could be parsed; adding an empty slide")
            slides = [Slide(order=0, background=default_background())]
        for order, slide in enumerate(slides):
            slide.order = order

        metadata = self.read_metadata(handle)
        self.stats["slides"] = len(slides)
        self.stats["elements"] = sum(len(s.elements) for s in slides)
        return Document(
            name=metadata.title or _filename_stem(filename) or DEFAULT_DOCUMENT_NAME,
            slides=slides,
            theme=self.build_theme(default_theme),
            metadata=metadata,
        )

    async def _parse_slides(
        self,
        handle: PackageHandle,
        resolver: LayoutResolver,
        media: Dict[str, ImageHandle],
        slide_paths: List[str],
        base_ctx: ParseContext,
        tracker: ProgressTracker,
        warnings: List[str],
    ) -> List[Slide]:
        total = len(slide_paths)
        loop = asyncio.get_running_loop()

        if self.config.parallel_slides and total > 1:
            futures = [
                loop.run_in_executor(None, self._parse_guarded, handle, resolver, media, p, i, base_ctx)
                for i, p in enumerate(slide_paths)
            ]
            outcomes = []
            for done, future in enumerate(futures, start=1):
                outcomes.append(await future)
                tracker.step(ImportStage.PARSING_SLIDES, done, total, f"Parsing slide {done} of {total}...")
        else:
            outcomes = []
            for i, slide_path in enumerate(slide_paths):
                outcomes.append(self._parse_guarded(handle, resolver, media, slide_path, i, base_ctx))
                tracker.step(ImportStage.PARSING_SLIDES, i + 1, total, f"Parsing slide {i + 1} of {total}...")
                # Yield so a cancelled import stops between slides
                await asyncio.sleep(0)

        slides: List[Slide] = []
        for slide, slide_warnings in outcomes:
            warnings.extend(slide_warnings)
            if slide is not None:
                slides.append(slide)
            else:
                self.stats["skipped_slides"] += 1
        return slides

    def _parse_guarded(
        self,
        handle: PackageHandle,
        resolver: LayoutResolver,
        media: Dict[str, ImageHandle],
        slide_path: str,
        index: int,
        base_ctx: ParseContext,
    ) -> Tuple[Optional[Slide], List[str]]:
        slide_warnings: List[str] = []
        try:
            slide = self.parse_slide_part(handle, resolver, media, slide_path, index, base_ctx.with_warnings(slide_warnings))
            return slide, slide_warnings
        except MalformedSlide as e:
            logger.warning(f"Skipping slide {index + 1}: {e}")
            slide_warnings.append(f"Slide {index + 1} could not be parsed: {e.message}")
            return None, slide_warnings

    def parse_slide_part(
        self,
        handle: PackageHandle,
        resolver: LayoutResolver,
        media: Dict[str, ImageHandle],
        slide_path: str,
        index: int,
        ctx: ParseContext,
    ) -> Slide:
        """Parse one slide part; MalformedSlide when it cannot be read or parsed"""
        try:
            root = handle.read_xml(slide_path)
            bundle = resolver.resolve(related_part(handle, slide_path, 'slideLayout'))
            images = build_image_map(handle.image_relationships(slide_path), media)
            slide_ctx = (
                ctx.with_theme(bundle.theme.colors, bundle.theme.bg_fill_styles, bundle.theme.font_scheme)
                .with_images(images, slide_path)
            )
            slide = parse_slide(root, index, slide_ctx, bundle, self.config.include_layout_elements)
            slide.notes = self.read_notes(handle, slide_path)
            return slide
        except (MissingPart, etree.XMLSyntaxError) as e:
            raise MalformedSlide(index, slide_path, f"Failed to read {slide_path}", cause=e)
        except CorruptArchive:
            raise
        except Exception as e:
            raise MalformedSlide(index, slide_path, f"Failed to parse {slide_path}", cause=e)

    def slide_paths(self, handle: PackageHandle, presentation) -> List[str]:
        """Slide parts in presentation order (sldIdLst), else by file number"""
        targets = {rel.id: rel.target for rel in handle.relationships(PRESENTATION_PART) if rel.kind == 'slide'}
        ordered = []
        for sld_id in children(path(presentation, 'p:sldIdLst'), 'p:sldId'):
            target = targets.get(r_attr(sld_id, 'id') or '')
            if target and handle.has_part(target):
                ordered.append(target)
        if ordered:
            return ordered
        return handle.list_parts('ppt/slides/', SLIDE_PATTERN)

    def scale_factor(self, presentation) -> float:
        size = child(presentation, 'p:sldSz')
        width = emu_to_pixels(attr_int(size, 'cx')) if size is not None else None
        height = emu_to_pixels(attr_int(size, 'cy')) if size is not None else None
        return compute_scale_factor(width, height, self.config.target_width, self.config.target_height)

    def parse_themes(self, handle: PackageHandle, warnings: List[str]) -> Dict[str, ParsedTheme]:
        themes: Dict[str, ParsedTheme] = {}
        for theme_path in handle.list_parts('ppt/theme/', THEME_PATTERN):
            try:
                themes[theme_path] = parse_theme(handle.read_bytes(theme_path))
            except (MissingPart, etree.XMLSyntaxError) as e:
                message = f"Failed to parse theme {theme_path}: {e}"
                logger.warning(message)
                warnings.append(message)
        logger.debug(f"Parsed {len(themes)} themes")
        return themes

    def default_theme(self, handle: PackageHandle, themes: Dict[str, ParsedTheme]) -> ParsedTheme:
        theme_path = related_part(handle, PRESENTATION_PART, 'theme') or DEFAULT_THEME_PATH
        return themes.get(theme_path) or themes.get(DEFAULT_THEME_PATH) or ParsedTheme()

    def build_theme(self, parsed: ParsedTheme) -> Theme:
        return Theme(
            name="Imported Theme",
            color_scheme=parsed.color_scheme,
            font_scheme=parsed.font_scheme,
            default_background=Background.solid(parsed.color_scheme.background1),
            background_fill_styles=parsed.bg_fill_styles,
        )

    def read_metadata(self, handle: PackageHandle) -> DocumentMetadata:
        metadata = DocumentMetadata()
        try:
            core = handle.read_xml(CORE_PROPERTIES_PART)
        except (MissingPart, etree.XMLSyntaxError) as e:
            logger.debug(f"No core properties: {e}")
        else:
            metadata.title = _core_text(core, 'dc', 'title') or ''
            metadata.author = _core_text(core, 'dc', 'creator') or ''
            metadata.subject = _core_text(core, 'dc', 'subject')
            metadata.revision = _core_text(core, 'cp', 'revision')
        try:
            app = handle.read_xml(APP_PROPERTIES_PART)
        except (MissingPart, etree.XMLSyntaxError) as e:
            logger.debug(f"No app properties: {e}")
        else:
            metadata.company = _core_text(app, 'ep', 'Company')
        return metadata

    def read_notes(self, handle: PackageHandle, slide_path: str) -> Optional[str]:
        """Plain text of the slide's speaker notes body placeholder"""
        notes_path = related_part(handle, slide_path, 'notesSlide')
        if notes_path is None:
            return None
        try:
            notes = handle.read_xml(notes_path)
        except (MissingPart, etree.XMLSyntaxError) as e:
            logger.warning(f"Could not read notes {notes_path}: {e}")
            return None
        for sp in notes.iter(qn('p:sp')):
            ref = placeholder_info(sp)
            if ref is None or ref.kind != 'body':
                continue
            paragraphs = [text_of(p) for p in children(child(sp, 'p:txBody'), 'a:p')]
            text = '\n'.join(paragraphs).strip()
            return text or None
        return None


def _core_text(root, prefix: str, name: str) -> Optional[str]:
    el = root.find(f"{{{NS[prefix]}}}{name}")
    if el is None or not (el.text or '').strip():
        return None
    return el.text.strip()


def _filename_stem(filename: Optional[str]) -> Optional[str]:
    if not filename:
        return None
    stem = posixpath.splitext(posixpath.basename(filename.replace('\\', '/')))[0]
    return stem or None


async def import_package(
    data: bytes,
    on_progress: Optional[ProgressCallback] = None,
    *,
    filename: Optional[str] = None,
    config: Optional[ImportConfig] = None,
) -> ImportResult:
    """Import package bytes into a Document; never raises for bad input"""
    importer = PackageImporter(config)
    return await importer.import_bytes(data, on_progress, filename=filename)


def import_package_sync(
    data: bytes,
    on_progress: Optional[ProgressCallback] = None,
    *,
    filename: Optional[str] = None,
    config: Optional[ImportConfig] = None,
) -> ImportResult:
    """Blocking wrapper for scripts and the CLI"""
    return asyncio.run(import_package(data, on_progress, filename=filename, config=config))
