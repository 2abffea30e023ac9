"""
Container reader for presentation packages.

Opens the zip archive, reads XML parts, resolves relationship files and
extracts embedded media into addressable image handles.
"""

import asyncio
import base64
import logging
import posixpath
import re
import zipfile
from dataclasses import dataclass
from io import BytesIO
from typing import Dict, List, Optional

from lxml import etree
from PIL import Image, UnidentifiedImageError

from deckport.services.pptx.exceptions import CorruptArchive, MissingPart, UnsupportedMediaType
from deckport.services.pptx.xml_utils import NS, parse_xml

logger = logging.getLogger(__name__)

SUPPORTED_EXTENSIONS = ('.pptx', '.pptm')
MEDIA_PREFIX = 'ppt/media/'

MEDIA_MIME_TYPES = {
    'png': 'image/png',
    'jpg': 'image/jpeg',
    'jpeg': 'image/jpeg',
    'gif': 'image/gif',
    'bmp': 'image/bmp',
    'tiff': 'image/tiff',
    'tif': 'image/tiff',
    'webp': 'image/webp',
    'svg': 'image/svg+xml',
}

IMAGE_REL_MARKER = '/image'


def is_package_filename(filename: str) -> bool:
    return filename.lower().endswith(SUPPORTED_EXTENSIONS)


@dataclass
class ImageHandle:
    """Decoded media entry: raw bytes plus declared MIME type"""
    path: str
    data: bytes
    mime_type: str
    width: Optional[int] = None
    height: Optional[int] = None

    @property
    def data_url(self) -> str:
        encoded = base64.b64encode(self.data).decode('ascii')
        return f"data:{self.mime_type};base64,{encoded}"


@dataclass
class Relationship:
    id: str
    type: str
    target: str
    external: bool = False

    @property
    def kind(self) -> str:
        """Last segment of the relationship type URI ('slide', 'image', ...)"""
        return self.type.rsplit('/', 1)[-1]


class PackageHandle:
    """Read-only view over an opened package archive"""

    def __init__(self, archive: zipfile.ZipFile):
        self._archive = archive
        self._names = {info.filename for info in archive.infolist() if not info.is_dir()}

    def has_part(self, path: str) -> bool:
        return path in self._names

    def list_parts(self, prefix: str = '', pattern: Optional[str] = None) -> List[str]:
        """Part names under prefix, optionally filtered by a regex on the full name"""
        regex = re.compile(pattern) if pattern else None
        names = [n for n in self._names if n.startswith(prefix)]
        if regex is not None:
            names = [n for n in names if regex.search(n)]
        return sorted(names, key=_natural_key)

    def read_bytes(self, path: str) -> bytes:
        if path not in self._names:
            raise MissingPart(path)
        try:
            return self._archive.read(path)
        except (zipfile.BadZipFile, EOFError, OSError) as e:
            raise CorruptArchive(f"Failed to read part {path}", cause=e, context={'path': path})

    def read_part(self, path: str) -> str:
        """Text of an XML part; MissingPart when absent"""
        data = self.read_bytes(path)
        try:
            return data.decode('utf-8-sig')
        except UnicodeDecodeError:
            return data.decode('utf-16')

    def read_xml(self, path: str) -> etree._Element:
        """Parsed root of an XML part"""
        return parse_xml(self.read_bytes(path))

    def read_optional(self, path: str) -> Optional[str]:
        """Text of a part, or None when the archive lacks it"""
        try:
            return self.read_part(path)
        except MissingPart:
            return None

    def relationships(self, part: str) -> List[Relationship]:
        """All relationships owned by part (empty when the .rels part is absent)"""
        rels_xml = self.read_optional(rels_path_for(part))
        if rels_xml is None:
            return []
        return resolve_all_relationships(rels_xml, part)

    def image_relationships(self, part: str) -> Dict[str, str]:
        rels_xml = self.read_optional(rels_path_for(part))
        if rels_xml is None:
            return {}
        return resolve_relationships(rels_xml, part)

    def close(self) -> None:
        self._archive.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()


def open_package(data: bytes) -> PackageHandle:
    """Open archive bytes; CorruptArchive when the central directory is unreadable"""
    if not data:
        raise CorruptArchive("Empty package data")
    try:
        archive = zipfile.ZipFile(BytesIO(data))
    except (zipfile.BadZipFile, zipfile.LargeZipFile, EOFError, OSError, ValueError) as e:
        raise CorruptArchive("Not a valid presentation archive", cause=e)
    return PackageHandle(archive)


def rels_path_for(part: str) -> str:
    """'ppt/slides/slide1.xml' -> 'ppt/slides/_rels/slide1.xml.rels'"""
    directory, name = posixpath.split(part)
    return posixpath.join(directory, '_rels', f"{name}.rels")


def normalize_target(owner_part: str, target: str) -> str:
    """Resolve a relationship target against the owning part's directory"""
    if target.startswith('/'):
        return posixpath.normpath(target.lstrip('/'))
    base = posixpath.dirname(owner_part)
    return posixpath.normpath(posixpath.join(base, target))


def resolve_all_relationships(rels_xml: str, owner_part: str) -> List[Relationship]:
    root = parse_xml(rels_xml)
    result = []
    for rel in root.iter(f"{{{NS['pr']}}}Relationship"):
        rel_id = rel.get('Id')
        target = rel.get('Target')
        if not rel_id or not target:
            continue
        external = rel.get('TargetMode') == 'External'
        result.append(Relationship(
            id=rel_id,
            type=rel.get('Type', ''),
            target=target if external else normalize_target(owner_part, target),
            external=external,
        ))
    return result


def resolve_relationships(rels_xml: str, owner_part: str) -> Dict[str, str]:
    """Image relationships of a part: rId -> normalized media path"""
    return {
        rel.id: rel.target
        for rel in resolve_all_relationships(rels_xml, owner_part)
        if IMAGE_REL_MARKER in rel.type and not rel.external
    }


def _measure_image(path: str, data: bytes, mime_type: str) -> ImageHandle:
    handle = ImageHandle(path=path, data=data, mime_type=mime_type)
    if mime_type == 'image/svg+xml':
        return handle
    try:
        with Image.open(BytesIO(data)) as img:
            handle.width, handle.height = img.size
    except (UnidentifiedImageError, OSError, ValueError) as e:
        logger.debug(f"Could not read image size for {path}: {e}")
    return handle


def _read_media_entry(handle: PackageHandle, path: str) -> ImageHandle:
    extension = path.rsplit('.', 1)[-1].lower() if '.' in path else ''
    mime_type = MEDIA_MIME_TYPES.get(extension)
    if mime_type is None:
        raise UnsupportedMediaType(path)
    return _measure_image(path, handle.read_bytes(path), mime_type)


async def extract_media(handle: PackageHandle) -> Dict[str, ImageHandle]:
    """Every supported media entry keyed by its package path"""
    loop = asyncio.get_running_loop()
    media: Dict[str, ImageHandle] = {}
    for path in handle.list_parts(MEDIA_PREFIX):
        try:
            media[path] = await loop.run_in_executor(None, _read_media_entry, handle, path)
        except UnsupportedMediaType as e:
            logger.warning(f"Skipping media entry: {e}")
        except (CorruptArchive, MissingPart) as e:
            logger.warning(f"Failed to extract media {path}: {e}")
    logger.debug(f"Extracted {len(media)} media entries")
    return media


def _natural_key(name: str):
    return [int(tok) if tok.isdigit() else tok for tok in re.split(r'(\d+)', name)]
