"""
Exception hierarchy for package import/export.

Archive-level failures abort an import. Everything else is recoverable and
is logged at the smallest scope that contains it (element, slide, media entry).
"""

from typing import Optional, Dict, Any


class PackageError(Exception):
    """Base exception for all package errors"""

    recoverable = False

    def __init__(
        self,
        message: str,
        cause: Optional[Exception] = None,
        context: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message)
        self.message = message
        self.cause = cause
        self.context = context or {}

    def __str__(self):
        parts = [super().__str__()]
        if self.cause:
            parts.append(f" (caused by: {type(self.cause).__name__}: {str(self.cause)})")
        if self.context:
            parts.append(f" Context: {self.context}")
        return "".join(parts)


# === Archive exceptions ===

class CorruptArchive(PackageError):
    """The zip central directory could not be read"""
    pass


class MissingPart(PackageError):
    """A part referenced by path is absent from the archive"""

    recoverable = True

    def __init__(self, path: str, message: Optional[str] = None, **kwargs):
        super().__init__(message or f"Missing part: {path}", **kwargs)
        self.path = path
        self.context.setdefault('path', path)


class MissingRequiredPart(MissingPart):
    """A part the import cannot proceed without (presentation.xml)"""

    recoverable = False


class UnsupportedFileType(PackageError):
    """File name does not carry a presentation package extension"""
    pass


# === Recoverable parse exceptions ===

class UnresolvedRelationship(PackageError):
    """A relationship id has no usable target"""

    recoverable = True

    def __init__(self, rel_id: str, owner: str = "", **kwargs):
        super().__init__(f"Unresolved relationship {rel_id} in {owner or 'part'}", **kwargs)
        self.rel_id = rel_id
        self.owner = owner


class UnsupportedMediaType(PackageError):
    """Media entry with an extension we do not decode"""

    recoverable = True

    def __init__(self, path: str, **kwargs):
        super().__init__(f"Unsupported media type: {path}", **kwargs)
        self.path = path


class MalformedSlide(PackageError):
    """A slide part could not be parsed"""

    recoverable = True

    def __init__(self, slide_index: int, part: str, message: str, **kwargs):
        super().__init__(message, **kwargs)
        self.slide_index = slide_index
        self.part = part
        self.context.update({
            'slide_index': slide_index,
            'part': part,
        })


# === Export exceptions ===

class ExportError(PackageError):
    """Writing the package failed as a whole"""
    pass


class ImageEmbedFailure(ExportError):
    """One image could not be embedded; a placeholder is drawn instead"""

    recoverable = True

    def __init__(self, element_id: str, message: str, **kwargs):
        super().__init__(message, **kwargs)
        self.element_id = element_id
        self.context.setdefault('element_id', element_id)


def is_recoverable(error: Exception) -> bool:
    """Check if import/export may continue after this error"""
    return isinstance(error, PackageError) and error.recoverable
