"""
Presentation document model shared with the editor.
"""

from deckport.models.elements import (
    ShapeType,
    Position,
    Size,
    Padding,
    GradientStop,
    GradientFill,
    Fill,
    Stroke,
    TextStyle,
    TextRun,
    Paragraph,
    TextContent,
    TextBoxStyle,
    ElementBase,
    TextElement,
    ShapeElement,
    ImageElement,
    CellBorders,
    TableCell,
    TableStyle,
    TableElement,
    GroupElement,
    SlideElement,
)
from deckport.models.presentation import (
    OFFICE_THEME_COLORS,
    Background,
    ColorScheme,
    FontScheme,
    ThemeBgFillStyle,
    ThemeGradient,
    ThemeGradientStop,
    Theme,
    PlaceholderTransform,
    Slide,
    DocumentMetadata,
    Document,
    ProgressEvent,
    ImportResult,
    ExportResult,
)

__all__ = [
    'ShapeType',
    'Position',
    'Size',
    'Padding',
    'GradientStop',
    'GradientFill',
    'Fill',
    'Stroke',
    'TextStyle',
    'TextRun',
    'Paragraph',
    'TextContent',
    'TextBoxStyle',
    'ElementBase',
    'TextElement',
    'ShapeElement',
    'ImageElement',
    'CellBorders',
    'TableCell',
    'TableStyle',
    'TableElement',
    'GroupElement',
    'SlideElement',
    'OFFICE_THEME_COLORS',
    'Background',
    'ColorScheme',
    'FontScheme',
    'ThemeBgFillStyle',
    'ThemeGradient',
    'ThemeGradientStop',
    'Theme',
    'PlaceholderTransform',
    'Slide',
    'DocumentMetadata',
    'Document',
    'ProgressEvent',
    'ImportResult',
    'ExportResult',
]
