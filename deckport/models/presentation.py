from datetime import datetime
from typing import Dict, List, Literal, Optional

from pydantic import Field, model_validator

from deckport.models.base import DeckModel
from deckport.models.elements import GradientFill, SlideElement, new_id

# Office 2013+ default colour scheme
OFFICE_THEME_COLORS: Dict[str, str] = {
    "dark1": "#000000",
    "dark2": "#44546A",
    "light1": "#FFFFFF",
    "light2": "#E7E6E6",
    "accent1": "#4472C4",
    "accent2": "#ED7D31",
    "accent3": "#A5A5A5",
    "accent4": "#FFC000",
    "accent5": "#5B9BD5",
    "accent6": "#70AD47",
    "hyperlink": "#0563C1",
    "followedHyperlink": "#954F72",
}

DEFAULT_MAJOR_FONT = "Calibri Light"
DEFAULT_MINOR_FONT = "Calibri"


class Background(DeckModel):
    """
    Concrete slide paint.

    A background always resolves to something paintable: a solid colour,
    a gradient with at least two stops, or an image with a solid fallback.
    """
    type: Literal["solid", "gradient", "image"] = "solid"
    color: Optional[str] = None
    gradient: Optional[GradientFill] = None
    image_url: Optional[str] = None

    @model_validator(mode="after")
    def check_paint(self) -> "Background":
        if self.type == "solid" and not self.color:
            raise ValueError("solid background requires a color")
        if self.type == "gradient" and (self.gradient is None or len(self.gradient.stops) < 2):
            raise ValueError("gradient background requires at least two stops")
        if self.type == "image" and not (self.image_url or self.color):
            raise ValueError("image background requires an image_url or fallback color")
        return self

    @classmethod
    def solid(cls, color: str) -> "Background":
        return cls(type="solid", color=color)

    def is_default_white(self) -> bool:
        return self.type == "solid" and (self.color or "").upper() == "#FFFFFF"


class ColorScheme(DeckModel):
    """Twelve theme slots plus the four semantic aliases"""
    dark1: str = OFFICE_THEME_COLORS["dark1"]
    light1: str = OFFICE_THEME_COLORS["light1"]
    dark2: str = OFFICE_THEME_COLORS["dark2"]
    light2: str = OFFICE_THEME_COLORS["light2"]
    accent1: str = OFFICE_THEME_COLORS["accent1"]
    accent2: str = OFFICE_THEME_COLORS["accent2"]
    accent3: str = OFFICE_THEME_COLORS["accent3"]
    accent4: str = OFFICE_THEME_COLORS["accent4"]
    accent5: str = OFFICE_THEME_COLORS["accent5"]
    accent6: str = OFFICE_THEME_COLORS["accent6"]
    hyperlink: str = OFFICE_THEME_COLORS["hyperlink"]
    followed_hyperlink: str = OFFICE_THEME_COLORS["followedHyperlink"]
    background1: str = OFFICE_THEME_COLORS["light1"]
    text1: str = OFFICE_THEME_COLORS["dark1"]
    background2: str = OFFICE_THEME_COLORS["light2"]
    text2: str = OFFICE_THEME_COLORS["dark2"]

    @classmethod
    def from_colors(cls, colors: Dict[str, str]) -> "ColorScheme":
        """Build a scheme from a slot-name map, filling gaps with Office defaults"""
        merged = {**OFFICE_THEME_COLORS, **colors}
        return cls(
            dark1=merged["dark1"],
            light1=merged["light1"],
            dark2=merged["dark2"],
            light2=merged["light2"],
            accent1=merged["accent1"],
            accent2=merged["accent2"],
            accent3=merged["accent3"],
            accent4=merged["accent4"],
            accent5=merged["accent5"],
            accent6=merged["accent6"],
            hyperlink=merged["hyperlink"],
            followed_hyperlink=merged["followedHyperlink"],
            background1=merged["light1"],
            text1=merged["dark1"],
            background2=merged["light2"],
            text2=merged["dark2"],
        )


class FontScheme(DeckModel):
    major_font: str = DEFAULT_MAJOR_FONT
    minor_font: str = DEFAULT_MINOR_FONT


class ThemeGradientStop(DeckModel):
    position: float
    color: Optional[str] = None
    scheme_color: Optional[str] = None


class ThemeGradient(DeckModel):
    angle: float = 0
    stops: List[ThemeGradientStop] = Field(default_factory=list)


class ThemeBgFillStyle(DeckModel):
    """One entry of the theme's background fill catalog (bgRef idx - 1001)"""
    type: Literal["solid", "gradient"]
    solid_color: Optional[str] = None
    scheme_color: Optional[str] = None
    gradient: Optional[ThemeGradient] = None


class Theme(DeckModel):
    id: str = Field(default_factory=new_id)
    name: str = "Imported Theme"
    color_scheme: ColorScheme = Field(default_factory=ColorScheme)
    font_scheme: FontScheme = Field(default_factory=FontScheme)
    default_background: Background = Field(default_factory=lambda: Background.solid("#FFFFFF"))
    background_fill_styles: List[ThemeBgFillStyle] = Field(default_factory=list)


class PlaceholderTransform(DeckModel):
    """Inherited placeholder geometry in source pixels"""
    model_config = {"frozen": True}

    x: float
    y: float
    width: float
    height: float


class Slide(DeckModel):
    id: str = Field(default_factory=new_id)
    order: int = 0
    elements: List[SlideElement] = Field(default_factory=list)
    background: Background = Field(default_factory=lambda: Background.solid("#FFFFFF"))
    layout_id: Optional[str] = None
    notes: Optional[str] = None
    hidden: bool = False

    @model_validator(mode="after")
    def keep_paint_order(self) -> "Slide":
        # Paint order is ascending z_index; stable for ties
        self.elements.sort(key=lambda el: el.z_index)
        return self


class DocumentMetadata(DeckModel):
    title: str = ""
    author: str = ""
    subject: Optional[str] = None
    company: Optional[str] = None
    revision: Optional[str] = None


class Document(DeckModel):
    id: str = Field(default_factory=new_id)
    name: str = "Untitled Presentation"
    slides: List[Slide] = Field(default_factory=list)
    theme: Theme = Field(default_factory=Theme)
    metadata: DocumentMetadata = Field(default_factory=DocumentMetadata)
    created_at: datetime = Field(default_factory=datetime.now)
    updated_at: datetime = Field(default_factory=datetime.now)


class ProgressEvent(DeckModel):
    stage: str
    current: int
    total: int = 100
    message: str = ""


class ImportResult(DeckModel):
    success: bool
    document: Optional[Document] = None
    error: Optional[str] = None
    warnings: List[str] = Field(default_factory=list)


class ExportResult(DeckModel):
    success: bool
    data: Optional[bytes] = None
    error: Optional[str] = None
    warnings: List[str] = Field(default_factory=list)
