from enum import Enum
from typing import Annotated, List, Literal, Optional, Union
from uuid import uuid4

from pydantic import Field, model_validator

from deckport.models.base import DeckModel


def new_id() -> str:
    return str(uuid4())


class ShapeType(str, Enum):
    """Closed set of shape kinds the editor can draw"""
    RECTANGLE = "rectangle"
    ROUNDED_RECTANGLE = "roundedRectangle"
    ELLIPSE = "ellipse"
    TRIANGLE = "triangle"
    RIGHT_TRIANGLE = "rightTriangle"
    DIAMOND = "diamond"
    PENTAGON = "pentagon"
    HEXAGON = "hexagon"
    OCTAGON = "octagon"
    STAR5 = "star5"
    STAR6 = "star6"
    ARROW = "arrow"
    ARROW_LEFT = "arrowLeft"
    ARROW_RIGHT = "arrowRight"
    ARROW_UP = "arrowUp"
    ARROW_DOWN = "arrowDown"
    LINE = "line"
    CALLOUT = "callout"
    CLOUD = "cloud"
    HEART = "heart"
    LIGHTNING = "lightning"
    PLUS = "plus"
    MINUS = "minus"
    CUSTOM = "custom"


class Position(DeckModel):
    x: float = 0
    y: float = 0


class Size(DeckModel):
    width: float = Field(0, ge=0)
    height: float = Field(0, ge=0)


class Padding(DeckModel):
    top: float = 0
    right: float = 0
    bottom: float = 0
    left: float = 0

    @classmethod
    def uniform(cls, value: float) -> "Padding":
        return cls(top=value, right=value, bottom=value, left=value)


class GradientStop(DeckModel):
    position: float = Field(..., description="Stop offset in the range 0..1")
    color: str


class GradientFill(DeckModel):
    type: Literal["linear", "radial"] = "linear"
    angle: float = 0
    stops: List[GradientStop] = Field(default_factory=list)


class Fill(DeckModel):
    type: Literal["none", "solid", "gradient", "pattern", "image"]
    color: Optional[str] = None
    gradient: Optional[GradientFill] = None
    image_url: Optional[str] = None
    pattern_type: Optional[str] = None


class Stroke(DeckModel):
    color: str = "#000000"
    width: float = 1
    style: Literal["solid", "dashed", "dotted", "none"] = "solid"

    @classmethod
    def none(cls) -> "Stroke":
        """Explicit absence of a border"""
        return cls(color="transparent", width=0, style="none")


class TextStyle(DeckModel):
    font_family: str = "Calibri"
    font_size: float = 18
    font_weight: Union[Literal["normal", "bold"], int] = "normal"
    font_style: Literal["normal", "italic"] = "normal"
    text_decoration: Literal["none", "underline", "line-through"] = "none"
    color: str = "#000000"


class TextRun(DeckModel):
    id: str = Field(default_factory=new_id)
    text: str
    style: TextStyle = Field(default_factory=TextStyle)


class Paragraph(DeckModel):
    id: str = Field(default_factory=new_id)
    runs: List[TextRun] = Field(default_factory=list)
    alignment: Literal["left", "center", "right", "justify"] = "left"
    line_spacing: Optional[float] = None
    space_before: Optional[float] = None
    space_after: Optional[float] = None
    bullet_type: Optional[Literal["none", "bullet", "number"]] = None
    bullet_char: Optional[str] = None
    indent_level: Optional[int] = None

    @property
    def plain_text(self) -> str:
        return "".join(run.text for run in self.runs)


class TextContent(DeckModel):
    paragraphs: List[Paragraph] = Field(default_factory=list)

    @property
    def plain_text(self) -> str:
        return "\n".join(p.plain_text for p in self.paragraphs)

    def has_visible_text(self) -> bool:
        return any(run.text.strip() for p in self.paragraphs for run in p.runs)

    @classmethod
    def empty(cls, style: Optional[TextStyle] = None) -> "TextContent":
        """A single empty paragraph, used for blank table cells"""
        run = TextRun(text="", style=style or TextStyle(font_size=14))
        return cls(paragraphs=[Paragraph(runs=[run])])


class TextBoxStyle(DeckModel):
    padding: Padding = Field(default_factory=lambda: Padding.uniform(5))
    vertical_align: Literal["top", "middle", "bottom"] = "top"
    auto_fit: bool = False
    word_wrap: bool = True


class ElementBase(DeckModel):
    """Fields shared by every element variant"""
    id: str = Field(default_factory=new_id)
    position: Position = Field(default_factory=Position)
    size: Size = Field(default_factory=Size)
    rotation: float = 0
    z_index: int = 0
    opacity: Optional[float] = None
    locked: Optional[bool] = None
    name: Optional[str] = None


class TextElement(ElementBase):
    type: Literal["text"] = "text"
    content: TextContent
    style: TextBoxStyle = Field(default_factory=TextBoxStyle)


class ShapeElement(ElementBase):
    type: Literal["shape"] = "shape"
    shape_type: ShapeType = ShapeType.RECTANGLE
    fill: Optional[Fill] = None
    stroke: Optional[Stroke] = None
    text: Optional[TextContent] = None
    flip_h: Optional[bool] = None
    flip_v: Optional[bool] = None


class ImageElement(ElementBase):
    type: Literal["image"] = "image"
    src: str = Field(..., description="Inline data URL, local path or http(s) URL")
    alt: str = ""
    original_size: Optional[Size] = None
    clip_shape: Optional[str] = None


class CellBorders(DeckModel):
    top: Stroke = Field(default_factory=Stroke.none)
    right: Stroke = Field(default_factory=Stroke.none)
    bottom: Stroke = Field(default_factory=Stroke.none)
    left: Stroke = Field(default_factory=Stroke.none)


class TableCell(DeckModel):
    id: str = Field(default_factory=new_id)
    content: TextContent = Field(default_factory=TextContent.empty)
    row_span: Optional[int] = None
    col_span: Optional[int] = None
    fill: Optional[Fill] = None
    borders: CellBorders = Field(default_factory=CellBorders)
    padding: Padding = Field(default_factory=lambda: Padding(top=3, right=5, bottom=3, left=5))
    vertical_align: Literal["top", "middle", "bottom"] = "middle"
    content_type: Literal["text", "image", "checkbox"] = "text"
    # Covered by a neighbour's row/col span
    merged: bool = False


class TableStyle(DeckModel):
    border_collapse: bool = True
    default_cell_fill: Optional[Fill] = None
    header_row_fill: Optional[Fill] = None


class TableElement(ElementBase):
    type: Literal["table"] = "table"
    rows: int
    columns: int
    cells: List[List[TableCell]]
    column_widths: List[float]
    row_heights: List[float]
    style: TableStyle = Field(default_factory=TableStyle)

    @model_validator(mode="after")
    def check_grid(self) -> "TableElement":
        if len(self.cells) != self.rows:
            raise ValueError(f"table has {len(self.cells)} rows, expected {self.rows}")
        for index, row in enumerate(self.cells):
            if len(row) != self.columns:
                raise ValueError(f"table row {index} has {len(row)} cells, expected {self.columns}")
        if len(self.column_widths) != self.columns:
            raise ValueError("column_widths must have one entry per column")
        if len(self.row_heights) != self.rows:
            raise ValueError("row_heights must have one entry per row")
        return self


class GroupElement(ElementBase):
    type: Literal["group"] = "group"
    children: List["SlideElement"] = Field(default_factory=list)


SlideElement = Annotated[
    Union[TextElement, ShapeElement, ImageElement, TableElement, GroupElement],
    Field(discriminator="type"),
]

GroupElement.model_rebuild()
