"""
Scaling and layering of parsed elements onto the editor canvas.
"""

from typing import Optional

from deckport.models.elements import ElementBase, TableElement
from deckport.services.pptx.units import EMU_PER_PIXEL, round_half_up

TARGET_WIDTH = 960
TARGET_HEIGHT = 540

# 10in x 5.625in, the canvas the editor maps 1:1 onto 960x540
DEFAULT_SLIDE_WIDTH_EMU = 9144000
DEFAULT_SLIDE_HEIGHT_EMU = 5143500
WIDESCREEN_SLIDE_WIDTH_EMU = 12192000
WIDESCREEN_SLIDE_HEIGHT_EMU = 6858000
STANDARD_4_3_WIDTH_EMU = 9144000
STANDARD_4_3_HEIGHT_EMU = 6858000

# Elements whose bottom edge lands at most this far below the canvas are
# nudged up to fit (footer placeholders); larger overflows stay visible.
BOTTOM_OVERFLOW_TOLERANCE_PX = 15


def compute_scale_factor(
    source_width: Optional[float],
    source_height: Optional[float],
    target_width: float = TARGET_WIDTH,
    target_height: float = TARGET_HEIGHT,
) -> float:
    """Uniform multiplier fitting the source canvas (px) inside the target canvas"""
    if not source_width or source_width <= 0:
        source_width = DEFAULT_SLIDE_WIDTH_EMU / EMU_PER_PIXEL
    if not source_height or source_height <= 0:
        source_height = DEFAULT_SLIDE_HEIGHT_EMU / EMU_PER_PIXEL
    return min(target_width / source_width, target_height / source_height)


def scale_element(
    element: ElementBase,
    scale_factor: float,
    target_height: float = TARGET_HEIGHT,
    tolerance: float = BOTTOM_OVERFLOW_TOLERANCE_PX,
) -> ElementBase:
    """
    Scale an element in place by its corners.

    Both corners are scaled and rounded independently and the size is the
    corner delta, so adjacent elements keep sharing edges after scaling.
    """
    x1 = round_half_up(element.position.x * scale_factor)
    y1 = round_half_up(element.position.y * scale_factor)
    x2 = round_half_up((element.position.x + element.size.width) * scale_factor)
    y2 = round_half_up((element.position.y + element.size.height) * scale_factor)
    width = max(0, x2 - x1)
    height = max(0, y2 - y1)

    bottom = y1 + height
    if target_height < bottom <= target_height + tolerance:
        y1 = int(target_height - height)

    element.position.x = x1
    element.position.y = y1
    element.size.width = width
    element.size.height = height

    # Table grids scale with their frame
    if isinstance(element, TableElement):
        element.column_widths = [w * scale_factor for w in element.column_widths]
        element.row_heights = [h * scale_factor for h in element.row_heights]
    return element


class ZIndexCounter:
    """Dense paint-order counter: 1, 2, 3, ... in traversal order"""

    def __init__(self, start: int = 1):
        self._next = start

    def next(self) -> int:
        value = self._next
        self._next += 1
        return value

    @property
    def issued(self) -> int:
        return self._next - 1
