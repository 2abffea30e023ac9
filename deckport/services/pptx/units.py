"""
Unit conversions for the package format.

Geometry is stored in EMU (914400 per inch), font sizes in hundredths of a
point, angles in 60000ths of a degree and percentages in 1000ths of a percent.
All conversions round half-up so repeated imports produce identical output.
"""

import math
from typing import Union

Number = Union[int, float]

EMU_PER_INCH = 914400
PIXELS_PER_INCH = 96
EMU_PER_PIXEL = EMU_PER_INCH // PIXELS_PER_INCH  # 9525
EMU_PER_POINT = 12700
ANGLE_UNITS_PER_DEGREE = 60000
PERCENT_UNITS = 100000


def round_half_up(value: Number) -> int:
    return int(math.floor(value + 0.5))


def emu_to_pixels(emu: Number) -> int:
    return round_half_up(emu / EMU_PER_PIXEL)


def pixels_to_emu(pixels: Number) -> int:
    return round_half_up(pixels * EMU_PER_PIXEL)


def hundredths_point_to_points(hp: Number) -> float:
    return hp / 100


def hundredths_point_to_pixels(hp: Number) -> int:
    return round_half_up(hp / 100 * (PIXELS_PER_INCH / 72))


def font_size_points(hp: Number, scale_factor: float = 1.0) -> int:
    """Font size in points after canvas scaling"""
    return round_half_up(hundredths_point_to_points(hp) * scale_factor)


def percent_to_decimal(value: Number) -> float:
    return value / PERCENT_UNITS


def angle_to_degrees(value: Number) -> float:
    return value / ANGLE_UNITS_PER_DEGREE


def degrees_to_angle(degrees: Number) -> int:
    return round_half_up(degrees * ANGLE_UNITS_PER_DEGREE)


def pixels_to_inches(pixels: Number, canvas_pixels: Number, canvas_inches: Number) -> float:
    """Map a canvas pixel coordinate onto the physical slide"""
    return pixels / canvas_pixels * canvas_inches


def parse_int(value, default: int = 0) -> int:
    """Lenient integer attribute parse; malformed values fall back to default"""
    if value is None or value == "":
        return default
    try:
        return int(value)
    except (TypeError, ValueError):
        try:
            return int(float(value))
        except (TypeError, ValueError):
            return default
