from deckport.models.elements import ShapeElement, TableCell, TableElement
from deckport.services.pptx.scaler import (
    STANDARD_4_3_HEIGHT_EMU,
    STANDARD_4_3_WIDTH_EMU,
    WIDESCREEN_SLIDE_HEIGHT_EMU,
    WIDESCREEN_SLIDE_WIDTH_EMU,
    ZIndexCounter,
    compute_scale_factor,
    scale_element,
)
from deckport.services.pptx.units import emu_to_pixels


def _shape(x, y, width, height):
    return ShapeElement(position={'x': x, 'y': y}, size={'width': width, 'height': height})


def test_scale_factor_fits_source_inside_target():
    assert compute_scale_factor(1280, 720) == 0.75
    assert compute_scale_factor(960, 540) == 1.0
    # 4:3 is height-bound
    assert compute_scale_factor(960, 720) == 0.75


def test_scale_factor_defaults_missing_size_to_canvas():
    assert compute_scale_factor(None, None) == 1.0
    assert compute_scale_factor(0, -5) == 1.0


def test_common_slide_sizes():
    widescreen = compute_scale_factor(emu_to_pixels(WIDESCREEN_SLIDE_WIDTH_EMU), emu_to_pixels(WIDESCREEN_SLIDE_HEIGHT_EMU))
    standard = compute_scale_factor(emu_to_pixels(STANDARD_4_3_WIDTH_EMU), emu_to_pixels(STANDARD_4_3_HEIGHT_EMU))
    assert widescreen == 0.75
    assert standard == 0.75
    assert compute_scale_factor(emu_to_pixels(WIDESCREEN_SLIDE_WIDTH_EMU), emu_to_pixels(WIDESCREEN_SLIDE_HEIGHT_EMU), 1280, 720) == 1.0


def test_adjacent_elements_keep_shared_edge():
    left = scale_element(_shape(0, 0, 101, 10), 0.75)
    right = scale_element(_shape(101, 0, 100, 10), 0.75)
    assert left.position.x + left.size.width == right.position.x


def test_small_bottom_overflow_is_pulled_onto_canvas():
    element = scale_element(_shape(0, 530, 100, 20), 1.0)
    assert element.position.y == 520
    assert element.size.height == 20


def test_large_bottom_overflow_is_left_alone():
    element = scale_element(_shape(0, 530, 100, 40), 1.0)
    assert element.position.y == 530


def test_overflow_tolerance_is_configurable():
    element = scale_element(_shape(0, 530, 100, 20), 1.0, target_height=540, tolerance=5)
    assert element.position.y == 530


def test_table_grid_scales_with_frame():
    table = TableElement(
        position={'x': 0, 'y': 0},
        size={'width': 200, 'height': 80},
        rows=1,
        columns=2,
        cells=[[TableCell(), TableCell()]],
        column_widths=[100, 100],
        row_heights=[80],
    )
    scale_element(table, 0.5)
    assert table.column_widths == [50, 50]
    assert table.row_heights == [40]
    assert table.size.width == 100


def test_z_index_counter_is_dense():
    counter = ZIndexCounter()
    assert [counter.next() for _ in range(3)] == [1, 2, 3]
    assert counter.issued == 3
