import time

import numpy as np
import pytest

from specimen_editor.core.buffer import PixelBuffer
from specimen_editor.core.transform import (
    DEFAULT_CHECKERBOARD,
    Checkerboard,
    TransformState,
    commit,
    render,
)

from helpers import solid

RED = (200, 10, 10, 255)


def _rgb(buffer, x, y):
    return buffer.pixel(x, y)[:3]


def test_identity_render_copies_source_exactly(white_square):
    out = render(white_square, TransformState(), (100, 100))
    assert out.equals(white_square)


def test_source_is_centred_over_checkerboard():
    out = render(solid(10, 10, RED), TransformState(), (30, 30))
    assert np.all(out.pixels[10:20, 10:20] == RED)
    assert _rgb(out, 0, 0) == DEFAULT_CHECKERBOARD.dark
    assert _rgb(out, 10, 0) == DEFAULT_CHECKERBOARD.light
    assert np.all(out.alpha == 255)


def test_translation_is_in_canvas_pixels():
    state = TransformState(translation=(5.0, -3.0))
    out = render(solid(10, 10, RED), state, (30, 30))
    assert np.all(out.pixels[7:17, 15:25] == RED)
    assert _rgb(out, 14, 10) != RED[:3]


def test_quarter_turn_rotates_around_canvas_centre():
    state = TransformState(rotation_degrees=90.0)
    out = render(solid(20, 10, RED), state, (40, 40))
    covered = np.all(out.pixels == RED, axis=-1)
    rows, cols = np.nonzero(covered)
    assert (cols.min(), cols.max()) == (15, 24)
    assert (rows.min(), rows.max()) == (10, 29)
    assert covered.sum() == 200


def test_rotation_is_normalised_modulo_360():
    source = solid(20, 10, RED)
    a = render(source, TransformState(rotation_degrees=90.0), (40, 40))
    b = render(source, TransformState(rotation_degrees=450.0), (40, 40))
    c = render(source, TransformState(rotation_degrees=-270.0), (40, 40))
    assert a.equals(b)
    assert a.equals(c)


def test_zoom_pivots_on_canvas_centre_after_pan():
    state = TransformState(scale=2.0, translation=(4.0, 0.0))
    out = render(solid(10, 10, RED), state, (40, 40))
    assert _rgb(out, 24, 20) == RED[:3]
    assert _rgb(out, 15, 12) == RED[:3]
    assert _rgb(out, 2, 2) != RED[:3]


def test_image_may_leave_canvas_entirely():
    state = TransformState(translation=(1000.0, 1000.0))
    out = render(solid(10, 10, RED), state, (30, 30))
    expected = DEFAULT_CHECKERBOARD.paint(30, 30)
    assert np.array_equal(out.pixels[..., :3], expected)


def test_without_checkerboard_uncovered_area_is_transparent():
    out = render(solid(10, 10, RED), TransformState(), (30, 30), checkerboard=None)
    assert out.pixel(0, 0)[3] == 0
    assert out.pixel(15, 15) == RED
    assert out.transparent_count() == 30 * 30 - 100


def test_source_alpha_blends_over_checkerboard():
    out = render(solid(10, 10, (0, 0, 0, 0)), TransformState(), (10, 10))
    assert np.array_equal(out.pixels[..., :3], DEFAULT_CHECKERBOARD.paint(10, 10))


def test_commit_matches_render():
    state = TransformState(scale=1.3, rotation_degrees=37.0, translation=(3.5, -8.0))
    source = solid(25, 15, RED)
    assert commit(source, state, (60, 50)).equals(render(source, state, (60, 50)))


def test_checkerboard_even_cells_are_dark():
    grid = Checkerboard(cell_size=2, light=(1, 1, 1), dark=(9, 9, 9)).paint(4, 4)
    assert tuple(grid[0, 0]) == (9, 9, 9)
    assert tuple(grid[0, 2]) == (1, 1, 1)
    assert tuple(grid[2, 2]) == (9, 9, 9)


@pytest.mark.parametrize("scale", [0.0, -1.0, float("nan")])
def test_scale_must_be_positive(scale):
    with pytest.raises(ValueError):
        TransformState(scale=scale)


def test_invalid_canvas_size():
    with pytest.raises(ValueError):
        render(solid(4, 4), TransformState(), (0, 10))


def test_state_helpers():
    state = TransformState()
    state.rotate_by(-90)
    state.pan_by(2, 3)
    state.pan_by(1, 1)
    assert state.normalized_rotation == 270.0
    assert state.translation == (3.0, 4.0)
    state.reset()
    assert state == TransformState()


def test_large_source_matches_its_visible_crop():
    rng = np.random.default_rng(7)
    pixels = rng.integers(0, 256, size=(2000, 3000, 4), dtype=np.uint8)
    state = TransformState(scale=2.0, rotation_degrees=90.0, translation=(12.0, -7.0))
    full = render(PixelBuffer(pixels), state, (200, 200))
    crop = render(PixelBuffer(pixels[500:1500, 1000:2000].copy()), state, (200, 200))
    assert full.equals(crop)


def test_render_cost_follows_canvas_not_source():
    photo = solid(4000, 3000, RED)
    state = TransformState(scale=0.5)
    render(photo, state, (600, 600))
    started = time.perf_counter()
    out = render(photo, state, (600, 600))
    elapsed = time.perf_counter() - started
    assert out.pixel(300, 300) == RED
    assert elapsed < 0.1
