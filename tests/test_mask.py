import numpy as np
import pytest

from specimen_editor.core.buffer import PixelBuffer
from specimen_editor.core.history import HistoryStack
from specimen_editor.core.mask import (
    TOLERANCE_SCALE,
    BrushStroke,
    MagicWand,
    MaskEngine,
    apply_brush,
    apply_magic_wand,
    apply_stroke,
    brush_radius,
    remove_white_background,
    wand_threshold,
)
from specimen_editor.errors import SessionStateError

from helpers import solid

WHITE = (255, 255, 255)


def _single(rgb, alpha=255):
    return solid(1, 1, (*rgb, alpha))


def test_tolerance_scale_is_two_and_a_half():
    assert TOLERANCE_SCALE == 2.5
    assert wand_threshold(20) == 50.0


@pytest.mark.parametrize("tolerance", [-1, 100.5])
def test_tolerance_out_of_range(tolerance):
    with pytest.raises(ValueError):
        wand_threshold(tolerance)


@pytest.mark.parametrize(
    "tolerance, inside_red, outside_red",
    [
        # threshold 125: distance 124 is removed, 125 is kept
        (50, 255 - 124, 255 - 125),
        # threshold 250: distance 249 is removed, 250 is kept
        (100, 255 - 249, 255 - 250),
    ],
)
def test_magic_wand_threshold_boundary(tolerance, inside_red, outside_red):
    inside = apply_magic_wand(_single((inside_red, 255, 255)), WHITE, tolerance)
    outside = apply_magic_wand(_single((outside_red, 255, 255)), WHITE, tolerance)
    assert inside.pixel(0, 0)[3] == 0
    assert outside.pixel(0, 0)[3] == 255


def test_zero_tolerance_removes_nothing_even_exact_match():
    result = apply_magic_wand(solid(5, 5), WHITE, 0)
    assert result.transparent_count() == 0


def test_magic_wand_only_touches_alpha_of_visible_pixels():
    pixels = np.full((2, 2, 4), 255, dtype=np.uint8)
    pixels[0, 0] = (255, 255, 255, 0)
    pixels[1, 1] = (10, 20, 30, 128)
    buffer = PixelBuffer(pixels)
    result = apply_magic_wand(buffer, WHITE, 20)
    assert result.pixel(0, 0) == (255, 255, 255, 0)
    assert result.pixel(0, 1) == (255, 255, 255, 0)
    assert result.pixel(1, 1) == (10, 20, 30, 128)
    assert np.array_equal(result.pixels[..., :3], buffer.pixels[..., :3])
    assert buffer.transparent_count() == 1


def test_magic_wand_removal_is_monotonic_in_tolerance(noisy_buffer):
    target = noisy_buffer.pixel(20, 20)[:3]
    previous = None
    for tolerance in range(0, 101, 5):
        removed = apply_magic_wand(noisy_buffer, target, tolerance).alpha == 0
        if previous is not None:
            assert np.all(removed[previous])
        previous = removed


def test_brush_containment():
    buffer = solid(41, 41)
    assert apply_brush(buffer, (20, 20), 7) is True
    yy, xx = np.mgrid[0:41, 0:41]
    distance = np.hypot(xx + 0.5 - 20, yy + 0.5 - 20)
    assert np.all(buffer.alpha[distance <= 7] == 0)
    assert np.all(buffer.alpha[distance > 7] == 255)


def test_brush_measures_from_pixel_centres():
    buffer = solid(10, 10)
    apply_brush(buffer, (5, 5), 1)
    cleared = {(int(x), int(y)) for y, x in zip(*np.nonzero(buffer.alpha == 0))}
    assert cleared == {(4, 4), (5, 4), (4, 5), (5, 5)}


def test_brush_clips_at_buffer_edges():
    buffer = solid(10, 10)
    apply_brush(buffer, (0, 0), 3)
    assert buffer.pixel(0, 0)[3] == 0
    assert buffer.pixel(9, 9)[3] == 255
    assert apply_brush(buffer, (-50, -50), 3) is False


def test_brush_reports_no_change_on_transparent_area():
    buffer = solid(10, 10, (0, 0, 0, 0))
    assert apply_brush(buffer, (5, 5), 3) is False
    assert apply_brush(solid(10, 10), (5, 5), 0) is False


def test_stroke_interpolation_fills_gaps():
    base = solid(40, 40)
    joined = apply_stroke(base, [(5, 20), (35, 20)], 2, interpolate=True)
    dotted = apply_stroke(base, [(5, 20), (35, 20)], 2, interpolate=False)
    assert joined.pixel(20, 20)[3] == 0
    assert dotted.pixel(20, 20)[3] == 255
    assert dotted.pixel(5, 20)[3] == 0
    assert base.transparent_count() == 0


def test_brush_size_is_a_diameter():
    assert brush_radius(20) == 10.0


def test_remove_white_background_uses_strict_per_channel_threshold():
    pixels = np.array(
        [[[241, 241, 241, 255], [240, 255, 255, 255], [10, 10, 10, 255]]], dtype=np.uint8
    )
    result = remove_white_background(PixelBuffer(pixels))
    assert [result.pixel(x, 0)[3] for x in range(3)] == [0, 255, 255]


@pytest.fixture
def engine(noisy_buffer):
    return MaskEngine(HistoryStack(noisy_buffer))


def test_pick_on_transparent_pixel_is_ignored(engine):
    engine.pick_target(30, 30)
    target = engine.target_color
    assert engine.pick_and_apply(1, 1) is None
    assert engine.target_color == target
    assert len(engine.history) == 1


def test_pick_outside_canvas_is_ignored(engine):
    assert engine.pick_and_apply(500, 500) is None
    assert len(engine.history) == 1


def test_pick_and_apply_pushes_one_entry(engine, noisy_buffer):
    result = engine.pick_and_apply(10, 10, 30)
    assert result is not None
    assert engine.target_color == noisy_buffer.pixel(10, 10)[:3]
    assert len(engine.history) == 2
    assert result.pixel(10, 10)[3] == 0


def test_preview_does_not_touch_history(engine):
    engine.pick_target(10, 10)
    preview = engine.preview_magic_wand(60)
    assert len(engine.history) == 1
    assert engine.current() is preview
    committed = engine.commit_magic_wand(60)
    assert len(engine.history) == 2
    assert committed.equals(preview)
    assert engine.current() is engine.history.top()


def test_reapplying_with_new_tolerance_stacks_on_current_top(engine):
    engine.pick_and_apply(10, 10, 10)
    first = engine.history.top().transparent_count()
    engine.commit_magic_wand(40)
    assert len(engine.history) == 3
    assert engine.history.top().transparent_count() >= first


def test_brush_stroke_is_one_history_entry(engine):
    top_before = engine.history.top().copy()
    engine.brush_size = 6
    engine.begin_stroke(20, 20)
    engine.stroke_to(25, 22)
    engine.stroke_to(30, 30)
    assert engine.is_stroking
    assert len(engine.history) == 1
    assert engine.history.top().equals(top_before)
    assert engine.current().pixel(30, 30)[3] == 0

    stroke = engine.end_stroke()
    assert isinstance(stroke, BrushStroke)
    assert stroke.points == ((20.0, 20.0), (25.0, 22.0), (30.0, 30.0))
    assert stroke.radius == 3.0
    assert len(engine.history) == 2

    assert engine.undo() is True
    assert engine.history.top().equals(top_before)


def test_wand_is_refused_mid_stroke(engine):
    engine.begin_stroke(5, 5)
    with pytest.raises(SessionStateError):
        engine.commit_magic_wand(10)
    engine.cancel_stroke()
    assert len(engine.history) == 1


def test_stroke_to_without_begin(engine):
    with pytest.raises(SessionStateError):
        engine.stroke_to(1, 1)
    assert engine.end_stroke() is None


def test_apply_replays_operations(engine, noisy_buffer):
    engine.apply(MagicWand(noisy_buffer.pixel(10, 10)[:3], 25))
    engine.apply(BrushStroke(((30.0, 30.0),), 4.0))
    assert len(engine.history) == 3
    assert engine.history.top().pixel(30, 30)[3] == 0
    with pytest.raises(TypeError):
        engine.apply("not an operation")


def test_reset_then_undo_yields_baseline(engine, noisy_buffer):
    engine.pick_and_apply(10, 10, 50)
    engine.begin_stroke(30, 30)
    engine.end_stroke()
    engine.apply(MagicWand((0, 0, 0), 100))
    engine.reset()
    assert len(engine.history) == 1
    assert engine.undo() is False
    assert engine.history.top().equals(noisy_buffer)
    assert not engine.can_undo


def test_engine_validates_settings(engine):
    with pytest.raises(ValueError):
        engine.tolerance = 101
    with pytest.raises(ValueError):
        engine.brush_size = 0


def test_tolerance_alone_does_not_pick_a_target(engine):
    assert not engine.has_picked_target
    engine.tolerance = 60
    assert len(engine.history) == 1
    assert engine.pick_target(0, 0) is None
    assert not engine.has_picked_target

    engine.pick_and_apply(10, 10, 20)
    assert engine.has_picked_target
    engine.reset()
    assert engine.has_picked_target


def test_returned_entries_cannot_corrupt_history(engine, noisy_buffer):
    applied = engine.pick_and_apply(10, 10, 20)
    with pytest.raises(ValueError):
        apply_brush(applied, (10, 10), 5)
    with pytest.raises(ValueError):
        apply_brush(engine.history.baseline, (10, 10), 5)
    engine.reset()
    assert engine.history.top().equals(noisy_buffer)
