import numpy as np
import pytest

from specimen_editor.core.mask import apply_brush
from specimen_editor.core.session import EditorSession, Phase
from specimen_editor.errors import NothingToExport, SessionStateError

from helpers import solid


def test_white_square_scenario(white_square):
    session = EditorSession(white_square, canvas_size=(100, 100))
    baseline = session.commit()
    assert baseline.equals(white_square)

    engine = session.engine
    result = engine.pick_and_apply(50, 50, 20)
    assert result is not None
    assert np.all(result.alpha == 0)
    assert len(session.history) == 2

    assert engine.undo() is True
    restored = session.result()
    assert restored.size == (100, 100)
    assert np.all(restored.alpha == 255)
    assert restored.equals(white_square)


def test_wand_on_default_canvas_also_clears_checkerboard(white_square):
    session = EditorSession(white_square)
    session.commit()
    result = session.engine.pick_and_apply(300, 300, 20)
    assert result.size == (600, 600)
    assert result.transparent_count() == 600 * 600


def test_result_before_commit_raises(white_square):
    session = EditorSession(white_square)
    with pytest.raises(NothingToExport):
        session.result()
    with pytest.raises(SessionStateError):
        session.engine


def test_commit_happens_once(white_square):
    session = EditorSession(white_square, canvas_size=(100, 100))
    session.commit()
    assert session.phase is Phase.MASKING
    with pytest.raises(SessionStateError):
        session.commit()
    with pytest.raises(SessionStateError):
        session.preview()
    with pytest.raises(SessionStateError):
        session.set_scale(2.0)


def test_drag_pans_relative_to_grab_point(white_square):
    session = EditorSession(white_square)
    session.begin_pan(100, 100)
    session.drag_to(130, 90)
    session.end_pan()
    assert session.transform.translation == (30.0, -10.0)

    session.begin_pan(0, 0)
    session.drag_to(10, 10)
    assert session.transform.translation == (40.0, 0.0)
    session.end_pan()
    session.drag_to(500, 500)
    assert session.transform.translation == (40.0, 0.0)


def test_rotation_buttons_step_quarter_turns(white_square):
    session = EditorSession(white_square)
    session.rotate_right()
    session.rotate_right()
    session.rotate_left()
    assert session.transform.rotation_degrees == 90.0


def test_preview_reflects_transform():
    source = solid(10, 10, (200, 10, 10, 255))
    session = EditorSession(source, canvas_size=(30, 30))
    before = session.preview()
    session.transform.pan_to(5, 0)
    after = session.preview()
    assert before.pixel(10, 15)[:3] == (200, 10, 10)
    assert after.pixel(10, 15)[:3] != (200, 10, 10)


def test_commit_without_checkerboard_leaves_transparent_margin():
    source = solid(10, 10, (200, 10, 10, 255))
    session = EditorSession(source, canvas_size=(30, 30), commit_checkerboard=False)
    baseline = session.commit()
    assert baseline.transparent_count() == 30 * 30 - 100


def test_cancel_discards_everything(white_square):
    session = EditorSession(white_square, canvas_size=(100, 100))
    session.transform.pan_to(3, 4)
    session.commit()
    session.engine.begin_stroke(10, 10)
    session.cancel()
    assert session.phase is Phase.CLOSED
    assert session.history is None
    assert session.transform.translation == (0.0, 0.0)
    with pytest.raises(NothingToExport):
        session.result()
    assert np.all(white_square.alpha == 255)


def test_reset_restores_baseline_after_outside_edit_attempt():
    session = EditorSession(solid(20, 20), canvas_size=(20, 20))
    session.commit()
    session.engine.pick_and_apply(5, 5, 20)
    with pytest.raises(ValueError):
        apply_brush(session.history.baseline, (10, 10), 5)
    session.engine.reset()
    assert session.result().pixel(10, 10)[3] == 255
    assert session.result().transparent_count() == 0
