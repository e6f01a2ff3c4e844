import numpy as np
import pytest

from specimen_editor.core.buffer import PixelBuffer
from specimen_editor.core.history import HistoryStack

from helpers import solid


def test_from_bytes_round_trips_row_major_layout():
    data = bytes(range(2 * 3 * 4))
    buffer = PixelBuffer.from_bytes(2, 3, data)
    assert buffer.size == (2, 3)
    assert buffer.data == data
    assert buffer.pixel(1, 0) == (4, 5, 6, 7)


def test_from_bytes_rejects_length_mismatch():
    with pytest.raises(AssertionError):
        PixelBuffer.from_bytes(2, 2, bytes(15))


def test_buffer_requires_rgba_uint8():
    with pytest.raises(AssertionError):
        PixelBuffer(np.zeros((4, 4, 3), dtype=np.uint8))
    with pytest.raises(AssertionError):
        PixelBuffer(np.zeros((4, 4, 4), dtype=np.float32))


def test_copy_does_not_alias():
    buffer = solid(4, 4)
    clone = buffer.copy()
    clone.alpha[0, 0] = 0
    assert buffer.pixel(0, 0)[3] == 255


def test_history_starts_with_baseline_copy():
    baseline = solid(8, 8)
    history = HistoryStack(baseline)
    baseline.alpha[:] = 0
    assert len(history) == 1
    assert history.top().transparent_count() == 0
    assert not history.can_undo


def test_undo_at_floor_is_a_noop():
    history = HistoryStack(solid(8, 8))
    assert history.undo() is False
    assert len(history) == 1


def test_push_then_undo_restores_previous_top_exactly(noisy_buffer):
    history = HistoryStack(noisy_buffer)
    edited = noisy_buffer.copy()
    edited.alpha[10:20, 10:20] = 0
    history.push(edited)
    before = history.top().copy()

    extra = before.copy()
    extra.alpha[:] = 0
    history.push(extra)
    assert history.undo() is True
    assert history.top().equals(before)
    assert history.top().data == before.data


def test_push_copies_the_buffer():
    history = HistoryStack(solid(8, 8))
    pushed = solid(8, 8, (1, 2, 3, 4))
    history.push(pushed)
    pushed.alpha[:] = 0
    assert history.top().pixel(0, 0) == (1, 2, 3, 4)


def test_push_rejects_size_change():
    history = HistoryStack(solid(8, 8))
    with pytest.raises(AssertionError):
        history.push(solid(4, 4))


def test_reset_keeps_only_baseline(noisy_buffer):
    history = HistoryStack(noisy_buffer)
    for _ in range(3):
        history.push(solid(64, 48, (0, 0, 0, 0)))
    history.reset()
    assert len(history) == 1
    assert history.top().equals(noisy_buffer)
    assert history.undo() is False


def test_history_entries_are_read_only(noisy_buffer):
    history = HistoryStack(noisy_buffer)
    history.push(noisy_buffer)
    with pytest.raises(ValueError):
        history.top().alpha[0, 0] = 0
    with pytest.raises(ValueError):
        history.baseline.pixels[...] = 0

    editable = history.top().copy()
    editable.alpha[0, 0] = 7
    assert editable.pixel(0, 0)[3] == 7
    history.reset()
    assert history.top().equals(noisy_buffer)
