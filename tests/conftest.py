from __future__ import annotations

import numpy as np
import pytest

from specimen_editor.core.buffer import PixelBuffer
from specimen_editor.settings import EditorSettings, reset_settings_cache

from helpers import solid


@pytest.fixture
def white_square() -> PixelBuffer:
    return solid(100, 100)


@pytest.fixture
def noisy_buffer() -> PixelBuffer:
    rng = np.random.default_rng(1234)
    pixels = rng.integers(0, 256, size=(48, 64, 4), dtype=np.uint8)
    pixels[..., 3] = 255
    pixels[:4, :4, 3] = 0
    return PixelBuffer(pixels)


@pytest.fixture
def small_settings() -> EditorSettings:
    return EditorSettings(canvas_width=100, canvas_height=100)


@pytest.fixture(autouse=True)
def _clear_settings_cache():
    reset_settings_cache()
    yield
    reset_settings_cache()
