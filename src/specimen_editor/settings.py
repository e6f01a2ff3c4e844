"""Application settings loaded from environment / .env via pydantic-settings."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional, Tuple

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .core.mask import (
    DEFAULT_BRUSH_SIZE,
    DEFAULT_TOLERANCE,
    MAX_BRUSH_SIZE,
    MAX_TOLERANCE,
    MIN_BRUSH_SIZE,
    MIN_TOLERANCE,
)
from .core.transform import Checkerboard

logger = logging.getLogger(__name__)


class EditorSettings(BaseSettings):
    """Tunable defaults for the working canvas and masking tools."""

    model_config = SettingsConfigDict(
        env_prefix="SPECIMEN_EDITOR_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    canvas_width: int = Field(default=600, gt=0)
    canvas_height: int = Field(default=600, gt=0)
    checker_size: int = Field(default=10, gt=0)
    checker_light: Tuple[int, int, int] = (243, 244, 246)
    checker_dark: Tuple[int, int, int] = (229, 231, 235)
    commit_checkerboard: bool = Field(
        default=True, description="Keep the checkerboard in committed pixels"
    )
    default_tolerance: float = Field(default=DEFAULT_TOLERANCE, ge=MIN_TOLERANCE, le=MAX_TOLERANCE)
    default_brush_size: float = Field(default=DEFAULT_BRUSH_SIZE, ge=MIN_BRUSH_SIZE, le=MAX_BRUSH_SIZE)
    brush_interpolation: bool = True
    output_root: Path = Field(default=Path("outputs"))

    @field_validator("checker_light", "checker_dark")
    @classmethod
    def _validate_colour(cls, value: Tuple[int, int, int]) -> Tuple[int, int, int]:
        if any(not 0 <= channel <= 255 for channel in value):
            raise ValueError(f"Colour channels must be within 0..255, got {value}")
        return value

    @field_validator("output_root")
    @classmethod
    def _expand_output_root(cls, value: Path) -> Path:
        return Path(value).expanduser().resolve()

    @property
    def canvas_size(self) -> Tuple[int, int]:
        return self.canvas_width, self.canvas_height

    def checkerboard(self) -> Checkerboard:
        return Checkerboard(
            cell_size=self.checker_size, light=self.checker_light, dark=self.checker_dark
        )


_settings: Optional[EditorSettings] = None


def get_settings() -> EditorSettings:
    global _settings
    if _settings is None:
        if not Path(".env").exists():
            logger.debug("No .env file found; using environment and built-in defaults")
        _settings = EditorSettings()
    return _settings


def reset_settings_cache() -> None:
    global _settings
    _settings = None
