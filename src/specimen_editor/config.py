"""
Edit recipe models and loader.

A recipe is a YAML description of one complete edit: how the source is
framed on the canvas, the ordered masking operations, and an optional pin.
Replaying it headlessly reproduces what a user would do in the editor.
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated, List, Literal, Optional, Tuple, Union

import yaml
from pydantic import BaseModel, Field, ValidationError, confloat, conint, model_validator

from .core.mask import MAX_TOLERANCE, MIN_TOLERANCE, WHITE_THRESHOLD
from .core.pin import ImageBounds, PinPosition, place
from .errors import RecipeError

PositiveFloat = confloat(gt=0)
Tolerance = confloat(ge=MIN_TOLERANCE, le=MAX_TOLERANCE)
Channel = conint(ge=0, le=255)


class TransformConfig(BaseModel):
    """Framing applied before the transform is committed."""

    scale: PositiveFloat = Field(default=1.0, description="Zoom factor (UI range 0.5-3.0)")
    rotation_degrees: float = Field(default=0.0, description="Clockwise rotation in degrees")
    translation: Tuple[float, float] = Field(
        default=(0.0, 0.0), description="Pan offset in canvas pixels"
    )


class MagicWandConfig(BaseModel):
    """Magic wand either picks its target at a canvas pixel or names it directly."""

    type: Literal["magic_wand"] = "magic_wand"
    tolerance: Tolerance = Field(default=20.0)
    pick: Optional[Tuple[conint(ge=0), conint(ge=0)]] = Field(
        default=None, description="Canvas pixel (x, y) sampled for the target colour"
    )
    target: Optional[Tuple[Channel, Channel, Channel]] = Field(
        default=None, description="Explicit RGB target colour"
    )

    @model_validator(mode="after")
    def _require_one_target_source(self) -> "MagicWandConfig":
        if (self.pick is None) == (self.target is None):
            raise ValueError("Magic wand requires exactly one of 'pick' or 'target'")
        return self


class BrushConfig(BaseModel):
    """One brush stroke; ``size`` is the brush diameter."""

    type: Literal["brush"] = "brush"
    points: List[Tuple[float, float]] = Field(..., min_length=1)
    size: PositiveFloat = Field(default=20.0)


OperationConfig = Annotated[Union[MagicWandConfig, BrushConfig], Field(discriminator="type")]


class PinConfig(BaseModel):
    """Either explicit percentages or a pointer position inside displayed bounds."""

    x: Optional[float] = None
    y: Optional[float] = None
    pointer: Optional[Tuple[float, float]] = None
    bounds: Optional[Tuple[float, float, PositiveFloat, PositiveFloat]] = Field(
        default=None, description="(left, top, width, height) of the displayed image"
    )

    @model_validator(mode="after")
    def _validate_shape(self) -> "PinConfig":
        explicit = self.x is not None or self.y is not None
        pointer = self.pointer is not None or self.bounds is not None
        if explicit == pointer:
            raise ValueError("Pin requires either 'x'/'y' or 'pointer'/'bounds'")
        if explicit and (self.x is None or self.y is None):
            raise ValueError("Pin requires both 'x' and 'y'")
        if pointer and (self.pointer is None or self.bounds is None):
            raise ValueError("Pin requires both 'pointer' and 'bounds'")
        return self

    def to_position(self) -> PinPosition:
        if self.pointer is not None and self.bounds is not None:
            return place(self.pointer, ImageBounds(*self.bounds))
        return PinPosition(float(self.x), float(self.y))  # type: ignore[arg-type]


class EditRecipe(BaseModel):
    """Top-level recipe."""

    name: str = Field(default="specimen", description="Base name for exported files")
    prefilter_white: Optional[conint(ge=0, le=255)] = Field(
        default=None,
        description=f"Clear near-white source pixels above this threshold before framing "
        f"(the app's helper uses {WHITE_THRESHOLD})",
    )
    transform: TransformConfig = Field(default_factory=TransformConfig)
    operations: List[OperationConfig] = Field(default_factory=list)
    pin: Optional[PinConfig] = None


def parse_recipe(data: dict) -> EditRecipe:
    try:
        return EditRecipe.model_validate(data)
    except ValidationError as exc:
        raise RecipeError(f"Invalid edit recipe: {exc}") from exc


def load_edit_recipe(path: Union[str, Path]) -> EditRecipe:
    """
    Load and validate an edit recipe from a YAML file.

    Parameters
    ----------
    path:
        Path to the YAML recipe.
    """
    recipe_path = Path(path).resolve()
    if not recipe_path.exists():
        raise FileNotFoundError(f"Recipe file not found: {recipe_path}")

    with recipe_path.open("r", encoding="utf-8") as handle:
        try:
            raw_data = yaml.safe_load(handle) or {}
        except yaml.YAMLError as exc:
            raise RecipeError(f"Recipe is not valid YAML: {exc}") from exc
    if not isinstance(raw_data, dict):
        raise RecipeError(f"Recipe must be a mapping, got {type(raw_data).__name__}")
    return parse_recipe(raw_data)
