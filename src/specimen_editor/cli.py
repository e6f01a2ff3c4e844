"""
Command-line interface for the specimen editor.

Usage:
    specimen-editor apply recipe.yaml photo.jpg [--output outputs] [--data-url]
    specimen-editor validate recipe.yaml [--verbose]
    specimen-editor pin X Y --bounds LEFT TOP WIDTH HEIGHT
    specimen-editor edit photo.jpg [--output outputs]
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Optional, Sequence

from .config import BrushConfig, EditRecipe, load_edit_recipe
from .core.pin import ImageBounds, place
from .editor import open_editor, replay_recipe
from .errors import SpecimenEditorError
from .exporters import export_data_url, export_outputs
from .settings import get_settings

Logger = logging.getLogger(__name__)


def configure_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format="%(message)s")


def add_shared_recipe_argument(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "recipe",
        type=Path,
        help="Path to the YAML recipe describing framing, masking operations and pin.",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="specimen-editor",
        description="Frame specimen photographs, remove their background and pin them.",
    )
    parser.add_argument("--verbose", action="store_true", help="Enable verbose logging.")
    subparsers = parser.add_subparsers(dest="command", required=True)

    apply_parser = subparsers.add_parser(
        "apply",
        help="Replay a recipe against a source image and export a transparent PNG (+ pin sidecar).",
    )
    add_shared_recipe_argument(apply_parser)
    apply_parser.add_argument("source", type=Path, help="Source photograph to edit.")
    apply_parser.add_argument(
        "--output",
        type=Path,
        default=None,
        help="Directory for exported files (defaults to SPECIMEN_EDITOR_OUTPUT_ROOT or outputs/).",
    )
    apply_parser.add_argument(
        "--name",
        type=str,
        default=None,
        help="Override the base name of the exported files.",
    )
    apply_parser.add_argument(
        "--data-url",
        action="store_true",
        help="Print the result as a PNG data URL instead of writing files.",
    )

    validate_parser = subparsers.add_parser(
        "validate",
        help="Validate a recipe and print a summary without touching any image.",
    )
    add_shared_recipe_argument(validate_parser)

    pin_parser = subparsers.add_parser(
        "pin",
        help="Convert a pointer position inside a displayed image box to pin percentages.",
    )
    pin_parser.add_argument("x", type=float, help="Pointer x in display pixels.")
    pin_parser.add_argument("y", type=float, help="Pointer y in display pixels.")
    pin_parser.add_argument(
        "--bounds",
        type=float,
        nargs=4,
        required=True,
        metavar=("LEFT", "TOP", "WIDTH", "HEIGHT"),
        help="Bounding box of the displayed image.",
    )

    edit_parser = subparsers.add_parser(
        "edit",
        help="Open the desktop editor for a source image.",
    )
    edit_parser.add_argument("source", type=Path, help="Source photograph to edit.")
    edit_parser.add_argument(
        "--output",
        type=Path,
        default=None,
        help="Directory where the saved PNG and pin are written.",
    )

    return parser


def summarize_recipe(recipe_path: Path, recipe: EditRecipe) -> str:
    transform = recipe.transform
    lines = [
        f"Recipe: {recipe_path}",
        f"  Name: {recipe.name}",
        f"  Transform: scale {transform.scale} | rotation {transform.rotation_degrees}° | "
        f"pan {tuple(transform.translation)}",
    ]
    if recipe.prefilter_white is not None:
        lines.append(f"  White prefilter: channels > {recipe.prefilter_white}")
    lines.append(f"  Operations ({len(recipe.operations)}):")
    for idx, operation in enumerate(recipe.operations):
        if isinstance(operation, BrushConfig):
            lines.append(
                f"    {idx+1}. brush size {operation.size} through {len(operation.points)} point(s)"
            )
        else:
            source = f"pick {operation.pick}" if operation.pick is not None else f"target {operation.target}"
            lines.append(f"    {idx+1}. magic wand {source} tolerance {operation.tolerance}")
    if recipe.pin is not None:
        pin = recipe.pin.to_position()
        lines.append(f"  Pin: ({pin.x:.2f}%, {pin.y:.2f}%)")
    else:
        lines.append("  Pin: none")
    return "\n".join(lines)


def apply_command(args: argparse.Namespace) -> int:
    recipe_path: Path = args.recipe
    if not recipe_path.exists():
        Logger.error("Recipe file not found: %s", recipe_path)
        return 2
    source_path: Path = args.source
    if not source_path.exists():
        Logger.error("Source image not found: %s", source_path)
        return 2

    try:
        recipe = load_edit_recipe(recipe_path)
        session = replay_recipe(recipe, source_path)
        if args.data_url:
            print(export_data_url(session))
            pin = session.pin_overlay.pin
            if pin is not None:
                print(json.dumps(pin.to_dict()))
            return 0

        output_dir = args.output or get_settings().output_root
        image_path = export_outputs(
            session,
            output_dir,
            args.name or recipe.name,
            pin=session.pin_overlay.pin,
        )
        Logger.info("Edit complete. Result written to: %s", image_path)
        return 0
    except Exception as exc:  # pylint: disable=broad-except
        Logger.error("Apply failed: %s", exc)
        if Logger.isEnabledFor(logging.DEBUG):
            Logger.exception("Stack trace")
        return 1


def validate_command(args: argparse.Namespace) -> int:
    recipe_path: Path = args.recipe
    if not recipe_path.exists():
        Logger.error("Recipe file not found: %s", recipe_path)
        return 2

    try:
        recipe = load_edit_recipe(recipe_path)
        print(summarize_recipe(recipe_path, recipe))
        Logger.info("Validation succeeded.")
        return 0
    except Exception as exc:  # pylint: disable=broad-except
        Logger.error("Validation failed: %s", exc)
        if Logger.isEnabledFor(logging.DEBUG):
            Logger.exception("Stack trace")
        return 1


def pin_command(args: argparse.Namespace) -> int:
    try:
        bounds = ImageBounds(*args.bounds)
    except ValueError as exc:
        Logger.error("Invalid bounds: %s", exc)
        return 2
    if not bounds.contains((args.x, args.y)):
        Logger.warning("Pointer (%.1f, %.1f) lies outside the image bounds", args.x, args.y)
    print(json.dumps(place((args.x, args.y), bounds).to_dict()))
    return 0


def edit_command(args: argparse.Namespace) -> int:
    source_path: Path = args.source
    if not source_path.exists():
        Logger.error("Source image not found: %s", source_path)
        return 2

    try:
        session = open_editor(source_path)
    except SpecimenEditorError as exc:
        Logger.error("Cannot open %s: %s", source_path, exc)
        return 1

    try:
        from PySide6.QtWidgets import QApplication
        from .gui import SpecimenEditorDialog
    except Exception as exc:  # noqa: BLE001
        Logger.error("Editor UI is unavailable: %s", exc)
        return 1

    app = QApplication.instance() or QApplication(sys.argv)
    dialog = SpecimenEditorDialog(session)
    if not dialog.exec():
        Logger.info("Editing cancelled")
        return 0

    output_dir = args.output or get_settings().output_root
    image_path = export_outputs(
        session,
        output_dir,
        source_path.stem,
        pin=session.pin_overlay.pin,
    )
    Logger.info("Saved %s", image_path)
    return 0


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.verbose)

    if args.command == "apply":
        return apply_command(args)
    if args.command == "validate":
        return validate_command(args)
    if args.command == "pin":
        return pin_command(args)
    if args.command == "edit":
        return edit_command(args)

    parser.print_help()
    return 1


if __name__ == "__main__":
    sys.exit(main())
