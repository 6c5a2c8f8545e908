"""
Command-line interface for the report image composer.

Usage:
    pirads-composer compose layout.yaml --image screenshot=shot.png [--diagram] [--output report.png]
    pirads-composer validate layout.yaml [--verbose]
    pirads-composer scaffold layout.yaml [--viewport 1430x680]
    pirads-composer gui [layout.yaml]
"""

from __future__ import annotations

import argparse
import logging
import os
import sys
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

from .assets import load_image_source
from .config import LayoutConfig, build_annotation_layer, build_canvas, load_layout_config
from .core.canvas import CompositionCanvas
from .core.element import ElementRole, PlacedElement
from .exporters import FileSink, deliver_with_fallback, export_composition_png
from .render.annotation_painter import render_annotation_export
from .render.qt_image import qimage_to_raster
from .scaffold import write_layout_stub
from .settings import canvas_policy, get_settings

Logger = logging.getLogger(__name__)


def configure_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format="%(message)s")


def add_shared_layout_argument(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "layout",
        type=Path,
        help="Path to the YAML layout file describing the composition.",
    )


def _image_assignment(value: str) -> Tuple[str, Path]:
    target, sep, path = value.partition("=")
    if not sep or not target or not path:
        raise argparse.ArgumentTypeError(f"Expected ID_OR_ROLE=PATH, got {value!r}")
    return target.strip(), Path(path.strip())


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pirads-composer",
        description="Compose prostate MRI report images from screenshots and the annotated PI-RADS diagram.",
    )
    parser.add_argument("--verbose", action="store_true", help="Enable verbose logging.")
    subparsers = parser.add_subparsers(dest="command", required=True)

    # compose command
    compose_parser = subparsers.add_parser(
        "compose",
        help="Bind images to a layout and export the flattened composition as PNG.",
    )
    add_shared_layout_argument(compose_parser)
    compose_parser.add_argument(
        "--image",
        dest="images",
        action="append",
        type=_image_assignment,
        default=[],
        metavar="ID_OR_ROLE=PATH",
        help="Bind an image to an element id or role (screenshot, diagram, additional). Repeatable.",
    )
    compose_parser.add_argument(
        "--viewport",
        type=str,
        default=None,
        help="Final canvas size as WIDTHxHEIGHT (elements are not moved or scaled).",
    )
    compose_parser.add_argument(
        "--diagram",
        action="store_true",
        help="Render the annotation diagram and bind it to the diagram element.",
    )
    compose_parser.add_argument(
        "--fit-viewport",
        action="store_true",
        help="Match the canvas height to the diagram image.",
    )
    compose_parser.add_argument(
        "--output",
        type=Path,
        default=None,
        help="Output PNG path (defaults to a timestamped file under PIRADS_COMPOSER_OUTPUT_ROOT).",
    )

    # validate command
    validate_parser = subparsers.add_parser(
        "validate",
        help="Validate a layout and its images; prints a summary without exporting.",
    )
    add_shared_layout_argument(validate_parser)

    # scaffold command
    scaffold_parser = subparsers.add_parser(
        "scaffold",
        help="Create a stub YAML layout with the default two-panel scene.",
    )
    scaffold_parser.add_argument("path", type=Path, help="Path where the YAML stub will be written.")
    scaffold_parser.add_argument("--viewport", type=str, default=None, help="Canvas size as WIDTHxHEIGHT.")
    scaffold_parser.add_argument("--diagram", type=str, default=None, help="Diagram image reference.")
    scaffold_parser.add_argument("--title", type=str, default="report", help="Title metadata.")

    # gui command
    gui_parser = subparsers.add_parser(
        "gui",
        help="Launch the interactive composer.",
    )
    gui_parser.add_argument(
        "layout",
        type=Path,
        nargs="?",
        help="Optional layout file to load on startup.",
    )

    return parser


def summarize_layout(layout_path: Path, layout: Optional[LayoutConfig] = None) -> str:
    if layout is None:
        layout = load_layout_config(layout_path)
    lines = [
        f"Layout: {layout_path}",
        f"  Viewport: {layout.viewport.width}x{layout.viewport.height}",
        f"  Elements ({len(layout.elements)}):",
    ]
    for element in layout.elements:
        x, y, width, height = element.rect
        image = f" | image {element.image.name}" if element.image is not None else ""
        presized = " | presized" if element.presized else ""
        lines.append(f"    - {element.id} [{element.role.value}] at ({x:g}, {y:g}) {width:g}x{height:g}{presized}{image}")
    annotation = layout.annotation
    lines.append(f"  Diagram: {annotation.background or '(default surface)'}")
    lines.append(f"  Palette: {', '.join(annotation.palette)}")
    lines.append(f"  Presets: {', '.join(layout.presets)}")
    return "\n".join(lines)


_qt_app = None


def _ensure_qt_application():
    """Painting text needs a Qt GUI application; headless runs use the offscreen platform."""
    global _qt_app
    from PySide6.QtGui import QGuiApplication

    app = QGuiApplication.instance()
    if app is None:
        os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")
        _qt_app = app = QGuiApplication([sys.argv[0] if sys.argv else "pirads-composer"])
    return app


def resolve_target(canvas: CompositionCanvas, target: str) -> PlacedElement:
    """Find the element an ``--image`` assignment refers to.

    Element ids take precedence over role names. Each ``additional`` assignment
    adds a new screenshot area.
    """
    element = canvas.get_element(target)
    if element is not None:
        return element
    try:
        role = ElementRole(target.lower())
    except ValueError:
        raise KeyError(f"No element or role named '{target}'") from None
    if role is ElementRole.ADDITIONAL:
        return canvas.add_screenshot_area()
    element = canvas.element_for_role(role)
    if element is None:
        raise KeyError(f"Layout has no element with role '{role.value}'")
    return element


def compose_command(args: argparse.Namespace) -> int:
    layout_path: Path = args.layout
    if not layout_path.exists():
        Logger.error("Layout file not found: %s", layout_path)
        return 2
    missing: List[Path] = [path for _, path in args.images if not path.exists()]
    if missing:
        for path in missing:
            Logger.error("Image file not found: %s", path)
        return 2
    try:
        layout = load_layout_config(layout_path)
        settings = get_settings()
        canvas = build_canvas(layout, policy=canvas_policy(settings))
        _ensure_qt_application()

        if args.diagram:
            layer = build_annotation_layer(
                layout,
                eraser_radius=settings.eraser_radius,
                fallback_background=settings.diagram_image,
            )
            loader = load_image_source if layer.background is not None else None
            diagram = qimage_to_raster(render_annotation_export(layer, loader), source=layer.background_source)
            target = canvas.element_for_role(ElementRole.DIAGRAM)
            if target is None:
                raise KeyError("Layout has no diagram element")
            canvas.bind_image(target.id, diagram)

        for target_name, image_path in args.images:
            element = resolve_target(canvas, target_name)
            canvas.bind_image(element.id, load_image_source(image_path))

        if args.fit_viewport and not canvas.fit_viewport_to_role(ElementRole.DIAGRAM):
            Logger.warning("No diagram image bound; viewport left at %s", canvas.viewport.as_size_string())
        if args.viewport:
            canvas.apply_preset(args.viewport)

        payload = export_composition_png(canvas)
        if args.output is not None:
            sink = FileSink(directory=args.output.parent, filename=args.output.name, overwrite=True)
        else:
            sink = FileSink(directory=settings.output_root)
        outcome = deliver_with_fallback(payload, [sink])
        if not outcome.success:
            Logger.error(outcome.message)
            return 1
        Logger.info("Composition written to: %s", outcome.location)
        return 0
    except Exception as exc:  # noqa: BLE001
        Logger.error("Compose failed: %s", exc)
        if Logger.isEnabledFor(logging.DEBUG):
            Logger.exception("Stack trace")
        return 1


def validate_command(args: argparse.Namespace) -> int:
    layout_path: Path = args.layout
    if not layout_path.exists():
        Logger.error("Layout file not found: %s", layout_path)
        return 2
    try:
        layout = load_layout_config(layout_path)
        print(summarize_layout(layout_path, layout=layout))
        canvas = build_canvas(layout, policy=canvas_policy())
        bound = sum(1 for element in canvas if element.is_bound)
        Logger.info("Layout valid: %d element(s), %d image(s) bound", len(canvas), bound)
        return 0
    except Exception as exc:  # noqa: BLE001
        Logger.error("Validation failed: %s", exc)
        if Logger.isEnabledFor(logging.DEBUG):
            Logger.exception("Stack trace")
        return 1


def scaffold_command(args: argparse.Namespace) -> int:
    try:
        target = write_layout_stub(
            target_path=args.path,
            viewport=args.viewport,
            diagram=args.diagram,
            title=args.title,
        )
    except Exception as exc:  # noqa: BLE001
        Logger.error("Scaffold failed: %s", exc)
        return 1

    Logger.info("Layout stub written to %s", target)
    return 0


def run_gui_with_args(args: argparse.Namespace) -> int:
    layout_path = None
    if args.layout:
        layout_path = Path(args.layout)
        if not layout_path.exists():
            Logger.error("Layout file not found: %s", layout_path)
            return 2
    from .gui import run as run_gui  # Local import to avoid Qt initialization unless needed

    return run_gui(layout_path)


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.verbose)

    if args.command == "compose":
        return compose_command(args)
    if args.command == "validate":
        return validate_command(args)
    if args.command == "scaffold":
        return scaffold_command(args)
    if args.command == "gui":
        return run_gui_with_args(args)

    parser.print_help()
    return 1


if __name__ == "__main__":
    sys.exit(main())
