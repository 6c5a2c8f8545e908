"""Main window of the report image composer."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from PySide6.QtCore import Qt
from PySide6.QtGui import QAction, QColor, QIcon, QKeySequence, QPixmap
from PySide6.QtWidgets import (
    QApplication,
    QComboBox,
    QHBoxLayout,
    QLabel,
    QMainWindow,
    QMessageBox,
    QPushButton,
    QScrollArea,
    QSpinBox,
    QSplitter,
    QToolBar,
    QVBoxLayout,
    QWidget,
)

from ..assets import AssetImageSource, load_image_source
from ..config import LayoutConfig, build_annotation_layer, build_canvas, default_layout, load_layout_config
from ..core.annotation import AnnotationLayer, Tool
from ..core.canvas import CompositionCanvas
from ..core.element import ElementRole
from ..core.geometry import color_to_hex
from ..render.annotation_painter import DARK_THEME, LIGHT_THEME, render_annotation_export
from ..render.qt_image import qimage_to_raster
from ..settings import ComposerSettings, canvas_policy, get_settings
from .canvas import AnnotationCanvasWidget, CompositionCanvasWidget
from .controllers import ExportController, ImageController

logger = logging.getLogger(__name__)


@dataclass
class AppContext:
    """Explicit owner of the scene objects shared by the window's panels."""

    settings: ComposerSettings
    layout: LayoutConfig
    canvas: CompositionCanvas
    annotation: AnnotationLayer
    image_source: AssetImageSource = field(default_factory=AssetImageSource)

    @classmethod
    def create(cls, layout_path: Optional[Path] = None, settings: Optional[ComposerSettings] = None) -> "AppContext":
        settings = settings or get_settings()
        layout = load_layout_config(layout_path) if layout_path is not None else default_layout()
        canvas = build_canvas(layout, policy=canvas_policy(settings))
        annotation = build_annotation_layer(
            layout,
            eraser_radius=settings.eraser_radius,
            fallback_background=settings.diagram_image,
        )
        base_dir = layout_path.resolve().parent if layout_path is not None else None
        return cls(
            settings=settings,
            layout=layout,
            canvas=canvas,
            annotation=annotation,
            image_source=AssetImageSource(base_dir),
        )


def _swatch_icon(color: QColor, size: int = 14) -> QIcon:
    pixmap = QPixmap(size, size)
    pixmap.fill(color)
    return QIcon(pixmap)


class ComposerWindow(QMainWindow):
    def __init__(self, context: AppContext):
        super().__init__()
        self.setWindowTitle("PI-RADS Report Composer")
        self.resize(1600, 900)

        self.context = context
        self.image_controller = ImageController(context.canvas, context.image_source, self)
        self.image_controller.load_failed.connect(self._on_load_failed)
        self.image_controller.image_bound.connect(self._on_image_bound)
        self.export_controller = ExportController(context.settings.output_root, parent=self)
        self.export_controller.status.connect(self._show_status)

        self._setup_ui()
        self._show_status("Ready", True)

    # ------------------------------------------------------------------
    # Layout
    # ------------------------------------------------------------------
    def _setup_ui(self) -> None:
        self._create_actions()
        splitter = QSplitter(Qt.Orientation.Horizontal)
        splitter.addWidget(self._build_annotation_panel())
        splitter.addWidget(self._build_composition_panel())
        splitter.setSizes([700, 900])
        self.setCentralWidget(splitter)
        self._build_menu_bar()

    def _create_actions(self) -> None:
        self.paste_action = QAction("Paste Screenshot", self)
        self.paste_action.setShortcut(QKeySequence.StandardKey.Paste)
        self.paste_action.triggered.connect(lambda: self.image_controller.paste_from_clipboard(self._selected_id()))
        self.addAction(self.paste_action)

        self.open_image_action = QAction("Open Image...", self)
        self.open_image_action.setShortcut(QKeySequence.StandardKey.Open)
        self.open_image_action.triggered.connect(lambda: self.image_controller.open_file_dialog(self._selected_id()))
        self.addAction(self.open_image_action)

        self.add_area_action = QAction("Add Screenshot Area", self)
        self.add_area_action.triggered.connect(self._add_screenshot_area)

        self.remove_action = QAction("Remove Selected", self)
        self.remove_action.setShortcut(QKeySequence.StandardKey.Delete)
        self.remove_action.triggered.connect(self._remove_selected)
        self.addAction(self.remove_action)

        self.fit_diagram_action = QAction("Fit Canvas to Diagram", self)
        self.fit_diagram_action.triggered.connect(self._fit_to_diagram)

        self.grid_action = QAction("Show Grid", self)
        self.grid_action.setCheckable(True)
        self.grid_action.setChecked(True)

        self.export_action = QAction("Export Composition", self)
        self.export_action.setShortcut(QKeySequence("Ctrl+E"))
        self.export_action.triggered.connect(self._export_composition)
        self.addAction(self.export_action)

        self.dark_action = QAction("Dark Diagram Theme", self)
        self.dark_action.setCheckable(True)

    def _build_menu_bar(self) -> None:
        menu_bar = self.menuBar()

        file_menu = menu_bar.addMenu("File")
        file_menu.addAction(self.open_image_action)
        file_menu.addAction(self.paste_action)
        file_menu.addSeparator()
        file_menu.addAction(self.export_action)
        file_menu.addSeparator()
        quit_action = QAction("Quit", self)
        quit_action.setShortcut(QKeySequence.StandardKey.Quit)
        quit_action.triggered.connect(self.close)
        file_menu.addAction(quit_action)

        canvas_menu = menu_bar.addMenu("Canvas")
        canvas_menu.addAction(self.add_area_action)
        canvas_menu.addAction(self.remove_action)
        canvas_menu.addAction(self.fit_diagram_action)

        view_menu = menu_bar.addMenu("View")
        view_menu.addAction(self.grid_action)
        view_menu.addAction(self.dark_action)

    # Annotation panel -----------------------------------------------------

    def _build_annotation_panel(self) -> QWidget:
        panel = QWidget()
        layout = QVBoxLayout(panel)
        layout.setContentsMargins(8, 8, 8, 8)

        tools = QHBoxLayout()
        self.pen_button = QPushButton("Pen")
        self.pen_button.setCheckable(True)
        self.pen_button.setChecked(True)
        self.eraser_button = QPushButton("Eraser")
        self.eraser_button.setCheckable(True)
        self.pen_button.clicked.connect(lambda: self._set_tool(Tool.PEN))
        self.eraser_button.clicked.connect(lambda: self._set_tool(Tool.ERASER))
        tools.addWidget(self.pen_button)
        tools.addWidget(self.eraser_button)

        self.color_combo = QComboBox()
        for color in self.context.annotation.palette:
            hex_value = color_to_hex(color)
            self.color_combo.addItem(_swatch_icon(QColor(hex_value)), hex_value, hex_value)
        self.color_combo.currentIndexChanged.connect(self._on_color_changed)
        tools.addWidget(self.color_combo)

        tools.addWidget(QLabel("Lesion"))
        self.lesion_spin = QSpinBox()
        self.lesion_spin.setRange(1, 99)
        self.lesion_spin.setValue(self.context.annotation.lesion_number)
        self.lesion_spin.valueChanged.connect(self.context.annotation.set_lesion_number)
        tools.addWidget(self.lesion_spin)

        add_lesion = QPushButton("Add Lesion")
        add_lesion.clicked.connect(self._register_lesion)
        tools.addWidget(add_lesion)
        self.lesion_list = QComboBox()
        self.lesion_list.activated.connect(self._edit_lesion)
        tools.addWidget(self.lesion_list)
        reset = QPushButton("Reset")
        reset.clicked.connect(self._reset_annotation)
        tools.addWidget(reset)
        self._refresh_lesion_list()
        tools.addStretch(1)
        layout.addLayout(tools)

        self.annotation_widget = AnnotationCanvasWidget(self.context.annotation)
        scroll = QScrollArea()
        scroll.setWidget(self.annotation_widget)
        scroll.setAlignment(Qt.AlignmentFlag.AlignCenter)
        layout.addWidget(scroll, 1)
        self.dark_action.toggled.connect(
            lambda dark: self.annotation_widget.set_theme(DARK_THEME if dark else LIGHT_THEME)
        )

        actions = QHBoxLayout()
        send = QPushButton("Send to Composition")
        send.clicked.connect(self._send_diagram_to_canvas)
        actions.addWidget(send)
        export_diagram = QPushButton("Export Diagram")
        export_diagram.clicked.connect(self._export_annotation)
        actions.addWidget(export_diagram)
        actions.addStretch(1)
        layout.addLayout(actions)
        return panel

    # Composition panel ----------------------------------------------------

    def _build_composition_panel(self) -> QWidget:
        panel = QWidget()
        layout = QVBoxLayout(panel)
        layout.setContentsMargins(8, 8, 8, 8)

        toolbar = QToolBar("Composition")
        toolbar.addAction(self.paste_action)
        toolbar.addAction(self.open_image_action)
        toolbar.addAction(self.add_area_action)
        toolbar.addAction(self.remove_action)
        toolbar.addSeparator()
        self.preset_combo = QComboBox()
        self.preset_combo.addItems(self.context.layout.presets)
        self.preset_combo.textActivated.connect(self._apply_preset)
        toolbar.addWidget(QLabel("Size "))
        toolbar.addWidget(self.preset_combo)
        toolbar.addAction(self.fit_diagram_action)
        toolbar.addSeparator()
        toolbar.addAction(self.export_action)
        layout.addWidget(toolbar)

        self.canvas_widget = CompositionCanvasWidget(self.context.canvas)
        self.canvas_widget.viewport_changed.connect(self._on_viewport_changed)
        self.grid_action.toggled.connect(self.canvas_widget.set_grid_visible)
        layout.addWidget(self.canvas_widget, 1)

        self.size_label = QLabel()
        layout.addWidget(self.size_label)
        self._on_viewport_changed(self.context.canvas.viewport.width, self.context.canvas.viewport.height)
        return panel

    # ------------------------------------------------------------------
    # Slots
    # ------------------------------------------------------------------
    def _selected_id(self) -> Optional[str]:
        selected = self.context.canvas.selected
        return selected.id if selected is not None else None

    def _show_status(self, message: str, success: bool) -> None:
        self.statusBar().showMessage(message, 5000 if success else 8000)

    def _on_load_failed(self, element_id: str, message: str) -> None:
        self._show_status(f"Image could not be loaded: {message}", False)

    def _on_image_bound(self, element_id: str) -> None:
        self._show_status(f"Image placed in {element_id}", True)

    def _on_viewport_changed(self, width: int, height: int) -> None:
        self.size_label.setText(f"Canvas: {width} x {height}")

    def _add_screenshot_area(self) -> None:
        element = self.context.canvas.add_screenshot_area()
        self._show_status(f"Added {element.id}", True)

    def _remove_selected(self) -> None:
        element_id = self._selected_id()
        if element_id is None:
            return
        if not self.context.canvas.remove_element(element_id):
            self._show_status("The last image area cannot be removed", False)

    def _apply_preset(self, preset: str) -> None:
        try:
            self.context.canvas.apply_preset(preset)
        except ValueError as exc:
            self._show_status(str(exc), False)

    def _fit_to_diagram(self) -> None:
        if not self.context.canvas.fit_viewport_to_role(ElementRole.DIAGRAM):
            self._show_status("Place the diagram first", False)

    def _set_tool(self, tool: Tool) -> None:
        self.annotation_widget.set_tool(tool)
        self.pen_button.setChecked(tool is Tool.PEN)
        self.eraser_button.setChecked(tool is Tool.ERASER)

    def _on_color_changed(self, index: int) -> None:
        value = self.color_combo.itemData(index)
        if value:
            self.context.annotation.set_color(value)

    def _sync_pen_controls(self) -> None:
        layer = self.context.annotation
        index = self.color_combo.findData(color_to_hex(layer.color))
        if index >= 0:
            blocked = self.color_combo.blockSignals(True)
            self.color_combo.setCurrentIndex(index)
            self.color_combo.blockSignals(blocked)
        blocked = self.lesion_spin.blockSignals(True)
        self.lesion_spin.setValue(layer.lesion_number)
        self.lesion_spin.blockSignals(blocked)

    def _refresh_lesion_list(self) -> None:
        layer = self.context.annotation
        self.lesion_list.clear()
        self.lesion_list.addItem("Edit lesion...")
        for entry in layer.lesions:
            self.lesion_list.addItem(_swatch_icon(QColor(color_to_hex(entry.color))), layer.label_for(entry))
        self.lesion_list.setEnabled(bool(layer.lesions))

    def _edit_lesion(self, index: int) -> None:
        layer = self.context.annotation
        if index <= 0:
            layer.cancel_edit()
        else:
            entry = layer.select_lesion_for_edit(index - 1)
            self._show_status(f"Editing {layer.label_for(entry)}; Add Lesion saves the change", True)
        self._sync_pen_controls()

    def _register_lesion(self) -> None:
        entry = self.context.annotation.register_lesion()
        self._sync_pen_controls()
        self._refresh_lesion_list()
        self._show_status(f"Lesion {entry.number} added to legend", True)

    def _reset_annotation(self) -> None:
        self.context.annotation.reset()
        self._set_tool(Tool.PEN)
        self._sync_pen_controls()
        self._refresh_lesion_list()

    def _diagram_loader(self):
        if self.context.annotation.background is None:
            return None
        return load_image_source

    def _send_diagram_to_canvas(self) -> None:
        target = self.context.canvas.element_for_role(ElementRole.DIAGRAM)
        if target is None:
            self._show_status("The layout has no diagram area", False)
            return
        layer = self.context.annotation
        try:
            image = render_annotation_export(layer, self._diagram_loader())
        except Exception as exc:  # noqa: BLE001
            logger.exception("Diagram hand-off failed")
            self._show_status(f"Diagram could not be rendered: {exc}", False)
            return
        self.image_controller.bind_raster(qimage_to_raster(image, source=layer.background_source), target.id)

    def _export_composition(self) -> None:
        self.export_controller.export_composition(self.context.canvas)

    def _export_annotation(self) -> None:
        self.export_controller.export_annotation(self.context.annotation, self._diagram_loader())


def run(layout_path: Optional[Path] = None) -> int:
    app = QApplication.instance() or QApplication([])
    app.setStyle("Fusion")
    try:
        context = AppContext.create(layout_path)
    except Exception as exc:  # noqa: BLE001
        logger.error("Failed to start composer: %s", exc)
        QMessageBox.critical(None, "PI-RADS Report Composer", f"Failed to load layout: {exc}")
        return 1
    window = ComposerWindow(context)
    window.show()
    return app.exec()
