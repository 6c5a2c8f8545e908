"""Export controller: renders, encodes and delivers images without blocking input."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable, List, Optional, Sequence

from PySide6.QtCore import QObject, QTimer, Signal

from ...core.annotation import AnnotationLayer
from ...core.canvas import CompositionCanvas
from ...exporters import (
    ClipboardSink,
    ExportError,
    ExportOutcome,
    ExportPayload,
    FileSink,
    RasterSink,
    deliver_with_fallback,
    export_annotation_png,
    export_composition_png,
)
from ...render.annotation_painter import BackgroundLoader

logger = logging.getLogger(__name__)


class ExportController(QObject):
    """Runs exports and reports outcomes on the ``status`` side channel.

    Rendering happens synchronously; delivery to the sinks is deferred to the
    next event-loop turn.
    """

    status = Signal(str, bool)  # (message, success)
    finished = Signal(object)  # ExportOutcome

    def __init__(
        self,
        output_dir: Optional[Path] = None,
        sinks: Optional[Sequence[RasterSink]] = None,
        parent: Optional[QObject] = None,
    ) -> None:
        super().__init__(parent)
        self._sinks: List[RasterSink] = list(sinks) if sinks is not None else [
            ClipboardSink(),
            FileSink(output_dir),
        ]

    @property
    def sinks(self) -> List[RasterSink]:
        return list(self._sinks)

    def export_composition(self, canvas: CompositionCanvas) -> bool:
        return self._run(lambda: export_composition_png(canvas), "Composition")

    def export_annotation(self, layer: AnnotationLayer, loader: Optional[BackgroundLoader] = None) -> bool:
        return self._run(lambda: export_annotation_png(layer, loader), "Diagram")

    def _run(self, render: Callable[[], ExportPayload], label: str) -> bool:
        try:
            payload = render()
        except ExportError as exc:
            logger.error("%s export failed: %s", label, exc)
            self.status.emit(f"{label} export failed: {exc}", False)
            return False
        except Exception as exc:  # noqa: BLE001
            logger.exception("Unexpected error while exporting %s", label.lower())
            self.status.emit(f"{label} export failed: {exc}", False)
            return False
        self.status.emit(f"{label} rendered, exporting...", True)
        QTimer.singleShot(0, lambda: self._deliver(payload))
        return True

    def deliver_now(self, payload: ExportPayload) -> ExportOutcome:
        return self._deliver(payload)

    def _deliver(self, payload: ExportPayload) -> ExportOutcome:
        outcome = deliver_with_fallback(payload, self._sinks)
        self.status.emit(outcome.message, outcome.success)
        self.finished.emit(outcome)
        return outcome
