from datetime import datetime

import cv2
import numpy as np
import pytest
from PySide6.QtGui import QColor, QImage

from pirads_composer.assets import ImageDecodeError
from pirads_composer.core import AnnotationLayer, RasterImage
from pirads_composer.exporters import (
    ExportError,
    ExportPayload,
    FileSink,
    RasterSink,
    SinkError,
    deliver_with_fallback,
    encode_png,
    export_annotation_png,
    export_composition_png,
    timestamped_filename,
)


class _RefusingSink(RasterSink):
    name = "refusing"

    def deliver(self, payload: ExportPayload) -> str:
        raise SinkError("not today")


@pytest.fixture
def payload(qapp) -> ExportPayload:
    image = QImage(40, 30, QImage.Format.Format_ARGB32)
    image.fill(QColor("#ff0000"))
    return encode_png(image)


def test_encode_png_round_trips_pixels(payload):
    decoded = cv2.imdecode(np.frombuffer(payload.png, dtype=np.uint8), cv2.IMREAD_UNCHANGED)
    assert (payload.width, payload.height) == (40, 30)
    assert decoded.shape == (30, 40, 4)
    assert tuple(decoded[0, 0]) == (0, 0, 255, 255)


def test_encode_png_rejects_null_image(qapp):
    with pytest.raises(ExportError):
        encode_png(QImage())


def test_timestamped_filename():
    name = timestamped_filename(datetime(2024, 3, 5, 14, 7, 9))
    assert name == "prostate-report-2024-03-05T14-07-09.png"


def test_file_sink_avoids_collisions(tmp_path, payload):
    sink = FileSink(tmp_path, "report.png")
    first = sink.deliver(payload)
    second = sink.deliver(payload)
    third = sink.deliver(payload)

    assert first.endswith("report.png")
    assert second.endswith("report_1.png")
    assert third.endswith("report_2.png")
    assert (tmp_path / "report_1.png").read_bytes() == payload.png


def test_file_sink_overwrite_keeps_name(tmp_path, payload):
    (tmp_path / "report.png").write_bytes(b"stale")
    location = FileSink(tmp_path, "report.png", overwrite=True).deliver(payload)

    assert location == str(tmp_path / "report.png")
    assert (tmp_path / "report.png").read_bytes() == payload.png
    assert not (tmp_path / "report_1.png").exists()


def test_file_sink_defaults_to_output_root(output_dir, payload):
    location = FileSink().deliver(payload)
    assert location.startswith(str(output_dir.resolve()))
    assert "prostate-report-" in location


def test_fallback_moves_to_next_sink(tmp_path, payload):
    outcome = deliver_with_fallback(payload, [_RefusingSink(), FileSink(tmp_path, "out.png")])

    assert outcome.success
    assert outcome.sink == "file"
    assert outcome.errors == {"refusing": "not today"}
    assert (tmp_path / "out.png").exists()


def test_fallback_reports_total_failure(payload):
    outcome = deliver_with_fallback(payload, [_RefusingSink()])
    assert not outcome.success
    assert "not today" in outcome.message

    assert not deliver_with_fallback(payload, []).success


def test_composition_export_has_viewport_size(qapp, canvas):
    canvas.bind_image("shot", RasterImage.blank(200, 100))
    payload = export_composition_png(canvas)
    assert (payload.width, payload.height) == (1000, 800)


def test_annotation_export_reloads_background(qapp):
    requested = []

    def loader(source):
        requested.append(source)
        return RasterImage.blank(300, 200, color=(0, 0, 0, 255))

    layer = AnnotationLayer(background=RasterImage.blank(300, 200), background_source="diagram.png")
    payload = export_annotation_png(layer, loader)

    assert requested == ["diagram.png"]
    assert (payload.width, payload.height) == (300, 280)


def test_annotation_export_wraps_reload_failure(qapp):
    def loader(source):
        raise ImageDecodeError("gone")

    layer = AnnotationLayer(background=RasterImage.blank(300, 200), background_source="diagram.png")
    with pytest.raises(ExportError):
        export_annotation_png(layer, loader)
