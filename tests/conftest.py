import os

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

from pathlib import Path

import cv2
import numpy as np
import pytest

from pirads_composer.core import CanvasPolicy, CompositionCanvas, ElementRole, RasterImage
from pirads_composer.settings import reset_settings_cache


@pytest.fixture(autouse=True)
def isolated_settings(tmp_path, monkeypatch):
    """Point asset and output roots at a scratch directory for every test."""
    asset_dir = tmp_path / "assets"
    output_dir = tmp_path / "outputs"
    asset_dir.mkdir()
    monkeypatch.setenv("PIRADS_COMPOSER_ASSET_ROOT", str(asset_dir))
    monkeypatch.setenv("PIRADS_COMPOSER_OUTPUT_ROOT", str(output_dir))
    reset_settings_cache()
    yield
    reset_settings_cache()


@pytest.fixture
def asset_dir(tmp_path) -> Path:
    return tmp_path / "assets"


@pytest.fixture
def output_dir(tmp_path) -> Path:
    return tmp_path / "outputs"


@pytest.fixture
def policy() -> CanvasPolicy:
    return CanvasPolicy()


@pytest.fixture
def canvas(policy) -> CompositionCanvas:
    """A 1000x800 canvas with a single 200x100 screenshot element at (100, 100)."""
    canvas = CompositionCanvas(1000, 800, policy=policy)
    canvas.add_element("shot", 100.0, 100.0, 200.0, 100.0, role=ElementRole.SCREENSHOT)
    return canvas


@pytest.fixture
def default_canvas(policy) -> CompositionCanvas:
    return CompositionCanvas.with_default_layout(policy=policy)


def make_raster(width: int, height: int, color=(200, 30, 30, 255)) -> RasterImage:
    return RasterImage.blank(width, height, color=color)


def write_png(path: Path, width: int, height: int, bgr=(30, 30, 200)) -> Path:
    pixels = np.zeros((height, width, 3), dtype=np.uint8)
    pixels[...] = bgr
    ok, encoded = cv2.imencode(".png", pixels)
    assert ok
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(encoded.tobytes())
    return path


@pytest.fixture
def raster_factory():
    return make_raster


@pytest.fixture
def png_factory():
    return write_png
