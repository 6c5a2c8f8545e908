import cv2
import numpy as np
import pytest

from pirads_composer.assets import (
    AssetImageSource,
    ImageDecodeError,
    decode_image_bytes,
    load_image_file,
    load_image_source,
    resolve_source,
)
from pirads_composer.protocols import ImageSourceProvider, ReportTextSource


def _encode(pixels: np.ndarray, ext: str = ".png") -> bytes:
    ok, encoded = cv2.imencode(ext, pixels)
    assert ok
    return encoded.tobytes()


def test_decode_bgr_png_to_rgba():
    pixels = np.zeros((4, 6, 3), dtype=np.uint8)
    pixels[...] = (255, 0, 0)  # blue in BGR
    image = decode_image_bytes(_encode(pixels), source="blue.png")

    assert (image.natural_width, image.natural_height) == (6, 4)
    assert tuple(image.pixels[0, 0]) == (0, 0, 255, 255)
    assert image.source == "blue.png"


def test_decode_grayscale_and_alpha():
    gray = np.full((3, 3), 128, dtype=np.uint8)
    assert tuple(decode_image_bytes(_encode(gray)).pixels[1, 1]) == (128, 128, 128, 255)

    bgra = np.zeros((2, 2, 4), dtype=np.uint8)
    bgra[...] = (0, 255, 0, 100)
    assert tuple(decode_image_bytes(_encode(bgra)).pixels[0, 0]) == (0, 255, 0, 100)


def test_decode_sixteen_bit_png():
    deep = np.full((2, 2, 3), 65535, dtype=np.uint16)
    image = decode_image_bytes(_encode(deep))
    assert image.pixels.dtype == np.uint8
    assert tuple(image.pixels[0, 0]) == (255, 255, 255, 255)


@pytest.mark.parametrize("data", [b"", b"definitely not an image"])
def test_decode_rejects_bad_bytes(data):
    with pytest.raises(ImageDecodeError):
        decode_image_bytes(data)


def test_load_missing_file_raises(tmp_path):
    with pytest.raises(ImageDecodeError):
        load_image_file(tmp_path / "missing.png")


def test_resolve_source_order(tmp_path, asset_dir, png_factory):
    png_factory(asset_dir / "diagram.png", 10, 10)
    base = tmp_path / "layouts"
    base.mkdir()
    assert resolve_source("diagram.png", base) == (asset_dir / "diagram.png").resolve()

    png_factory(base / "diagram.png", 20, 20)
    assert resolve_source("diagram.png", base) == (base / "diagram.png").resolve()
    assert load_image_source("diagram.png", base).natural_width == 20


def test_resolve_source_schemes(tmp_path):
    target = tmp_path / "x.png"
    assert resolve_source(target.as_uri()) == target
    with pytest.raises(ImageDecodeError):
        resolve_source("https://example.org/diagram.png")


def test_asset_image_source_satisfies_protocol(tmp_path, png_factory):
    png_factory(tmp_path / "shot.png", 30, 20)
    source = AssetImageSource(tmp_path)

    assert isinstance(source, ImageSourceProvider)
    assert source.load("shot.png").natural_height == 20
    assert source.decode((tmp_path / "shot.png").read_bytes()).natural_width == 30


def test_report_text_source_protocol():
    class _Template:
        def render_report(self, values):
            return f"<p>{values['finding']}</p>", values["finding"]

    assert isinstance(_Template(), ReportTextSource)
    assert not isinstance(AssetImageSource(), ReportTextSource)
