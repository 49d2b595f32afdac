"""Tests for the export service."""

from datetime import datetime

import pytest
from PIL import Image

from snapink.editor.bitmap import Bitmap
from snapink.editor.session import ImagePayload
from snapink.errors import ExportError
from snapink.services.export_service import (
    dialog_filter,
    save_image,
    suggested_filename,
)


@pytest.fixture
def payload():
    bitmap = Bitmap.blank(40, 30, (200, 10, 20, 255))
    return ImagePayload(bitmap.width, bitmap.height, bitmap.to_bytes())


class TestSaveImage:
    def test_png_round_trip(self, tmp_path, payload):
        path = save_image(payload, tmp_path / "shot.png")

        with Image.open(path) as image:
            assert image.format == "PNG"
            assert image.size == (40, 30)
            assert image.convert("RGBA").getpixel((5, 5)) == (200, 10, 20, 255)

    @pytest.mark.parametrize("name", ["shot.jpg", "shot.JPEG"])
    def test_jpeg_drops_alpha(self, tmp_path, payload, name):
        path = save_image(payload, tmp_path / name)

        with Image.open(path) as image:
            assert image.format == "JPEG"
            assert image.mode == "RGB"
            assert image.size == (40, 30)

    def test_gif(self, tmp_path, payload):
        path = save_image(payload, tmp_path / "shot.gif")

        with Image.open(path) as image:
            assert image.format == "GIF"
            assert image.size == (40, 30)

    @pytest.mark.parametrize("name", ["shot.bmp", "shot"])
    def test_unsupported_extension(self, tmp_path, payload, name):
        with pytest.raises(ExportError):
            save_image(payload, tmp_path / name)

    def test_missing_directory_is_export_error(self, tmp_path, payload):
        with pytest.raises(ExportError):
            save_image(payload, tmp_path / "missing" / "shot.png")


class TestNaming:
    def test_suggested_filename(self):
        now = datetime(2024, 3, 9, 14, 5, 7)
        assert suggested_filename(now) == "snapshot_2024_03_09_14_05_07"

    def test_dialog_filter(self):
        assert dialog_filter() == "PNG (*.png);;JPG (*.jpg *.jpeg);;GIF (*.gif)"
