"""Tests for the temp file area."""

import pytest
from PIL import Image

from clipsmith.clipboard import Bitmap, TempFileArea


class TestTempFileArea:
    def test_write_text_uses_fixed_name(self, tmp_path):
        area = TempFileArea(tmp_path)

        first = area.write_text("one")
        second = area.write_text("two")

        assert first == second == tmp_path / "clipboard.txt"
        assert second.read_text(encoding="utf-8") == "two"

    def test_write_image_png(self, tmp_path):
        # One blue BGRA pixel, one red
        bitmap = Bitmap(width=2, height=1, pixel_format="BGRA", data=bytes([255, 0, 0, 255, 0, 0, 255, 255]))

        path = TempFileArea(tmp_path).write_image(bitmap)

        assert path.name == "clipboard.png"
        with Image.open(path) as image:
            assert image.format == "PNG"
            assert image.size == (2, 1)
            assert image.convert("RGBA").getpixel((0, 0)) == (0, 0, 255, 255)
            assert image.convert("RGBA").getpixel((1, 0)) == (255, 0, 0, 255)

    def test_creates_missing_directory(self, tmp_path):
        area = TempFileArea(tmp_path / "nested" / "dir")
        assert area.write_text("x").exists()


class TestBitmap:
    def test_rejects_wrong_buffer_length(self):
        with pytest.raises(ValueError):
            Bitmap(width=2, height=2, pixel_format="RGB", data=bytes(5))
