"""
Tests for composite sheet slicing.
"""

import io

import pytest
from PIL import Image

from cinema.data_models import ImageAsset
from cinema.exceptions import InvalidPanelError
from cinema.panels import panel_at, panel_boxes, slice_composite


def quad_sheet() -> ImageAsset:
    """200x100 sheet, each quadrant a different colour."""
    img = Image.new("RGB", (200, 100))
    colours = [(255, 0, 0), (0, 255, 0), (0, 0, 255), (255, 255, 0)]
    for i, c in enumerate(colours):
        x, y = (i % 2) * 100, (i // 2) * 50
        img.paste(c, (x, y, x + 100, y + 50))
    buf = io.BytesIO()
    img.save(buf, format="PNG")
    return ImageAsset.from_bytes(buf.getvalue())


def decode(asset: ImageAsset) -> Image.Image:
    return Image.open(io.BytesIO(asset.data)).convert("RGB")


class TestPanels:

    def test_boxes_reading_order(self):
        boxes = panel_boxes(200, 100, margin=0)
        assert boxes == [(0, 0, 100, 50), (100, 0, 200, 50), (0, 50, 100, 100), (100, 50, 200, 100)]

    def test_margin_trims_edges(self):
        left, top, right, bottom = panel_boxes(1000, 1000)[0]
        assert (left, top) == (7, 7)
        assert (right, bottom) == (493, 493)

    def test_slice_composite(self):
        panels = slice_composite(quad_sheet())
        assert len(panels) == 4
        assert decode(panels[0]).getpixel((10, 10)) == (255, 0, 0)
        assert decode(panels[3]).getpixel((10, 10)) == (255, 255, 0)

    def test_panel_at(self):
        panel = panel_at(quad_sheet(), 3)
        assert decode(panel).getpixel((5, 5)) == (0, 0, 255)

    def test_panel_out_of_range(self):
        with pytest.raises(InvalidPanelError):
            panel_at(quad_sheet(), 5)
