"""Cut a composite storyboard sheet into its panels (before/after comparison)."""

from typing import List

from PIL import Image

from cinema.assets import image_to_asset, open_image
from cinema.data_models import ImageAsset
from cinema.exceptions import InvalidPanelError

GRID_ROWS = 2
GRID_COLS = 2
EDGE_MARGIN = 0.015      # trims the gutter the model tends to draw between panels


def panel_boxes(width: int, height: int, rows: int = GRID_ROWS, cols: int = GRID_COLS, margin: float = EDGE_MARGIN):
    """Crop boxes (left, top, right, bottom) in reading order."""
    cell_w = width / cols
    cell_h = height / rows
    mx = int(cell_w * margin)
    my = int(cell_h * margin)
    boxes = []
    for r in range(rows):
        for c in range(cols):
            left = int(c * cell_w) + mx
            top = int(r * cell_h) + my
            right = int((c + 1) * cell_w) - mx
            bottom = int((r + 1) * cell_h) - my
            boxes.append((left, top, right, bottom))
    return boxes


def slice_image(img: Image.Image, rows: int = GRID_ROWS, cols: int = GRID_COLS, margin: float = EDGE_MARGIN) -> List[Image.Image]:
    return [img.crop(box) for box in panel_boxes(img.width, img.height, rows, cols, margin)]


def slice_composite(asset: ImageAsset, rows: int = GRID_ROWS, cols: int = GRID_COLS, margin: float = EDGE_MARGIN) -> List[ImageAsset]:
    img = open_image(asset)
    return [image_to_asset(p) for p in slice_image(img, rows, cols, margin)]


def panel_at(asset: ImageAsset, panel_number: int) -> ImageAsset:
    """Panel 1..rows*cols, reading left to right, top to bottom."""
    count = GRID_ROWS * GRID_COLS
    if panel_number < 1 or panel_number > count:
        raise InvalidPanelError(panel_number, count)
    img = open_image(asset)
    box = panel_boxes(img.width, img.height)[panel_number - 1]
    return image_to_asset(img.crop(box))
