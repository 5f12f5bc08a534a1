import io
from pathlib import Path
from typing import Tuple

import requests
from PIL import Image

from cinema.data_models import ImageAsset
from cinema.exceptions import StudioError
from cinema.logging_config import get_logger

logger = get_logger("assets")

FETCH_TIMEOUT = 30


def load_asset_bytes(asset: ImageAsset) -> Tuple[bytes, str]:
    """Return (bytes, mime_type) for an inline, remote or local asset."""
    data = asset.data
    if data is not None:
        return data, asset.mime_type

    if asset.uri.startswith(("http://", "https://")):
        try:
            resp = requests.get(asset.uri, timeout=FETCH_TIMEOUT)
            resp.raise_for_status()
        except requests.RequestException as e:
            raise StudioError(f"Could not fetch image {asset.ref}", {"uri": asset.uri, "error": str(e)}) from e
        mime = resp.headers.get("Content-Type", "").split(";")[0].strip() or asset.mime_type
        return resp.content, mime

    path = Path(asset.uri)
    if not path.is_file():
        raise StudioError(f"Image file for {asset.ref} not found", {"uri": asset.uri})
    return path.read_bytes(), asset.mime_type


def open_image(asset: ImageAsset) -> Image.Image:
    data, _ = load_asset_bytes(asset)
    img = Image.open(io.BytesIO(data))
    img.load()
    return img


def image_to_asset(img: Image.Image, fmt: str = "PNG") -> ImageAsset:
    buf = io.BytesIO()
    img.save(buf, format=fmt)
    return ImageAsset.from_bytes(buf.getvalue(), mime_type=Image.MIME.get(fmt.upper(), "image/png"))
