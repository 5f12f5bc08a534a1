import base64
import re
import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import List, Dict, Optional

from pydantic import BaseModel, Field

SHOTS_PER_GROUP = 4      # shots per group = panels per composite image
HISTORY_LIMIT = 9        # previous images kept per group

_DATA_URI = re.compile(r"^data:(?P<mime>[\w.+\-/]+)?(?:;[^,]*)?;base64,(?P<data>.*)$", re.S)


def _new_ref() -> str:
    return uuid.uuid4().hex


def _now() -> datetime:
    return datetime.now(timezone.utc)


class ImageAsset(BaseModel):
    """Opaque image handle. `ref` is its identity; `uri` is a data: URI, URL or local path."""
    ref: str = Field(default_factory=_new_ref)
    uri: str

    @classmethod
    def from_bytes(cls, data: bytes, mime_type: str = "image/png", ref: Optional[str] = None) -> "ImageAsset":
        uri = f"data:{mime_type};base64,{base64.b64encode(data).decode('ascii')}"
        if ref:
            return cls(ref=ref, uri=uri)
        return cls(uri=uri)

    @property
    def mime_type(self) -> str:
        m = _DATA_URI.match(self.uri)
        if m and m.group("mime"):
            return m.group("mime")
        low = self.uri.lower().split("?")[0]
        if low.endswith((".jpg", ".jpeg")):
            return "image/jpeg"
        if low.endswith(".webp"):
            return "image/webp"
        return "image/png"

    @property
    def data(self) -> Optional[bytes]:
        """Decoded bytes for inline assets; None for URLs / paths (see cinema.assets)."""
        m = _DATA_URI.match(self.uri)
        if not m:
            return None
        return base64.b64decode(m.group("data"))


class Shot(BaseModel):
    id: int
    theme: str = ""                      # shot scale tag, e.g. "Close-up"
    content: str = ""
    locked: bool = False
    character_ids: List[str] = []
    selected_image_refs: Dict[str, str] = {}   # character id -> gallery image id

    @property
    def is_blank(self) -> bool:
        return not self.content.strip()


class Frame(BaseModel):
    group_index: int
    image: Optional[ImageAsset] = None
    history: List[ImageAsset] = []       # most recent first
    description: str = ""
    updated_at: datetime = Field(default_factory=_now)


class Storyboard(BaseModel):
    id: str = Field(default_factory=_new_ref)
    story_egg_id: str = ""
    universe_id: str = ""
    title: str = ""
    scene_summary: str = ""
    participating_character_ids: List[str] = []
    shots: List[Shot] = []
    frames: Dict[int, Frame] = {}
    scene_overrides: Dict[int, ImageAsset] = {}
    scene_id: Optional[str] = None
    aspect_ratio: str = "16:9"           # "16:9" | "9:16"
    visual_style: str = ""
    created_at: datetime = Field(default_factory=_now)


# ===================== Collaborator views =====================

class CharacterImage(BaseModel):
    id: str
    angle: str = ""                      # "01 front", "02 side", ...
    asset: ImageAsset


class CharacterProfile(BaseModel):
    id: str
    name: str
    summary: str = ""
    appearance: str = ""
    personality: str = ""
    images: List[CharacterImage] = []
    cover_image_id: Optional[str] = None

    def find_image(self, image_id: str) -> Optional[CharacterImage]:
        for img in self.images:
            if img.id == image_id:
                return img
        return None

    def default_reference_image(self) -> Optional[CharacterImage]:
        # cover -> first "01" angle -> first image
        if self.cover_image_id:
            cover = self.find_image(self.cover_image_id)
            if cover:
                return cover
        for img in self.images:
            if img.angle.startswith("01"):
                return img
        return self.images[0] if self.images else None


class SceneImage(BaseModel):
    id: str
    label: str = ""
    kind: str = "view"                   # "main" | "view"
    asset: ImageAsset


class SceneProfile(BaseModel):
    id: str
    name: str
    description: str = ""
    images: List[SceneImage] = []

    def main_image(self) -> Optional[SceneImage]:
        for img in self.images:
            if img.kind == "main":
                return img
        return None


class NarrativeContext(BaseModel):
    universe_name: str = ""
    universe_type: str = ""
    universe_rules: str = ""
    story_title: str = ""
    visual_style: str = ""
    full_script: str = ""


# ===================== Generation requests =====================

class ReferenceKind(str, Enum):
    SCENE = "scene"
    CONTINUITY = "continuity"
    CHARACTER = "character"
    SHOT_CHARACTER = "shot_character"
    SOURCE = "source"


class ReferenceImage(BaseModel):
    kind: ReferenceKind
    label: str
    asset: ImageAsset
    character_id: Optional[str] = None
    character_name: Optional[str] = None
    shot_position: Optional[int] = None  # 0-based panel position for shot-scoped refs


class GenerationRequest(BaseModel):
    prompt: str
    references: List[ReferenceImage] = []
    aspect_ratio: str = "16:9"
    quality_tier: str = "4K"
    group_index: Optional[int] = None
    description: str = ""               # shot script the image is drawn from


class RefineResult(BaseModel):
    current: ImageAsset
    previous: ImageAsset
