"""
Pytest Configuration and Fixtures

Shared fakes for the storyboard core: image generator, text model, store.
"""

import asyncio
import io
import shutil
import tempfile
import threading
from pathlib import Path
from typing import List, Optional

import pytest
from PIL import Image

from cinema.collaborators import InMemoryCatalog
from cinema.data_models import (
    CharacterImage, CharacterProfile, GenerationRequest, ImageAsset, SceneImage, SceneProfile, Storyboard,
)
from cinema.exceptions import GenerationError
from cinema.session import new_storyboard
from cinema.shots import append_group


def png_bytes(color=(200, 30, 30), size=(64, 36)) -> bytes:
    buf = io.BytesIO()
    Image.new("RGB", size, color).save(buf, format="PNG")
    return buf.getvalue()


def make_asset(ref: str, color=(200, 30, 30)) -> ImageAsset:
    return ImageAsset.from_bytes(png_bytes(color), ref=ref)


class FakeGenerator:
    """Records requests; returns fresh assets or raises the queued error."""

    def __init__(self):
        self.requests: List[GenerationRequest] = []
        self.error: Optional[GenerationError] = None
        self.gate: Optional[asyncio.Event] = None
        self.counter = 0

    async def generate(self, request: GenerationRequest) -> ImageAsset:
        self.requests.append(request)
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        self.counter += 1
        return make_asset(f"gen-{self.counter}", color=(self.counter * 20 % 255, 80, 120))


class FakeResponse:
    def __init__(self, text: str):
        self.text = text


class FakeTextModel:
    """Mimics google.generativeai.GenerativeModel.generate_content."""

    def __init__(self, answer: str = "[]"):
        self.answer = answer
        self.prompts: List[str] = []
        self.gate: Optional[threading.Event] = None

    def generate_content(self, prompt, generation_config=None):
        self.prompts.append(prompt)
        if self.gate is not None:
            self.gate.wait(timeout=5)
        return FakeResponse(self.answer)


class MemoryStore:

    def __init__(self, fail: bool = False):
        self.saved: List[Storyboard] = []
        self.fail = fail

    def save(self, storyboard: Storyboard):
        if self.fail:
            raise IOError("disk full")
        self.saved.append(storyboard)

    def load(self, storyboard_id: str) -> Optional[Storyboard]:
        for sb in reversed(self.saved):
            if sb.id == storyboard_id:
                return sb
        return None


@pytest.fixture
def temp_dir():
    """Create a temporary directory for tests."""
    temp_path = tempfile.mkdtemp()
    yield Path(temp_path)
    shutil.rmtree(temp_path, ignore_errors=True)


@pytest.fixture
def nia() -> CharacterProfile:
    return CharacterProfile(
        id="nia",
        name="Nia",
        appearance="short silver hair, red coat",
        personality="restless, curious",
        images=[
            CharacterImage(id="img-1", angle="01 front", asset=make_asset("nia-front")),
            CharacterImage(id="img-7", angle="03 back", asset=make_asset("nia-back")),
        ],
    )


@pytest.fixture
def kai() -> CharacterProfile:
    return CharacterProfile(
        id="kai",
        name="Kai",
        images=[
            CharacterImage(id="k-2", angle="02 side", asset=make_asset("kai-side")),
            CharacterImage(id="k-3", angle="03 back", asset=make_asset("kai-back")),
        ],
        cover_image_id="k-3",
    )


@pytest.fixture
def harbor() -> SceneProfile:
    return SceneProfile(
        id="harbor",
        name="Night harbor",
        images=[
            SceneImage(id="h-1", label="pier", kind="view", asset=make_asset("harbor-view")),
            SceneImage(id="h-2", label="master", kind="main", asset=make_asset("harbor-main")),
        ],
    )


@pytest.fixture
def catalog(nia, kai, harbor) -> InMemoryCatalog:
    return InMemoryCatalog(characters=[nia, kai], scenes=[harbor])


@pytest.fixture
def storyboard() -> Storyboard:
    """Two groups; group 0 written, group 1 empty."""
    sb = new_storyboard(title="Harbor chase", story_egg_id="egg-1", universe_id="u-1")
    sb.shots[0].content = "Nia runs along the pier."
    sb.shots[1].content = "2. Kai watches from a crane."
    sb.shots[1].theme = "Low Angle"
    sb.shots[2].content = "Fog rolls over the water."
    sb.shots[3].content = "Nia jumps onto a boat."
    append_group(sb)
    return sb


@pytest.fixture
def generator() -> FakeGenerator:
    return FakeGenerator()
