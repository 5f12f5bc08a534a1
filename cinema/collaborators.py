"""
Interfaces of the systems the storyboard core talks to.
"""

from typing import Dict, Iterable, Optional, Protocol, runtime_checkable

from cinema.data_models import CharacterProfile, GenerationRequest, ImageAsset, SceneProfile, Storyboard


@runtime_checkable
class ImageGenerator(Protocol):
    async def generate(self, request: GenerationRequest) -> ImageAsset:
        """Return one image or raise GenerationError."""
        ...


@runtime_checkable
class StoryboardStore(Protocol):
    def save(self, storyboard: Storyboard):
        ...

    def load(self, storyboard_id: str) -> Optional[Storyboard]:
        ...


class SceneLookup(Protocol):
    def get_scene(self, scene_id: str) -> Optional[SceneProfile]:
        ...


class CharacterLookup(Protocol):
    def get_character(self, character_id: str) -> Optional[CharacterProfile]:
        ...


class InMemoryCatalog:
    """Scene and character lookup backed by dicts."""

    def __init__(self, characters: Iterable[CharacterProfile] = (), scenes: Iterable[SceneProfile] = ()):
        self.characters: Dict[str, CharacterProfile] = {c.id: c for c in characters}
        self.scenes: Dict[str, SceneProfile] = {s.id: s for s in scenes}

    def add_character(self, character: CharacterProfile) -> None:
        self.characters[character.id] = character

    def add_scene(self, scene: SceneProfile) -> None:
        self.scenes[scene.id] = scene

    def get_character(self, character_id: str) -> Optional[CharacterProfile]:
        return self.characters.get(character_id)

    def get_scene(self, scene_id: str) -> Optional[SceneProfile]:
        return self.scenes.get(scene_id)
