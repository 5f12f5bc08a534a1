"""
Explicit application state for one open storyboard.

Every durable action mutates the in-memory storyboard first and then asks the
autosave coordinator to persist it. Transient UI state (the panel picked for
refinement) is kept here but never saved.
"""

import asyncio
from typing import Dict, List, Optional, Set, Tuple

from cinema.autosave import AutosaveCoordinator
from cinema.collaborators import CharacterLookup, ImageGenerator, SceneLookup, StoryboardStore
from cinema.data_models import (
    CharacterProfile, ImageAsset, NarrativeContext, RefineResult, Storyboard, GenerationRequest,
)
from cinema.env_loader import StudioConfig, init_model
from cinema.exceptions import ConfigurationError, GroupBusyError, ValidationError
from cinema.frames import FrameStore, GroupState
from cinema.gemini_image import GeminiImageClient
from cinema.image_jobs import compose_group_request
from cinema.logging_config import get_logger
from cinema.panels import panel_at
from cinema import reorder, script_writer, shots as shot_ops
from cinema.storyboard_io import JsonStoryboardStore
from cinema.text_utils import parse_legacy_shot_list

logger = get_logger("session")


def new_storyboard(
    title: str = "",
    story_egg_id: str = "",
    universe_id: str = "",
    aspect_ratio: str = "16:9",
    visual_style: str = "",
    scene_id: Optional[str] = None,
    legacy_shot_list: str = "",
) -> Storyboard:
    """Fresh storyboard with one empty group, or shots parsed from a legacy list."""
    sb = Storyboard(
        title=title,
        story_egg_id=story_egg_id,
        universe_id=universe_id,
        aspect_ratio=aspect_ratio,
        visual_style=visual_style,
        scene_id=scene_id,
    )
    if legacy_shot_list.strip():
        parsed = parse_legacy_shot_list(legacy_shot_list)
        sb.shots = parsed.shots
        sb.scene_summary = parsed.preamble
    else:
        shot_ops.append_group(sb)
    return sb


class StoryboardSession:

    def __init__(
        self,
        storyboard: Storyboard,
        generator: ImageGenerator,
        characters: CharacterLookup,
        scenes: SceneLookup,
        autosave: Optional[AutosaveCoordinator] = None,
        context: Optional[NarrativeContext] = None,
        text_model=None,
        config: Optional[StudioConfig] = None,
    ):
        self.storyboard = storyboard
        self.characters = characters
        self.scenes = scenes
        self.autosave = autosave
        self.context = context or NarrativeContext()
        self.text_model = text_model
        self.config = config or StudioConfig()
        self.frames = FrameStore(storyboard, generator, self._compose, quality_tier=self.config.quality_tier)
        self.selected_panels: Dict[int, int] = {}
        self._drafting: Set[int] = set()

    # ---- plumbing ----

    def _compose(self, group_index: int) -> GenerationRequest:
        return compose_group_request(
            self.storyboard, group_index, self.context, self.characters, self.scenes,
            quality_tier=self.config.quality_tier,
        )

    def _persist(self) -> None:
        if self.autosave is not None:
            self.autosave.request_save(self.storyboard)

    def _cast_profiles(self) -> List[CharacterProfile]:
        out = []
        for cid in self.storyboard.participating_character_ids:
            c = self.characters.get_character(cid)
            if c is not None:
                out.append(c)
        return out

    def _require_text_model(self):
        if self.text_model is None:
            raise ConfigurationError("No text model configured for script drafting")
        return self.text_model

    def group_state(self, group_index: int) -> GroupState:
        return self.frames.state(group_index)

    # ---- storyboard fields ----

    def set_title(self, title: str) -> None:
        self.storyboard.title = title or ""
        self._persist()

    def set_scene_summary(self, summary: str) -> None:
        self.storyboard.scene_summary = summary or ""
        self._persist()

    def select_scene(self, scene_id: Optional[str]) -> None:
        self.storyboard.scene_id = scene_id or None
        self._persist()

    def set_scene_override(self, group_index: int, asset: Optional[ImageAsset]) -> None:
        shot_ops.require_group(self.storyboard, group_index)
        if asset is None:
            self.storyboard.scene_overrides.pop(group_index, None)
        else:
            self.storyboard.scene_overrides[group_index] = asset
        self._persist()

    def toggle_cast_member(self, character_id: str) -> List[str]:
        cast = self.storyboard.participating_character_ids
        if character_id in cast:
            self.storyboard.participating_character_ids = [c for c in cast if c != character_id]
        else:
            self.storyboard.participating_character_ids = cast + [character_id]
        self._persist()
        return self.storyboard.participating_character_ids

    # ---- shots ----

    def append_group(self) -> int:
        shot_ops.append_group(self.storyboard)
        self._persist()
        return shot_ops.group_count(self.storyboard) - 1

    def set_shot_field(self, shot_index: int, field: str, value) -> bool:
        changed = shot_ops.set_shot_field(self.storyboard, shot_index, field, value)
        if changed:
            self._persist()
        return changed

    def toggle_lock(self, shot_index: int) -> bool:
        locked = shot_ops.toggle_lock(self.storyboard, shot_index)
        self._persist()
        return locked

    def toggle_shot_character(self, shot_index: int, character_id: str) -> List[str]:
        ids = shot_ops.toggle_shot_character(self.storyboard, shot_index, character_id)
        self._persist()
        return ids

    def select_character_image(self, shot_index: int, character_id: str, image_id: Optional[str]) -> None:
        shot_ops.select_character_image(self.storyboard, shot_index, character_id, image_id)
        self._persist()

    # ---- groups ----

    def is_drafting(self, group_index: int) -> bool:
        return group_index in self._drafting

    def _ensure_not_drafting(self, *group_indices: int) -> None:
        for g in group_indices:
            if g in self._drafting:
                raise GroupBusyError(g, "drafting its script")

    def reset_group(self, group_index: int) -> None:
        """Drop the group's images and history; a generation still running for it is discarded."""
        shot_ops.require_group(self.storyboard, group_index)
        self._ensure_not_drafting(group_index)
        self.frames.invalidate(group_index)
        self.storyboard.frames.pop(group_index, None)
        self.selected_panels.pop(group_index, None)
        logger.info(f"Reset group {group_index}")
        self._persist()

    def move_group(self, group_index: int, direction: str) -> int:
        target = reorder.target_index(self.storyboard, group_index, direction)
        for g in (group_index, target):
            if self.frames.is_busy(g):
                raise GroupBusyError(g)
        self._ensure_not_drafting(group_index, target)
        new_index = reorder.move_group(self.storyboard, group_index, direction)
        self.selected_panels.clear()
        self._persist()
        return new_index

    # ---- generation ----

    async def generate_group(self, group_index: int) -> ImageAsset:
        asset = await self.frames.generate_for_group(group_index)
        self._persist()
        return asset

    def select_panel(self, group_index: int, panel_number: int) -> None:
        # transient, not persisted
        self.selected_panels[group_index] = panel_number

    async def refine_panel(self, group_index: int, instruction: str, panel_number: Optional[int] = None) -> RefineResult:
        panel = panel_number if panel_number is not None else self.selected_panels.get(group_index)
        if panel is None:
            raise ValidationError("No panel selected for refinement", {"group_index": group_index})
        result = await self.frames.refine_panel(group_index, panel, instruction)
        self._persist()
        return result

    def compare_panel(self, result: RefineResult, panel_number: int) -> Tuple[ImageAsset, ImageAsset]:
        """Before and after crops of one panel from a refinement."""
        return panel_at(result.previous, panel_number), panel_at(result.current, panel_number)

    def restore_version(self, group_index: int, ref: str) -> ImageAsset:
        restored = self.frames.compare_and_restore(group_index, ref)
        self._persist()
        return restored

    # ---- text ----

    async def _draft(self, group_index: int, fn, *args):
        """Run a text-model call off the loop while the group is marked as drafting."""
        self._ensure_not_drafting(group_index)
        self._drafting.add(group_index)
        try:
            return await asyncio.to_thread(fn, *args)
        finally:
            self._drafting.discard(group_index)

    async def draft_group_script(self, group_index: int, rough_plot: str = "") -> List[int]:
        model = self._require_text_model()
        shot_ops.require_group(self.storyboard, group_index)
        texts = await self._draft(
            group_index,
            script_writer.request_group_script,
            model, self.storyboard.model_copy(deep=True), group_index, self.context, self._cast_profiles(),
            rough_plot or self.storyboard.scene_summary,
        )
        changed = script_writer.apply_group_script(self.storyboard, group_index, texts)
        if changed:
            self._persist()
        return changed

    async def polish_shot(self, shot_index: int) -> str:
        model = self._require_text_model()
        text = await self._draft(
            shot_ops.group_index_of(shot_index + 1),
            script_writer.request_polish, model, self.storyboard.model_copy(deep=True), shot_index, self.context,
        )
        script_writer.apply_polish(self.storyboard, shot_index, text)
        self._persist()
        return text


def open_session(
    config: StudioConfig,
    storyboard_id: str,
    characters: CharacterLookup,
    scenes: SceneLookup,
    context: Optional[NarrativeContext] = None,
    generator: Optional[ImageGenerator] = None,
    text_model=None,
    store: Optional[StoryboardStore] = None,
) -> StoryboardSession:
    """
    Wire a session from config: the stored storyboard (or a fresh one under
    that id), the Gemini image client, the text model and a JSON store with
    autosave. Collaborators passed in explicitly win over the config.
    """
    store = store or JsonStoryboardStore(config.data_dir)
    storyboard = store.load(storyboard_id)
    if storyboard is None:
        logger.info(f"No stored storyboard {storyboard_id}; starting a new one")
        storyboard = new_storyboard()
        storyboard.id = storyboard_id

    if generator is None:
        generator = GeminiImageClient(config.effective_image_key, config.image_model)
    if text_model is None:
        text_model = init_model(config.api_key, config.text_model)
        if text_model is None:
            logger.warning("No API key for the text model; script drafting is disabled")

    return StoryboardSession(
        storyboard, generator, characters, scenes,
        autosave=AutosaveCoordinator(store),
        context=context,
        text_model=text_model,
        config=config,
    )
