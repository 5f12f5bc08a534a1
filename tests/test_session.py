"""
Tests for the storyboard session (mutate, then persist).
"""

import asyncio
import json
import threading

import pytest

from cinema.autosave import AutosaveCoordinator
from cinema.exceptions import (
    ConfigurationError, FailureCode, GenerationError, GroupBusyError, ShotLockedError, StaleGenerationError,
)
from cinema.frames import GroupState
from cinema.env_loader import StudioConfig
from cinema.gemini_image import GeminiImageClient
from cinema.session import StoryboardSession, new_storyboard, open_session
from cinema.storyboard_io import JsonStoryboardStore

from conftest import FakeGenerator, FakeTextModel, MemoryStore


@pytest.fixture
def saved():
    return MemoryStore()


@pytest.fixture
def session(storyboard, generator, catalog, saved):
    return StoryboardSession(
        storyboard, generator, catalog, catalog,
        autosave=AutosaveCoordinator(saved),
        text_model=FakeTextModel(json.dumps(["a", "b", "c", "d"])),
    )


class TestNewStoryboard:

    def test_from_legacy_text(self):
        sb = new_storyboard(title="L", legacy_shot_list="Intro\n1. [POV] Look\n2. Run")
        assert [s.id for s in sb.shots] == [1, 2, 3, 4]
        assert sb.scene_summary == "Intro"
        assert sb.shots[0].theme == "POV"


class TestEdits:

    def test_edits_are_persisted(self, session, saved):
        session.set_shot_field(0, "content", "changed")
        session.toggle_lock(0)
        session.append_group()
        assert len(saved.saved) == 3
        assert saved.saved[-1].shots[0].locked is True
        assert len(saved.saved[-1].shots) == 12

    def test_noop_edit_not_persisted(self, session, saved):
        session.toggle_lock(0)
        session.set_shot_field(0, "content", "blocked")
        assert len(saved.saved) == 1

    def test_panel_selection_is_transient(self, session, saved):
        session.select_panel(0, 2)
        assert saved.saved == []

    def test_cast_and_scene(self, session, saved):
        session.toggle_cast_member("nia")
        session.select_scene("harbor")
        assert saved.saved[-1].participating_character_ids == ["nia"]
        assert saved.saved[-1].scene_id == "harbor"


class TestGeneration:

    @pytest.mark.asyncio
    async def test_generate_then_refine_then_restore(self, session, storyboard, saved):
        first = await session.generate_group(0)
        session.select_panel(0, 2)
        result = await session.refine_panel(0, "add rain")
        assert result.previous.ref == first.ref
        session.restore_version(0, first.ref)
        await session.autosave.drain()

        assert storyboard.frames[0].image.ref == first.ref
        assert storyboard.frames[0].history[0].ref == result.current.ref
        assert len(saved.saved) == 3

    @pytest.mark.asyncio
    async def test_compare_panel(self, session):
        await session.generate_group(0)
        result = await session.refine_panel(0, "darker sky", panel_number=1)
        before, after = session.compare_panel(result, 1)
        assert before.mime_type == "image/png"
        assert before.data != after.data

    @pytest.mark.asyncio
    async def test_failure_not_persisted(self, session, generator, saved):
        generator.error = GenerationError(FailureCode.PERMISSION_DENIED, "billing")
        with pytest.raises(GenerationError):
            await session.generate_group(0)
        await session.autosave.drain()
        assert saved.saved == []

    @pytest.mark.asyncio
    async def test_reset_discards_late_result(self, session, storyboard, generator):
        await session.generate_group(0)
        generator.gate = asyncio.Event()
        task = asyncio.create_task(session.generate_group(0))
        await asyncio.sleep(0)
        session.reset_group(0)
        generator.gate.set()
        with pytest.raises(StaleGenerationError):
            await task
        assert 0 not in storyboard.frames
        assert session.group_state(0) == GroupState.EMPTY

    @pytest.mark.asyncio
    async def test_move_busy_group_rejected(self, session, generator):
        generator.gate = asyncio.Event()
        task = asyncio.create_task(session.generate_group(0))
        await asyncio.sleep(0)
        with pytest.raises(GroupBusyError):
            session.move_group(1, "up")
        generator.gate.set()
        await task


class TestText:

    @pytest.mark.asyncio
    async def test_draft_group_script(self, session, storyboard, saved):
        storyboard.shots[5].locked = True
        storyboard.shots[5].content = "keep me"
        changed = await session.draft_group_script(1)
        await session.autosave.drain()
        assert changed == [5, 7, 8]
        assert storyboard.shots[5].content == "keep me"
        assert saved.saved[-1].shots[4].content == "a"

    @pytest.mark.asyncio
    async def test_polish_locked_shot(self, session, storyboard):
        storyboard.shots[0].locked = True
        with pytest.raises(ShotLockedError):
            await session.polish_shot(0)

    @pytest.mark.asyncio
    async def test_no_text_model(self, storyboard, generator, catalog):
        bare = StoryboardSession(storyboard, generator, catalog, catalog)
        with pytest.raises(ConfigurationError):
            await bare.draft_group_script(0)

    @pytest.mark.asyncio
    async def test_move_rejected_while_drafting(self, session, storyboard):
        written = [s.content for s in storyboard.shots[0:4]]
        session.text_model.gate = threading.Event()
        task = asyncio.create_task(session.draft_group_script(1))
        await asyncio.sleep(0)
        assert session.is_drafting(1)

        with pytest.raises(GroupBusyError):
            session.move_group(1, "up")
        with pytest.raises(GroupBusyError):
            session.move_group(0, "down")
        with pytest.raises(GroupBusyError):
            session.reset_group(1)

        session.text_model.gate.set()
        assert await task == [5, 6, 7, 8]
        assert [s.content for s in storyboard.shots[0:4]] == written
        assert [s.content for s in storyboard.shots[4:8]] == ["a", "b", "c", "d"]
        assert not session.is_drafting(1)
        assert session.move_group(1, "up") == 0

    @pytest.mark.asyncio
    async def test_polish_blocks_its_group(self, session):
        session.text_model.answer = "Nia sprints."
        session.text_model.gate = threading.Event()
        task = asyncio.create_task(session.polish_shot(2))
        await asyncio.sleep(0)
        with pytest.raises(GroupBusyError):
            session.move_group(0, "down")
        session.text_model.gate.set()
        assert await task == "Nia sprints."


class TestOpenSession:

    def test_loads_stored_storyboard(self, temp_dir, storyboard, catalog):
        JsonStoryboardStore(temp_dir).save(storyboard)
        config = StudioConfig(data_dir=temp_dir)
        s = open_session(config, storyboard.id, catalog, catalog, generator=FakeGenerator(), text_model=FakeTextModel())

        assert s.storyboard == storyboard
        s.set_title("Harbor chase, take two")
        reloaded = JsonStoryboardStore(temp_dir).load(storyboard.id)
        assert reloaded.title == "Harbor chase, take two"

    def test_clients_built_from_config(self, temp_dir, catalog, monkeypatch):
        calls = []

        def fake_init_model(api_key, model_name):
            calls.append((api_key, model_name))
            return FakeTextModel()

        monkeypatch.setattr("cinema.session.init_model", fake_init_model)
        config = StudioConfig(
            api_key="text-key", image_api_key="image-key",
            image_model="gemini-2.5-flash-image", text_model="gemini-2.5-flash", data_dir=temp_dir,
        )
        s = open_session(config, "fresh-board", catalog, catalog)

        assert isinstance(s.frames.generator, GeminiImageClient)
        assert s.frames.generator.model_name == "gemini-2.5-flash-image"
        assert calls == [("text-key", "gemini-2.5-flash")]
        assert isinstance(s.autosave.store, JsonStoryboardStore)
        assert s.autosave.store.data_dir == temp_dir
        assert s.storyboard.id == "fresh-board"
        assert len(s.storyboard.shots) == 4

    @pytest.mark.asyncio
    async def test_no_key_disables_drafting(self, temp_dir, catalog):
        s = open_session(StudioConfig(data_dir=temp_dir), "b", catalog, catalog, generator=FakeGenerator())
        assert s.text_model is None
        with pytest.raises(ConfigurationError):
            await s.draft_group_script(0)
