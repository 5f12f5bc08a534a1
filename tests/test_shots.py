"""
Tests for shot editing and group partitioning.
"""

import pytest

from cinema.data_models import Frame, SHOTS_PER_GROUP
from cinema.exceptions import InvalidFieldError, InvariantError, UnknownGroupError
from cinema.session import new_storyboard
from cinema.shots import (
    append_group, check_invariants, group_count, group_index_of, select_character_image,
    set_shot_field, shots_in_group, toggle_lock, toggle_shot_character,
)

from conftest import make_asset


class TestGroups:

    def test_new_storyboard_has_one_empty_group(self):
        sb = new_storyboard(title="T")
        assert [s.id for s in sb.shots] == [1, 2, 3, 4]
        assert all(not s.locked and s.content == "" for s in sb.shots)
        assert group_count(sb) == 1

    def test_append_group_continues_ids(self, storyboard):
        new_shots = append_group(storyboard)
        assert [s.id for s in new_shots] == [9, 10, 11, 12]
        assert [s.id for s in storyboard.shots] == list(range(1, 13))
        assert {group_index_of(s.id) for s in new_shots} == {2}
        check_invariants(storyboard)

    def test_group_index_law(self):
        assert [group_index_of(i) for i in range(1, 10)] == [0, 0, 0, 0, 1, 1, 1, 1, 2]

    def test_shots_in_group(self, storyboard):
        g1 = shots_in_group(storyboard, 1)
        assert [s.id for s in g1] == [5, 6, 7, 8]
        assert len(g1) == SHOTS_PER_GROUP

    def test_unknown_group(self, storyboard):
        with pytest.raises(UnknownGroupError):
            shots_in_group(storyboard, 2)
        with pytest.raises(UnknownGroupError):
            shots_in_group(storyboard, -1)


class TestShotEdits:

    def test_set_content(self, storyboard):
        assert set_shot_field(storyboard, 4, "content", "A gull lands.") is True
        assert storyboard.shots[4].content == "A gull lands."
        assert set_shot_field(storyboard, 4, "content", "A gull lands.") is False

    def test_locked_content_is_noop(self, storyboard):
        toggle_lock(storyboard, 0)
        before = storyboard.shots[0].content
        assert set_shot_field(storyboard, 0, "content", "changed") is False
        assert storyboard.shots[0].content == before
        # other fields stay editable
        assert set_shot_field(storyboard, 0, "theme", "Wide Shot") is True

    def test_unknown_field(self, storyboard):
        with pytest.raises(InvalidFieldError):
            set_shot_field(storyboard, 0, "id", 99)

    def test_character_ids_deduplicated(self, storyboard):
        set_shot_field(storyboard, 0, "character_ids", ["nia", "kai", "nia"])
        assert storyboard.shots[0].character_ids == ["nia", "kai"]

    def test_toggle_character_drops_override(self, storyboard):
        select_character_image(storyboard, 0, "nia", "img-7")
        assert storyboard.shots[0].character_ids == ["nia"]
        assert storyboard.shots[0].selected_image_refs == {"nia": "img-7"}
        toggle_shot_character(storyboard, 0, "nia")
        assert storyboard.shots[0].character_ids == []
        assert storyboard.shots[0].selected_image_refs == {}

    def test_clear_image_selection(self, storyboard):
        select_character_image(storyboard, 0, "nia", "img-7")
        select_character_image(storyboard, 0, "nia", None)
        assert storyboard.shots[0].character_ids == ["nia"]
        assert storyboard.shots[0].selected_image_refs == {}


class TestInvariants:

    def test_gap_in_ids(self, storyboard):
        storyboard.shots[2].id = 42
        with pytest.raises(InvariantError):
            check_invariants(storyboard)

    def test_partial_group(self, storyboard):
        storyboard.shots.pop()
        with pytest.raises(InvariantError):
            check_invariants(storyboard)

    def test_current_image_in_history(self, storyboard):
        img = make_asset("a")
        storyboard.frames[0] = Frame(group_index=0, image=img, history=[img])
        with pytest.raises(InvariantError):
            check_invariants(storyboard)

    def test_history_overflow(self, storyboard):
        history = [make_asset(f"h{i}") for i in range(10)]
        storyboard.frames[0] = Frame(group_index=0, image=make_asset("cur"), history=history)
        with pytest.raises(AssertionError):
            check_invariants(storyboard)

    def test_frame_key_mismatch(self, storyboard):
        storyboard.frames[1] = Frame(group_index=0, image=make_asset("cur"))
        with pytest.raises(InvariantError):
            check_invariants(storyboard)
