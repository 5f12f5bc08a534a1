"""
Shot list editing and group partitioning.

Shots are numbered 1..N and N is always a multiple of SHOTS_PER_GROUP; group g
covers shot ids g*G+1 .. g*G+G. Groups are derived, never stored.
"""

from typing import List, Any

from cinema.data_models import Storyboard, Shot, SHOTS_PER_GROUP, HISTORY_LIMIT
from cinema.exceptions import InvalidFieldError, UnknownGroupError, InvariantError, ValidationError
from cinema.logging_config import get_logger

logger = get_logger("shots")

EDITABLE_FIELDS = ("theme", "content", "character_ids", "selected_image_refs")


def group_index_of(shot_id: int) -> int:
    return (shot_id - 1) // SHOTS_PER_GROUP


def group_count(storyboard: Storyboard) -> int:
    return len(storyboard.shots) // SHOTS_PER_GROUP


def group_range(group_index: int) -> range:
    """Positions (0-based list indices) of the shots in a group."""
    start = group_index * SHOTS_PER_GROUP
    return range(start, start + SHOTS_PER_GROUP)


def require_group(storyboard: Storyboard, group_index: int) -> None:
    count = group_count(storyboard)
    if group_index < 0 or group_index >= count:
        raise UnknownGroupError(group_index, count)


def shots_in_group(storyboard: Storyboard, group_index: int) -> List[Shot]:
    require_group(storyboard, group_index)
    r = group_range(group_index)
    return storyboard.shots[r.start:r.stop]


def blank_shots(first_id: int, count: int = SHOTS_PER_GROUP) -> List[Shot]:
    return [Shot(id=first_id + i) for i in range(count)]


def append_group(storyboard: Storyboard) -> List[Shot]:
    """Append G unlocked empty shots continuing the id sequence."""
    next_id = max((s.id for s in storyboard.shots), default=0) + 1
    new_shots = blank_shots(next_id)
    storyboard.shots.extend(new_shots)
    logger.debug(f"Appended group {group_index_of(next_id)} | shots {next_id}..{next_id + SHOTS_PER_GROUP - 1}")
    return new_shots


def _shot_at(storyboard: Storyboard, shot_index: int) -> Shot:
    if shot_index < 0 or shot_index >= len(storyboard.shots):
        raise ValidationError(f"Shot index {shot_index} out of range", {"shot_index": shot_index})
    return storyboard.shots[shot_index]


def set_shot_field(storyboard: Storyboard, shot_index: int, field: str, value: Any) -> bool:
    """
    Update one field of a shot in place. Returns whether anything changed.
    Content of a locked shot is left alone.
    """
    if field not in EDITABLE_FIELDS:
        raise InvalidFieldError(field)
    shot = _shot_at(storyboard, shot_index)
    if shot.locked and field == "content":
        logger.debug(f"Shot {shot.id} is locked; content edit ignored")
        return False

    if field == "character_ids":
        # ordered, duplicate free
        value = list(dict.fromkeys(value or []))
    elif field == "selected_image_refs":
        value = dict(value or {})
    else:
        value = value or ""

    if getattr(shot, field) == value:
        return False
    setattr(shot, field, value)
    return True


def toggle_lock(storyboard: Storyboard, shot_index: int) -> bool:
    shot = _shot_at(storyboard, shot_index)
    shot.locked = not shot.locked
    return shot.locked


def toggle_shot_character(storyboard: Storyboard, shot_index: int, character_id: str) -> List[str]:
    """Add or remove a character from a shot; removing also drops its image override."""
    shot = _shot_at(storyboard, shot_index)
    if character_id in shot.character_ids:
        shot.character_ids = [c for c in shot.character_ids if c != character_id]
        shot.selected_image_refs.pop(character_id, None)
    else:
        shot.character_ids = shot.character_ids + [character_id]
    return shot.character_ids


def select_character_image(storyboard: Storyboard, shot_index: int, character_id: str, image_id: str = None) -> None:
    """Pin a gallery image of a character for this shot only; None clears the pin."""
    shot = _shot_at(storyboard, shot_index)
    if not image_id:
        shot.selected_image_refs.pop(character_id, None)
        return
    if character_id not in shot.character_ids:
        shot.character_ids = shot.character_ids + [character_id]
    shot.selected_image_refs[character_id] = image_id


def check_invariants(storyboard: Storyboard) -> None:
    ids = [s.id for s in storyboard.shots]
    if ids != list(range(1, len(ids) + 1)):
        raise InvariantError(f"Shot ids are not contiguous: {ids}")
    if len(ids) % SHOTS_PER_GROUP:
        raise InvariantError(f"Shot count {len(ids)} is not a multiple of {SHOTS_PER_GROUP}")

    for key, frame in storyboard.frames.items():
        if frame.group_index != key:
            raise InvariantError(f"Frame keyed {key} reports group {frame.group_index}")
        if len(frame.history) > HISTORY_LIMIT:
            raise InvariantError(f"Group {key} history has {len(frame.history)} entries")
        refs = [h.ref for h in frame.history]
        if len(set(refs)) != len(refs):
            raise InvariantError(f"Group {key} history has duplicate entries")
        if frame.image is not None and frame.image.ref in refs:
            raise InvariantError(f"Group {key} current image is also in its history")
