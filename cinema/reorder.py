"""
Swap a group with its neighbour: shots, frames (with history) and scene
overrides move together, and shot ids are renumbered 1..N.
"""

from typing import Dict

from cinema.data_models import Frame, ImageAsset, Storyboard
from cinema.exceptions import ReorderBoundaryError, ValidationError
from cinema.logging_config import get_logger
from cinema.shots import check_invariants, group_count, group_range, require_group

logger = get_logger("reorder")

DIRECTIONS = {"up": -1, "down": 1}


def target_index(storyboard: Storyboard, group_index: int, direction: str) -> int:
    if direction not in DIRECTIONS:
        raise ValidationError(f"Unknown direction '{direction}'", {"direction": direction})
    require_group(storyboard, group_index)
    target = group_index + DIRECTIONS[direction]
    if target < 0 or target >= group_count(storyboard):
        raise ReorderBoundaryError(group_index, direction)
    return target


def _swap_keys(mapping: Dict[int, object], a: int, b: int) -> Dict[int, object]:
    out = {k: v for k, v in mapping.items() if k not in (a, b)}
    if a in mapping:
        out[b] = mapping[a]
    if b in mapping:
        out[a] = mapping[b]
    return out


def move_group(storyboard: Storyboard, group_index: int, direction: str) -> int:
    """
    Move a group one slot "up" or "down". Returns the group's new index.
    At either end a ReorderBoundaryError is raised and nothing changes.
    """
    target = target_index(storyboard, group_index, direction)
    a, b = sorted((group_index, target))
    ra, rb = group_range(a), group_range(b)

    # compute everything first, then assign together
    shots = list(storyboard.shots)
    shots[ra.start:ra.stop], shots[rb.start:rb.stop] = shots[rb.start:rb.stop], shots[ra.start:ra.stop]
    shots = [s.model_copy(update={"id": i + 1}, deep=True) for i, s in enumerate(shots)]

    frames: Dict[int, Frame] = _swap_keys(storyboard.frames, a, b)
    frames = {k: (f if f.group_index == k else f.model_copy(update={"group_index": k})) for k, f in frames.items()}

    overrides: Dict[int, ImageAsset] = _swap_keys(storyboard.scene_overrides, a, b)

    storyboard.shots = shots
    storyboard.frames = dict(sorted(frames.items()))
    storyboard.scene_overrides = dict(sorted(overrides.items()))
    check_invariants(storyboard)

    logger.info(f"Moved group {group_index} {direction} -> {target}")
    return target
