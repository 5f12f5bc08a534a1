"""
Text drafting for shot descriptions.

draft_group_script fills the unlocked shots of one group from a single text
model call; polish_shot rewrites one unlocked shot.
"""
from typing import List, Optional

from cinema.character_bible import character_bible_text
from cinema.data_models import CharacterProfile, NarrativeContext, Storyboard, SHOTS_PER_GROUP
from cinema.exceptions import ScriptGenerationError, ShotLockedError, ValidationError
from cinema.gemini_helpers import gemini_json, gemini_text
from cinema.logging_config import get_logger
from cinema.prompt_builders import build_polish_prompt, build_script_prompt, narrative_block
from cinema.shots import group_range, shots_in_group
from cinema.text_utils import strip_shot_number

logger = get_logger("script_writer")

FILLER_SHOT = "[Detail] Continue action..."


def _as_list(data) -> List[str]:
    # Models sometimes wrap the array in an object
    if isinstance(data, dict):
        for key in ("shots", "frames"):
            if isinstance(data.get(key), list):
                data = data[key]
                break
        else:
            if "raw" in data:
                raise ScriptGenerationError("Text model did not return JSON", {"raw": str(data["raw"])[:200]})
            data = list(data.values())
    if not isinstance(data, list):
        raise ScriptGenerationError("Text model returned a non-array answer", {"type": type(data).__name__})
    return [item if isinstance(item, str) else str(item) for item in data]


def normalize_shot_texts(data, count: int = SHOTS_PER_GROUP) -> List[str]:
    """Pad or truncate to exactly `count` strings, numbering stripped."""
    items = _as_list(data)[:count]
    while len(items) < count:
        items.append(FILLER_SHOT)
    return [strip_shot_number(s) or FILLER_SHOT for s in items]


def request_group_script(
    model,
    storyboard: Storyboard,
    group_index: int,
    context: Optional[NarrativeContext] = None,
    characters: Optional[List[CharacterProfile]] = None,
    rough_plot: str = "",
) -> List[str]:
    """One text model call; returns exactly G shot texts for the group."""
    group = shots_in_group(storyboard, group_index)
    previous = storyboard.shots[:group_range(group_index).start]
    prompt = build_script_prompt(
        narrative_block(context, storyboard.scene_summary),
        storyboard.title,
        character_bible_text(characters or [], storyboard.participating_character_ids or None),
        previous,
        group,
        rough_plot=rough_plot,
    )
    return normalize_shot_texts(gemini_json(model, prompt), len(group))


def apply_group_script(storyboard: Storyboard, group_index: int, texts: List[str]) -> List[int]:
    """Write texts into the unlocked shots of the group; returns the changed shot ids."""
    changed = []
    for shot, text in zip(shots_in_group(storyboard, group_index), texts):
        if shot.locked or shot.content == text:
            continue
        shot.content = text
        changed.append(shot.id)
    logger.info(f"Drafted group {group_index} | changed shots {changed}")
    return changed


def draft_group_script(
    model,
    storyboard: Storyboard,
    group_index: int,
    context: Optional[NarrativeContext] = None,
    characters: Optional[List[CharacterProfile]] = None,
    rough_plot: str = "",
) -> List[int]:
    """
    Ask the text model for the group's shots and write them into the unlocked
    shots. Returns the ids of the shots that changed. Locked shots are untouched.
    """
    texts = request_group_script(model, storyboard, group_index, context, characters, rough_plot)
    return apply_group_script(storyboard, group_index, texts)


def _polish_target(storyboard: Storyboard, shot_index: int):
    if shot_index < 0 or shot_index >= len(storyboard.shots):
        raise ValidationError(f"Shot index {shot_index} out of range", {"shot_index": shot_index})
    shot = storyboard.shots[shot_index]
    if shot.locked:
        raise ShotLockedError(shot.id)
    if shot.is_blank:
        raise ValidationError(f"Shot {shot.id} has no content to polish", {"shot_id": shot.id})
    return shot


def request_polish(model, storyboard: Storyboard, shot_index: int, context: Optional[NarrativeContext] = None) -> str:
    shot = _polish_target(storyboard, shot_index)
    text = strip_shot_number(gemini_text(model, build_polish_prompt(narrative_block(context), shot.content)))
    text = text.strip().strip('"').strip()
    if not text:
        raise ScriptGenerationError("Text model returned an empty rewrite", {"shot_id": shot.id})
    return text


def apply_polish(storyboard: Storyboard, shot_index: int, text: str) -> str:
    # the shot may have been locked while the model was answering
    shot = _polish_target(storyboard, shot_index)
    shot.content = text
    return text


def polish_shot(model, storyboard: Storyboard, shot_index: int, context: Optional[NarrativeContext] = None) -> str:
    """Rewrite one shot more cinematically; returns the new content."""
    return apply_polish(storyboard, shot_index, request_polish(model, storyboard, shot_index, context))
