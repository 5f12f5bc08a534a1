# cinema/image_jobs.py
# -*- coding: utf-8 -*-
"""
Turn a storyboard group into a generation request.

Reference order is fixed: scene, continuity (previous group), group-wide
character references, then shot-scoped character overrides. Nothing here
talks to the generation backend.
"""
from typing import List, Dict, Optional

from cinema.collaborators import CharacterLookup, SceneLookup
from cinema.data_models import (
    CharacterProfile, Frame, GenerationRequest, ImageAsset, NarrativeContext,
    ReferenceImage, ReferenceKind, Shot, Storyboard, SHOTS_PER_GROUP,
)
from cinema.exceptions import EmptyGroupError, InvalidPanelError, NothingToRefineError, ValidationError
from cinema.logging_config import get_logger
from cinema.prompt_builders import build_group_image_prompt, build_refine_prompt, narrative_block
from cinema.shots import shots_in_group
from cinema.text_utils import PLACEHOLDER_CONTENT, strip_shot_number

logger = get_logger("image_jobs")

SCENE_LABEL = "[SCENE MASTER REFERENCE] Use this exact location and style."
CONTINUITY_LABEL = "[PREVIOUS SEQUENCE IMAGE] Strictly match the lighting and colour grading of this image."
SOURCE_LABEL = "SOURCE IMAGE: current storyboard sheet."


def character_label(name: str) -> str:
    return f"[CHARACTER REFERENCE: {name}] Use this exact face, hair and clothing."


def shot_character_label(position: int, name: str) -> str:
    return f"[SPECIFIC REFERENCE FOR FRAME {position + 1} - Character: {name}] Use this image for this frame only."


# ====== 1) Shot script ======

def format_shot_line(position: int, shot: Shot, names: List[str]) -> str:
    content = strip_shot_number(shot.content) or PLACEHOLDER_CONTENT
    theme = f"[SHOT TYPE: {shot.theme}] " if shot.theme else ""
    if names:
        cast = f"[CHARACTERS IN SHOT: {', '.join(names)}] "
    else:
        cast = "[ENVIRONMENT ONLY (NO CHARACTERS)] "
    return f"Frame {position + 1}: {theme}{cast}{content}"


def format_group_script(shots: List[Shot], characters: CharacterLookup) -> str:
    lines = []
    for i, s in enumerate(shots):
        names = []
        for cid in s.character_ids:
            c = characters.get_character(cid)
            names.append(c.name if c else cid)
        lines.append(format_shot_line(i, s, names))
    return "\n".join(lines)


# ====== 2) References ======

def resolve_scene_reference(storyboard: Storyboard, group_index: int, scenes: SceneLookup) -> Optional[ImageAsset]:
    """Group override first, then the linked scene's main image."""
    override = storyboard.scene_overrides.get(group_index)
    if override is not None:
        return override
    if storyboard.scene_id:
        scene = scenes.get_scene(storyboard.scene_id)
        main = scene.main_image() if scene else None
        if main:
            return main.asset
    return None


def resolve_continuity_reference(storyboard: Storyboard, group_index: int) -> Optional[ImageAsset]:
    if group_index == 0:
        return None
    prev = storyboard.frames.get(group_index - 1)
    return prev.image if prev else None


def _shot_override(shot: Shot, character: CharacterProfile) -> Optional[ImageAsset]:
    image_id = shot.selected_image_refs.get(character.id)
    if not image_id:
        return None
    img = character.find_image(image_id)
    return img.asset if img else None


def character_references(shots: List[Shot], characters: CharacterLookup) -> List[ReferenceImage]:
    """
    Group-wide refs (first-appearance order) followed by shot-scoped overrides.
    A character gets a group-wide ref only if some shot shows it without an override.
    """
    order: List[str] = []
    profiles: Dict[str, CharacterProfile] = {}
    needs_default: Dict[str, bool] = {}
    scoped: List[ReferenceImage] = []

    for pos, shot in enumerate(shots):
        for cid in shot.character_ids:
            c = characters.get_character(cid)
            if c is None:
                logger.warning(f"Shot {shot.id} references unknown character '{cid}'")
                continue
            if cid not in profiles:
                profiles[cid] = c
                order.append(cid)
                needs_default[cid] = False
            override = _shot_override(shot, c)
            if override is None:
                needs_default[cid] = True
                continue
            scoped.append(ReferenceImage(
                kind=ReferenceKind.SHOT_CHARACTER,
                label=shot_character_label(pos, c.name),
                asset=override,
                character_id=cid,
                character_name=c.name,
                shot_position=pos,
            ))

    group_wide = []
    for cid in order:
        if not needs_default[cid]:
            continue
        c = profiles[cid]
        img = c.default_reference_image()
        if img is None:
            continue
        group_wide.append(ReferenceImage(
            kind=ReferenceKind.CHARACTER,
            label=character_label(c.name),
            asset=img.asset,
            character_id=cid,
            character_name=c.name,
        ))
    return group_wide + scoped


# ====== 3) Requests ======

def compose_group_request(
    storyboard: Storyboard,
    group_index: int,
    context: Optional[NarrativeContext],
    characters: CharacterLookup,
    scenes: SceneLookup,
    quality_tier: str = "4K",
) -> GenerationRequest:
    shots = shots_in_group(storyboard, group_index)
    if all(s.is_blank for s in shots):
        raise EmptyGroupError(group_index)

    ctx = context or NarrativeContext()
    if storyboard.visual_style and not ctx.visual_style:
        ctx = ctx.model_copy(update={"visual_style": storyboard.visual_style})

    references: List[ReferenceImage] = []
    scene = resolve_scene_reference(storyboard, group_index, scenes)
    if scene is not None:
        references.append(ReferenceImage(kind=ReferenceKind.SCENE, label=SCENE_LABEL, asset=scene))
    continuity = resolve_continuity_reference(storyboard, group_index)
    if continuity is not None:
        references.append(ReferenceImage(kind=ReferenceKind.CONTINUITY, label=CONTINUITY_LABEL, asset=continuity))
    references.extend(character_references(shots, characters))

    script = format_group_script(shots, characters)
    prompt = build_group_image_prompt(
        narrative_block(ctx, storyboard.scene_summary),
        script,
        aspect_ratio=storyboard.aspect_ratio,
        has_continuity=continuity is not None,
        visual_style=ctx.visual_style,
    )
    logger.debug(f"Composed group {group_index} | refs={[r.kind.value for r in references]}")
    return GenerationRequest(
        prompt=prompt,
        references=references,
        aspect_ratio=storyboard.aspect_ratio,
        quality_tier=quality_tier,
        group_index=group_index,
        description=script,
    )


def compose_refine_request(
    frame: Optional[Frame],
    panel_number: int,
    instruction: str,
    aspect_ratio: str = "16:9",
    quality_tier: str = "4K",
) -> GenerationRequest:
    """Edit one panel (1-based) of the current composite; the source image is attached."""
    if panel_number < 1 or panel_number > SHOTS_PER_GROUP:
        raise InvalidPanelError(panel_number, SHOTS_PER_GROUP)
    if not (instruction or "").strip():
        raise ValidationError("Refine instruction is empty", {"panel_number": panel_number})
    if frame is None or frame.image is None:
        raise NothingToRefineError(frame.group_index if frame else -1)

    return GenerationRequest(
        prompt=build_refine_prompt(panel_number, instruction.strip()),
        references=[ReferenceImage(kind=ReferenceKind.SOURCE, label=SOURCE_LABEL, asset=frame.image)],
        aspect_ratio=aspect_ratio,
        quality_tier=quality_tier,
        group_index=frame.group_index,
        description=frame.description,
    )
