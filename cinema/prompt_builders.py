# -*- coding: utf-8 -*-
from typing import Optional, List

from cinema.data_models import NarrativeContext, Shot, SHOTS_PER_GROUP
from cinema.presets import preset_block, style_line


def narrative_block(context: Optional[NarrativeContext], scene_summary: str = "") -> str:
    """Universe / story / scene lines; empty parts are skipped."""
    ctx = context or NarrativeContext()
    lines = []
    if ctx.universe_name:
        kind = f" ({ctx.universe_type})" if ctx.universe_type else ""
        lines.append(f"Universe: {ctx.universe_name}{kind}")
    if ctx.universe_rules:
        lines.append(f"World rules: {ctx.universe_rules}")
    if ctx.story_title:
        lines.append(f"Story: {ctx.story_title}")
    if ctx.visual_style:
        lines.append(f"Visual style: {style_line(ctx.visual_style)}")
    if scene_summary:
        lines.append(f"Scene: {scene_summary}")
    if ctx.full_script:
        lines.append(f"Story notes: {ctx.full_script}")
    return "\n".join(lines)


def build_group_image_prompt(
    context_text: str,
    shot_script: str,
    aspect_ratio: str = "16:9",
    has_continuity: bool = False,
    visual_style: str = "",
) -> str:
    """
    Prompt for one composite image: a 2x2 grid with one panel per shot.
    Reference images are attached after this text, each behind its own label.
    """
    continuity = (
        "- CROSS-SEQUENCE CONTINUITY: match the lighting, colour temperature, contrast and "
        "atmosphere of the [PREVIOUS SEQUENCE IMAGE]; the new panels belong to the same scene."
        if has_continuity else ""
    )
    style = preset_block(visual_style)
    return f"""
Role: Storyboard drawing master.
Task: Create a single image containing a 2x2 grid of {SHOTS_PER_GROUP} storyboard frames.

[LAYOUT RULES]
1. Exactly 2 rows and 2 columns.
2. Each frame inside the grid has a {aspect_ratio} aspect ratio; all frames share size and alignment.
3. No frame numbers, captions or UI overlays. Text that exists inside the scene is allowed.

[VISUAL CONSISTENCY]
- Consistent lighting and mood across all frames.
{continuity}
{style}

[SPATIAL CONTINUITY]
1. 180-degree rule: characters keep their screen side unless a movement is described.
2. Background landmarks stay fixed relative to the camera.
3. Action flows logically from Frame 1 to Frame {SHOTS_PER_GROUP}.

[REFERENCES]
- SCENE: use the exact environment of the [SCENE MASTER REFERENCE] if provided.
- CHARACTERS: reproduce the face, hair and clothing of every [CHARACTER REFERENCE]; a
  [SPECIFIC REFERENCE FOR FRAME n] overrides the general reference for that frame only.

[PLOT / CONTEXT]
{context_text}

[SHOT DESCRIPTIONS - SOURCE OF TRUTH]
Draw only these frames, in order. Characters named in a shot must appear in it;
an ENVIRONMENT ONLY shot has no characters.

{shot_script}

Output: a single image.
""".strip()


def build_refine_prompt(panel_number: int, instruction: str) -> str:
    return f"""
Role: Storyboard editor.
Task: Edit the attached storyboard grid image.

[EDIT TARGET]
Frame {panel_number} of the 2x2 grid (frames numbered 1-{SHOTS_PER_GROUP}, left to right, top to bottom).

[INSTRUCTION]
{instruction}

[CONSTRAINTS]
1. Every other frame stays pixel-identical to the source image.
2. Only frame {panel_number} is redrawn.
3. Keep the 2x2 layout and aspect ratios; add no frame numbers or overlays.
4. The edited frame matches the art style of the rest of the sheet.

Output: the updated image.
""".strip()


def build_script_prompt(
    context_text: str,
    scene_title: str,
    character_bible: str,
    previous_shots: List[Shot],
    group_shots: List[Shot],
    rough_plot: str = "",
) -> str:
    """
    Ask the text model for one description per shot of a group.
    Result: JSON array of exactly len(group_shots) strings.
    """
    count = len(group_shots)
    start = group_shots[0].id if group_shots else 1
    prev = "\n".join(f"Shot {s.id}: {s.content}" for s in previous_shots if s.content.strip())
    locked = "\n".join(f"Shot {s.id}: {s.content}" for s in group_shots if s.locked)
    themes = "\n".join(f"Shot {s.id} theme: {s.theme or 'Open/Auto'}" for s in group_shots)
    rough = f"Rough concept: {rough_plot}\n" if rough_plot else ""
    return f"""
You are a film director and cinematographer writing a {count}-shot storyboard script.

{context_text}
Scene title: {scene_title}
{rough}
[CHARACTER BIBLE]
{character_bible}

[PREVIOUS SHOTS]
{prev or "None (start of scene)"}

[LOCKED SHOTS - DO NOT CHANGE]
{locked or "None"}

[SHOT THEMES]
{themes}

[INSTRUCTIONS]
- Use professional camera language (low angle, rack focus, silhouette ...).
- Describe the body pose and action of every main character in every shot.
- Characters match their bible description and personality.
- Locked shots are returned exactly as given.
- Keep continuity with the previous shots.

Write shots #{start} to #{start + count - 1}.
Return ONLY a JSON array of {count} strings, no markdown.
""".strip()


def build_polish_prompt(context_text: str, content: str) -> str:
    return f"""
You are an award-winning screenwriter. Rewrite this single shot description to be more
cinematic and visual: lighting, camera angle, composition, micro-expressions, body language.
Keep it under 60 words. Return only the new description.

{context_text}

Current shot: "{content}"
""".strip()
