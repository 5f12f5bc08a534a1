from typing import Optional, List

from cinema.data_models import CharacterProfile


def character_bible_text(
    characters: List[CharacterProfile],
    only_ids: Optional[List[str]] = None,
) -> str:
    """
    Render the CHARACTER BIBLE block for script prompts; if only_ids is given, filter by it.
    """
    chosen = list(characters or [])
    if only_ids is not None:
        wanted = set(only_ids)
        chosen = [c for c in chosen if c.id in wanted]

    if not chosen:
        return "No specific character profiles provided."

    lines = []
    for c in chosen:
        lines.append(f"[CHARACTER: {c.name}]")
        if c.summary:
            lines.append(f"- Summary: {c.summary}")
        lines.append(f"- Visual description (official look): {c.appearance or 'unspecified'}")
        if c.personality:
            lines.append(f"- Personality / behaviour: {c.personality}")
    return "\n".join(lines)
