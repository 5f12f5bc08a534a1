import re
from typing import List, NamedTuple

from cinema.data_models import Shot, SHOTS_PER_GROUP

LEGACY_LINE = re.compile(r"^(\d+)\.\s*(?:\[(.*?)\]\s*)?(.*)")
SHOT_NUMBER = re.compile(r"^\d+[\.:：]\s*")

PLACEHOLDER_CONTENT = "Static shot. No specific action."


class LegacyParse(NamedTuple):
    shots: List[Shot]
    preamble: str


def _safe_name(s: str) -> str:
    s = re.sub(r"[^\w\- ]+", "", s, flags=re.U)
    return s.strip().replace(" ", "_")[:60]


def strip_shot_number(text: str) -> str:
    """Drop a leading "3." / "3:" numbering the writer (or the model) added."""
    return SHOT_NUMBER.sub("", (text or "").strip()).strip()


def parse_legacy_shot_list(text: str) -> LegacyParse:
    """
    Upgrade a free-text shot list ("1. [Close-up] She turns ...") to shots.

    Numbered lines become shots; unnumbered lines after a shot are appended to
    it, unnumbered lines before the first shot are returned as the preamble.
    Missing numbers are filled with empty shots and the list is padded to a
    multiple of SHOTS_PER_GROUP. Text without any numbered line becomes one shot.
    """
    text = (text or "").strip()
    if not text:
        return LegacyParse([Shot(id=i + 1) for i in range(SHOTS_PER_GROUP)], "")

    by_number = {}
    preamble = []
    current = None
    for raw in text.splitlines():
        line = raw.strip()
        if not line:
            continue
        m = LEGACY_LINE.match(line)
        if m and int(m.group(1)) >= 1:
            n = int(m.group(1))
            current = {"theme": (m.group(2) or "").strip(), "content": m.group(3).strip()}
            by_number[n] = current
        elif current is not None:
            current["content"] = f"{current['content']}\n{line}".strip()
        else:
            preamble.append(line)

    if not by_number:
        shots = [Shot(id=1, content=text)]
        shots += [Shot(id=i + 2) for i in range(SHOTS_PER_GROUP - 1)]
        return LegacyParse(shots, "")

    highest = max(by_number)
    total = highest + (-highest % SHOTS_PER_GROUP)
    shots = []
    for i in range(1, total + 1):
        item = by_number.get(i)
        if item:
            shots.append(Shot(id=i, theme=item["theme"], content=item["content"]))
        else:
            shots.append(Shot(id=i))
    return LegacyParse(shots, "\n".join(preamble))


def format_shot_list(shots: List[Shot]) -> str:
    """Inverse of parse_legacy_shot_list; written alongside structured shots."""
    lines = []
    for s in shots:
        theme = f"[{s.theme}] " if s.theme else ""
        lines.append(f"{s.id}. {theme}{s.content}".rstrip())
    return "\n".join(lines)
