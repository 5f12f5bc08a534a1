# -*- coding: utf-8 -*-
import json
import os
from pathlib import Path
from typing import Any, Dict, List, Optional

from pydantic import ValidationError as ModelValidationError

from cinema.data_models import Storyboard, HISTORY_LIMIT, SHOTS_PER_GROUP
from cinema.exceptions import PersistenceError
from cinema.logging_config import get_logger
from cinema.text_utils import _safe_name, format_shot_list, parse_legacy_shot_list

logger = get_logger("storyboard_io")

# camelCase records written by the browser version of the studio
_SHOT_KEYS = {
    "isLocked": "locked",
    "characterIds": "character_ids",
    "selectedImageIds": "selected_image_refs",
}
_BOARD_KEYS = {
    "storyEggId": "story_egg_id",
    "universeId": "universe_id",
    "sceneSummary": "scene_summary",
    "participatingCharacterIds": "participating_character_ids",
    "sceneId": "scene_id",
    "aspectRatio": "aspect_ratio",
    "visualStyle": "visual_style",
    "createdAt": "created_at",
    "groupSceneOverrides": "scene_overrides",
    "plotSummary": "plot_summary",
}


def _rename(d: Dict[str, Any], keys: Dict[str, str]) -> Dict[str, Any]:
    out = {}
    for k, v in d.items():
        out[keys.get(k, k)] = v
    return out


def _asset(value) -> Optional[Dict[str, Any]]:
    if not value:
        return None
    if isinstance(value, dict):
        return value
    return {"uri": value}


def _migrate_frame(raw: Dict[str, Any], key: int) -> Dict[str, Any]:
    f = dict(raw or {})
    if "imageUrl" in f:
        f["image"] = _asset(f.pop("imageUrl"))
    if "imageHistory" in f:
        f["history"] = [_asset(u) for u in f.pop("imageHistory") or [] if u][:HISTORY_LIMIT]
    if "groupIndex" in f:
        f["group_index"] = f.pop("groupIndex")
    f["group_index"] = key
    for legacy in ("id", "shotType", "cameraMovement", "prompt"):
        f.pop(legacy, None)
    if "description" not in f:
        f["description"] = ""
    return f


def _migrate_storyboard_dict(data: Dict[str, Any]) -> Dict[str, Any]:
    """
    Bring any stored shape up to the current model: camelCase browser records,
    frames stored as a list, and legacy plot_summary-only shot lists.
    """
    data = _rename(dict(data or {}), _BOARD_KEYS)
    data.setdefault("title", "")

    shots = [_rename(dict(s or {}), _SHOT_KEYS) for s in data.get("shots") or []]
    plot_summary = data.pop("plot_summary", "") or ""
    if not shots and plot_summary.strip():
        shots = [s.model_dump() for s in parse_legacy_shot_list(plot_summary).shots]
    if not shots:
        shots = [{"id": i + 1} for i in range(SHOTS_PER_GROUP)]
    # renumber and pad so ids are 1..N with N a multiple of the group size
    while len(shots) % SHOTS_PER_GROUP:
        shots.append({})
    for i, s in enumerate(shots, start=1):
        s["id"] = i
    data["shots"] = shots

    frames = data.get("frames") or {}
    if isinstance(frames, list):
        frames = {(f or {}).get("groupIndex", (f or {}).get("group_index", i)): f for i, f in enumerate(frames) if f}
    data["frames"] = {int(k): _migrate_frame(f, int(k)) for k, f in frames.items() if f}
    data["frames"] = {k: f for k, f in data["frames"].items() if f.get("image") or f.get("history")}

    overrides = data.get("scene_overrides") or {}
    data["scene_overrides"] = {int(k): _asset(v) for k, v in overrides.items() if v}
    return data


class JsonStoryboardStore:
    """One JSON file per storyboard under `data_dir`."""

    def __init__(self, data_dir: Path):
        self.data_dir = Path(data_dir)
        self.data_dir.mkdir(parents=True, exist_ok=True)

    def path_for(self, storyboard_id: str) -> Path:
        return self.data_dir / f"{_safe_name(storyboard_id) or 'storyboard'}.json"

    def save(self, storyboard: Storyboard) -> Path:
        f = self.path_for(storyboard.id)
        payload = storyboard.model_dump(mode="json")
        payload["plot_summary"] = format_shot_list(storyboard.shots)
        tmp = f.with_suffix(".json.tmp")
        try:
            with tmp.open("w", encoding="utf-8") as fp:
                json.dump(payload, fp, ensure_ascii=False, indent=2)
            os.replace(tmp, f)
        except OSError as e:
            tmp.unlink(missing_ok=True)
            raise PersistenceError(f"Could not write storyboard {storyboard.id}", {"path": str(f), "error": str(e)}) from e
        logger.debug(f"Saved storyboard {storyboard.id} -> {f}")
        return f

    def load(self, storyboard_id: str) -> Optional[Storyboard]:
        f = self.path_for(storyboard_id)
        if not f.exists():
            return None
        return self.load_path(f)

    def load_path(self, path: Path) -> Storyboard:
        p = Path(path)
        if not p.is_absolute():
            p = self.data_dir / p
        try:
            with p.open("r", encoding="utf-8") as fp:
                raw = json.load(fp)
        except (OSError, ValueError) as e:
            raise PersistenceError(f"Could not read {p.name}", {"path": str(p), "error": str(e)}) from e
        logger.debug(f"Loading storyboard from {p}")
        try:
            return Storyboard.model_validate(_migrate_storyboard_dict(raw))
        except ModelValidationError as e:
            raise PersistenceError(f"Stored storyboard {p.name} is malformed", {"path": str(p), "error": str(e)}) from e

    def list_ids(self) -> List[str]:
        return sorted(f.stem for f in self.data_dir.glob("*.json"))
