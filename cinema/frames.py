"""
Frame / version store.

Per group: the current composite image plus up to HISTORY_LIMIT superseded
versions, most recent first. Generation is single-flight per group; a result
that lands after its group was reset is discarded.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Dict, Optional, Set

from cinema.collaborators import ImageGenerator
from cinema.data_models import Frame, GenerationRequest, ImageAsset, RefineResult, Storyboard, HISTORY_LIMIT
from cinema.exceptions import (
    GenerationError, GroupBusyError, HistoryEntryNotFoundError, NothingToRefineError, StaleGenerationError,
)
from cinema.image_jobs import compose_refine_request
from cinema.logging_config import get_logger
from cinema.shots import check_invariants, require_group

logger = get_logger("frames")


class GroupState(str, Enum):
    EMPTY = "empty"
    GENERATING = "generating"
    CURRENT = "current"


# ===================== Pure history helpers =====================

def push_history(frame: Frame, asset: Optional[ImageAsset]) -> None:
    """Put `asset` at the front of the history, dropping the oldest beyond the limit."""
    if asset is None:
        return
    rest = [h for h in frame.history if h.ref != asset.ref]
    frame.history = ([asset] + rest)[:HISTORY_LIMIT]


def install_image(storyboard: Storyboard, group_index: int, asset: ImageAsset, description: str = None) -> Optional[ImageAsset]:
    """Make `asset` current for the group; the replaced image (returned) goes to history."""
    frame = storyboard.frames.get(group_index)
    if frame is None:
        frame = Frame(group_index=group_index)
        storyboard.frames[group_index] = frame
    previous = frame.image
    push_history(frame, previous)
    frame.history = [h for h in frame.history if h.ref != asset.ref]
    frame.image = asset
    if description is not None:
        frame.description = description
    frame.updated_at = datetime.now(timezone.utc)
    return previous


def restore_from_history(storyboard: Storyboard, group_index: int, ref: str) -> ImageAsset:
    """Swap history entry `ref` into the current slot; the old current goes to the front."""
    frame = storyboard.frames.get(group_index)
    if frame is None:
        raise HistoryEntryNotFoundError(group_index, ref)
    chosen = next((h for h in frame.history if h.ref == ref), None)
    if chosen is None:
        raise HistoryEntryNotFoundError(group_index, ref)

    rest = [h for h in frame.history if h.ref != ref]
    if frame.image is not None:
        rest = [frame.image] + rest
    frame.history = rest[:HISTORY_LIMIT]
    frame.image = chosen
    frame.updated_at = datetime.now(timezone.utc)
    return chosen


# ===================== Store =====================

class FrameStore:
    """
    Drives generation and refinement for the groups of one storyboard.

    `compose` builds the generation request for a group index; it is expected
    to raise a ValidationError for groups that cannot be drawn.
    """

    def __init__(
        self,
        storyboard: Storyboard,
        generator: ImageGenerator,
        compose: Callable[[int], GenerationRequest],
        quality_tier: str = "4K",
    ):
        self.storyboard = storyboard
        self.generator = generator
        self.compose = compose
        self.quality_tier = quality_tier
        self._in_flight: Set[int] = set()
        self._epochs: Dict[int, int] = {}

    # ---- state ----

    def is_busy(self, group_index: int) -> bool:
        return group_index in self._in_flight

    def state(self, group_index: int) -> GroupState:
        if group_index in self._in_flight:
            return GroupState.GENERATING
        frame = self.storyboard.frames.get(group_index)
        if frame is not None and frame.image is not None:
            return GroupState.CURRENT
        return GroupState.EMPTY

    def epoch(self, group_index: int) -> int:
        return self._epochs.get(group_index, 0)

    def invalidate(self, group_index: int) -> None:
        """Any generation already running for this group will be discarded."""
        self._epochs[group_index] = self.epoch(group_index) + 1

    def _ensure_idle(self, group_index: int) -> None:
        if group_index in self._in_flight:
            raise GroupBusyError(group_index)

    async def _run(self, group_index: int, request: GenerationRequest) -> ImageAsset:
        started_epoch = self.epoch(group_index)
        self._in_flight.add(group_index)
        try:
            asset = await self.generator.generate(request)
        except GenerationError as e:
            logger.error(f"Generation failed | group={group_index} | code={e.code.value} | {e.reason}")
            raise
        finally:
            self._in_flight.discard(group_index)

        if self.epoch(group_index) != started_epoch:
            logger.warning(f"Discarding late result for group {group_index} (reset while generating)")
            raise StaleGenerationError(group_index)
        return asset

    # ---- operations ----

    async def generate_for_group(self, group_index: int) -> ImageAsset:
        require_group(self.storyboard, group_index)
        self._ensure_idle(group_index)
        request = self.compose(group_index)

        logger.info(f"Generating group {group_index}")
        asset = await self._run(group_index, request)
        install_image(self.storyboard, group_index, asset, request.description)
        check_invariants(self.storyboard)
        return asset

    async def refine_panel(self, group_index: int, panel_number: int, instruction: str) -> RefineResult:
        require_group(self.storyboard, group_index)
        self._ensure_idle(group_index)
        frame = self.storyboard.frames.get(group_index)
        if frame is None or frame.image is None:
            raise NothingToRefineError(group_index)
        request = compose_refine_request(
            frame, panel_number, instruction,
            aspect_ratio=self.storyboard.aspect_ratio,
            quality_tier=self.quality_tier,
        )
        source = frame.image

        logger.info(f"Refining group {group_index} panel {panel_number}")
        asset = await self._run(group_index, request)
        install_image(self.storyboard, group_index, asset)
        check_invariants(self.storyboard)
        return RefineResult(current=asset, previous=source)

    def compare_and_restore(self, group_index: int, ref: str) -> ImageAsset:
        require_group(self.storyboard, group_index)
        self._ensure_idle(group_index)
        restored = restore_from_history(self.storyboard, group_index, ref)
        check_invariants(self.storyboard)
        logger.info(f"Restored version {ref} for group {group_index}")
        return restored
