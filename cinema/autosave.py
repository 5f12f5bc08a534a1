"""
Autosave coordinator.

Each durable mutation hands a snapshot of the storyboard to the store. Saves
are not coalesced (last write wins); a failed save is logged and reported but
the in-memory storyboard is never rolled back.
"""

import asyncio
from datetime import datetime, timezone
from typing import Callable, List, Optional, Set

from cinema.collaborators import StoryboardStore
from cinema.data_models import Storyboard
from cinema.logging_config import get_logger

logger = get_logger("autosave")


class AutosaveCoordinator:

    def __init__(
        self,
        store: StoryboardStore,
        on_failure: Optional[Callable[[Storyboard, Exception], None]] = None,
    ):
        self.store = store
        self.on_failure = on_failure
        self.failures: List[Exception] = []
        self.last_saved_at: Optional[datetime] = None
        self.saves_completed = 0
        self._pending: Set[asyncio.Task] = set()

    def request_save(self, storyboard: Storyboard) -> Optional[asyncio.Task]:
        """
        Snapshot now, persist in the background. Returns the task, or None when
        the save ran inline (no event loop) or was skipped (untitled storyboard).
        """
        if not storyboard.title.strip():
            logger.debug(f"Skipping autosave of untitled storyboard {storyboard.id}")
            return None
        snapshot = storyboard.model_copy(deep=True)

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            self._save(snapshot)
            return None

        task = loop.create_task(asyncio.to_thread(self._save, snapshot))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    def _save(self, snapshot: Storyboard) -> None:
        try:
            self.store.save(snapshot)
        except Exception as e:
            # reported, never raised
            logger.error(f"Autosave failed for storyboard {snapshot.id}: {e}")
            self.failures.append(e)
            if self.on_failure is not None:
                self.on_failure(snapshot, e)
            return
        self.saves_completed += 1
        self.last_saved_at = datetime.now(timezone.utc)
        logger.debug(f"Autosaved storyboard {snapshot.id}")

    @property
    def pending(self) -> int:
        return len(self._pending)

    async def drain(self) -> None:
        """Wait for every outstanding save."""
        while self._pending:
            await asyncio.gather(*list(self._pending))
