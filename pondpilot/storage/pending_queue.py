"""
Offline write queue for device updates.

One slot per (pond, device): queueing a second update for the same device
replaces the first, so only the latest intent is replayed on reconnect.
Entries are removed only after their write succeeds.
"""

import logging
import time
from typing import Awaitable, Callable, Optional

from pydantic import ValidationError

from .local_store import LocalStore, PENDING_ACTIONS_KEY
from .models import PendingAction

logger = logging.getLogger(__name__)

Writer = Callable[[PendingAction], Awaitable[None]]


class OfflineWriteQueue:
    """Pending device actions persisted in the local store"""

    def __init__(self, store: LocalStore):
        self.store = store
        self._flushing = False
        self._flush_requested = False

    def pending(self) -> list[PendingAction]:
        """All queued actions, oldest first. Unreadable entries are dropped."""
        raw = self.store.get_json(PENDING_ACTIONS_KEY, [])
        if not isinstance(raw, list):
            return []
        actions = []
        for item in raw:
            try:
                actions.append(PendingAction.model_validate(item))
            except ValidationError as e:
                logger.warning(f"Discarding malformed pending action: {e}")
        return actions

    def count(self) -> int:
        return len(self.pending())

    def enqueue(self, pond_id: str, device_id: str, updates: dict, timestamp: Optional[int] = None) -> PendingAction:
        """Queue updates for a device, superseding any unsent action for it."""
        now = timestamp if timestamp is not None else int(time.time() * 1000)
        action = PendingAction(
            id=f"{now}_{device_id}",
            pondId=pond_id,
            deviceId=device_id,
            updates=dict(updates),
            timestamp=now,
        )
        remaining = [
            a for a in self.pending()
            if not (a.pond_id == pond_id and a.device_id == device_id)
        ]
        remaining.append(action)
        self._save(remaining)
        logger.info(f"Queued offline action for device {device_id}")
        return action

    def remove(self, action_id: str) -> None:
        self._save([a for a in self.pending() if a.id != action_id])

    async def flush(self, writer: Writer) -> int:
        """Replay queued actions through writer. Returns the number synced.

        A failed write leaves its entry in place for the next flush. A flush
        requested while one is running returns 0 at once; the running flush
        then makes another pass so actions queued meanwhile are not stranded.
        """
        if self._flushing:
            logger.debug("Flush already in progress, queue will be re-checked")
            self._flush_requested = True
            return 0

        self._flushing = True
        synced = 0
        try:
            while True:
                self._flush_requested = False
                for action in self.pending():
                    try:
                        await writer(action)
                    except Exception as e:
                        logger.error(f"Failed to sync pending action for device {action.device_id}: {e}")
                        continue
                    self.remove(action.id)
                    synced += 1
                    logger.info(f"Synced pending action for device {action.device_id}")
                if not self._flush_requested:
                    break
        finally:
            self._flushing = False
        return synced

    def _save(self, actions: list[PendingAction]) -> None:
        self.store.set_json(
            PENDING_ACTIONS_KEY,
            [a.model_dump(by_alias=True) for a in actions],
        )
