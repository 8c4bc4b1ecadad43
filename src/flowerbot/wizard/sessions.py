from __future__ import annotations

import asyncio
import logging
from typing import Optional

from .draft import Draft

log = logging.getLogger("flowerbot.sessions")


class SessionTable:
    """Per-user drafts plus the image collector task each user may have running.

    Owned by the wizard; keyed by Discord user id. Last write wins, there is
    no locking beyond that.
    """

    def __init__(self) -> None:
        self._drafts: dict[int, Draft] = {}
        self._collectors: dict[int, asyncio.Task] = {}

    def __len__(self) -> int:
        return len(self._drafts)

    def get(self, user_id: int) -> Optional[Draft]:
        return self._drafts.get(user_id)

    def open(self, draft: Draft) -> Draft:
        """Start a session, cancelling any previous one for the same user."""
        replaced = self.close(draft.user_id)
        if replaced:
            log.info("Replaced existing flower session for user %s", draft.user_id)
        self._drafts[draft.user_id] = draft
        return draft

    def close(self, user_id: int) -> bool:
        """Stop the collector and drop the draft. Returns True if a draft existed."""
        self.stop_collector(user_id)
        return self._drafts.pop(user_id, None) is not None

    def attach_collector(self, user_id: int, task: asyncio.Task) -> None:
        self.stop_collector(user_id)
        self._collectors[user_id] = task

    def active_collector(self, user_id: int) -> Optional[asyncio.Task]:
        task = self._collectors.get(user_id)
        if task is not None and task.done():
            self._collectors.pop(user_id, None)
            return None
        return task

    def stop_collector(self, user_id: int) -> bool:
        task = self._collectors.pop(user_id, None)
        if task is None or task.done():
            return False
        task.cancel()
        log.debug("Stopped image collector for user %s", user_id)
        return True

    def release_collector(self, user_id: int, task: asyncio.Task) -> None:
        """Forget a finished collector, unless it was already replaced."""
        if self._collectors.get(user_id) is task:
            self._collectors.pop(user_id, None)

    def close_all(self) -> None:
        for user_id in set(self._drafts) | set(self._collectors):
            self.close(user_id)
