from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional

import discord

from ..constants import IMAGE_WAIT_SECONDS
from .sessions import SessionTable

log = logging.getLogger("flowerbot.collector")

WaitFor = Callable[..., Awaitable[Any]]
OnMatch = Callable[[discord.Message], Awaitable[None]]
OnTimeout = Callable[[], Awaitable[None]]


class ImageCollector:
    """Waits for the next message from one user, in one channel, that has attachments.

    Single match, bounded by ``timeout``. Each capture runs as its own task
    registered in the session table, so replacing the session cancels it
    before either callback can fire.
    """

    def __init__(self, wait_for: WaitFor, timeout: float = IMAGE_WAIT_SECONDS) -> None:
        self._wait_for = wait_for
        self.timeout = timeout

    async def next_image_message(self, user_id: int, channel_id: int) -> Optional[discord.Message]:
        def check(message: discord.Message) -> bool:
            return (
                message.author.id == user_id
                and message.channel.id == channel_id
                and len(message.attachments) > 0
            )

        try:
            return await self._wait_for("message", check=check, timeout=self.timeout)
        except asyncio.TimeoutError:
            return None

    def start(
        self,
        sessions: SessionTable,
        user_id: int,
        channel_id: int,
        on_match: OnMatch,
        on_timeout: OnTimeout,
    ) -> asyncio.Task:
        """Replace any running capture for ``user_id`` with a new one."""

        async def _run() -> None:
            try:
                message = await self.next_image_message(user_id, channel_id)
                if message is None:
                    log.info("Image capture timed out for user %s", user_id)
                    await on_timeout()
                else:
                    await on_match(message)
            except asyncio.CancelledError:
                log.debug("Image capture cancelled for user %s", user_id)
                raise
            except Exception:
                log.exception("Image capture failed for user %s", user_id)
            finally:
                sessions.release_collector(user_id, task)

        task = asyncio.create_task(_run(), name=f"flower-image-{user_id}")
        sessions.attach_collector(user_id, task)
        return task
