from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional, Protocol

import discord

from ..constants import IMAGE_UPLOAD_TIMEOUT_SECONDS, MESSAGE_MIN_LENGTH
from ..errors import DatastoreError, ImageStorageError, IntegrityError, PublishError, ValidationError
from ..models import FlowerRecord, NewFlower
from ..ui.embeds import announcement_embed
from ..utils import utcnow
from .draft import Draft

log = logging.getLogger("flowerbot.finalizer")

IMAGE_WARNING = "⚠️ Your image couldn't be saved, so the flower was submitted without it."


class FlowerStore(Protocol):
    async def create(self, flower: NewFlower) -> FlowerRecord: ...
    async def delete(self, flower_id: str) -> None: ...


class ImageStore(Protocol):
    async def store(self, source_url: str) -> str: ...


class Announcer(Protocol):
    async def send(self, *args: Any, **kwargs: Any) -> discord.Message: ...


@dataclass(frozen=True)
class Submitter:
    user_id: int
    username: str
    guild_id: Optional[int] = None


@dataclass(frozen=True)
class ModerationHandoff:
    guild_id: Optional[int]
    flower_id: str
    announcement_url: str
    identity: str
    discord_username: str
    message: str
    image_url: Optional[str]
    submitted_at: datetime


class ModerationSink(Protocol):
    async def submit(self, handoff: ModerationHandoff) -> Any: ...


@dataclass(frozen=True)
class FinalizeResult:
    record: FlowerRecord
    announcement: discord.Message
    identity: str
    image_warning: Optional[str] = None
    sent_to_moderation: bool = False


class SubmissionFinalizer:
    """Persists a confirmed draft and publishes it.

    Order: image copy (soft), record create (commit point), announcement
    (rolled back by deleting the record on failure), moderation hand-off when
    consent was given.
    """

    def __init__(
        self,
        store: FlowerStore,
        image_store: Optional[ImageStore],
        moderation: Optional[ModerationSink],
        *,
        upload_timeout: float = IMAGE_UPLOAD_TIMEOUT_SECONDS,
    ) -> None:
        self.store = store
        self.image_store = image_store
        self.moderation = moderation
        self.upload_timeout = upload_timeout

    async def _persist_image(self, source_url: str) -> tuple[Optional[str], Optional[str]]:
        if self.image_store is None:
            log.warning("No image storage configured; dropping image %s", source_url)
            return None, IMAGE_WARNING
        try:
            url = await asyncio.wait_for(self.image_store.store(source_url), timeout=self.upload_timeout)
            return url, None
        except asyncio.TimeoutError:
            log.warning("Image upload timed out after %ss: %s", self.upload_timeout, source_url)
        except ImageStorageError as e:
            log.warning("Image upload failed for %s: %s", source_url, e)
        except Exception:
            log.exception("Unexpected error storing image %s", source_url)
        return None, IMAGE_WARNING

    async def _rollback(self, record: FlowerRecord) -> None:
        try:
            await self.store.delete(record.id)
            log.info("Rolled back flower %s after failed announcement", record.id)
        except DatastoreError as e:
            log.critical("Flower %s exists without an announcement and could not be deleted", record.id)
            raise IntegrityError(f"orphaned flower {record.id}") from e

    async def finalize(self, draft: Draft, submitter: Submitter, channel: Announcer) -> FinalizeResult:
        if not draft.message:
            raise ValidationError(
                "message",
                f"❌ You must have a message (at least {MESSAGE_MIN_LENGTH} characters) before confirming.",
            )

        picture: Optional[str] = None
        warning: Optional[str] = None
        if draft.image is not None:
            picture, warning = await self._persist_image(draft.image.url)

        record = await self.store.create(
            NewFlower(
                message=draft.message.strip(),
                website=draft.consent,
                name=draft.display_name or None,
                username=draft.shared_username(submitter.username),
                picture=picture,
            )
        )

        identity = draft.effective_identity(submitter.username)
        # Without a durable copy the announcement still shows the Discord attachment.
        image_url = picture or (draft.image.url if draft.image is not None else None)

        try:
            announcement = await channel.send(
                embed=announcement_embed(record.id, record.message, identity, image_url)
            )
        except Exception as e:
            log.error("Publishing flower %s failed: %s", record.id, e)
            await self._rollback(record)
            raise PublishError(f"announcement for {record.id} failed") from e

        sent = False
        if draft.consent and self.moderation is not None:
            ticket = await self.moderation.submit(
                ModerationHandoff(
                    guild_id=submitter.guild_id,
                    flower_id=record.id,
                    announcement_url=announcement.jump_url,
                    identity=identity,
                    discord_username=submitter.username,
                    message=record.message,
                    image_url=image_url,
                    submitted_at=utcnow(),
                )
            )
            sent = ticket is not None

        log.info(
            "Flower %s finalized for user %s (website=%s, moderation=%s)",
            record.id, submitter.user_id, draft.consent, sent,
        )
        return FinalizeResult(
            record=record,
            announcement=announcement,
            identity=identity,
            image_warning=warning,
            sent_to_moderation=sent,
        )
