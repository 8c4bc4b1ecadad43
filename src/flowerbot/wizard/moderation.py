from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Callable, Optional, Protocol

import discord

from ..models import FlowerRecord, ModerationTicket, TicketStatus
from ..services.discord_safety import safe_edit_message
from ..services.ticket_store import ModerationTicketStore
from ..ui.embeds import decided_embed, decision_banner, moderation_embed
from ..ui.moderation_views import ModerationDecisionView
from ..utils import iso_now, utcnow
from .finalizer import ModerationHandoff

log = logging.getLogger("flowerbot.moderation")

REVIEW_HEADER = "🌸 **New Flower Submission for Review**"


class ApprovalStore(Protocol):
    async def update(self, flower_id: str, field: str, value: str) -> FlowerRecord: ...


ChannelResolver = Callable[[Optional[int]], Optional[discord.abc.Messageable]]


@dataclass(frozen=True)
class DecisionOutcome:
    status: TicketStatus
    already_decided: bool


class ModerationWorkflow:
    """Approve/decline tickets for flowers that may go on the website.

    Decisions on one ticket message run one at a time: read the ticket, write
    the sheet, resolve the ticket, edit the message. A failed sheet write
    leaves the buttons in place for another try. A ticket decides once; later
    presses only tidy the message.
    """

    def __init__(
        self,
        store: ApprovalStore,
        tickets: ModerationTicketStore,
        resolve_channel: ChannelResolver,
    ) -> None:
        self.store = store
        self.tickets = tickets
        self._resolve_channel = resolve_channel
        self._locks: dict[int, asyncio.Lock] = {}

    async def submit(self, handoff: ModerationHandoff) -> Optional[ModerationTicket]:
        channel = self._resolve_channel(handoff.guild_id)
        if channel is None:
            log.warning(
                "Moderation channel not found in guild %s; flower %s was not queued for review",
                handoff.guild_id, handoff.flower_id,
            )
            return None

        message = await channel.send(
            content=REVIEW_HEADER,
            embed=moderation_embed(
                handoff.flower_id,
                handoff.announcement_url,
                handoff.identity,
                handoff.discord_username,
                handoff.message,
                handoff.image_url,
                handoff.submitted_at,
            ),
            view=ModerationDecisionView(handoff.flower_id),
        )
        ticket = ModerationTicket(
            message_id=message.id,
            guild_id=handoff.guild_id or 0,
            channel_id=message.channel.id,
            flower_id=handoff.flower_id,
            status=TicketStatus.PENDING,
            created_at_iso=iso_now(),
        )
        await self.tickets.add(ticket)
        log.info("Posted flower %s to moderation (message %s)", handoff.flower_id, message.id)
        return ticket

    async def decide(
        self,
        message: discord.Message,
        flower_id: str,
        approve: bool,
        moderator_id: int,
    ) -> DecisionOutcome:
        lock = self._locks.setdefault(message.id, asyncio.Lock())
        async with lock:
            outcome = await self._decide(message, flower_id, approve, moderator_id)
        # Every normal return leaves the ticket terminal; later presses only read it.
        if self._locks.get(message.id) is lock:
            del self._locks[message.id]
        return outcome

    async def _decide(
        self,
        message: discord.Message,
        flower_id: str,
        approve: bool,
        moderator_id: int,
    ) -> DecisionOutcome:
        ticket = await self.tickets.get(message.id)
        if ticket is not None and ticket.status.terminal:
            await safe_edit_message(message, view=None)
            return DecisionOutcome(ticket.status, already_decided=True)

        if ticket is not None:
            flower_id = ticket.flower_id
        status = TicketStatus.APPROVED if approve else TicketStatus.DECLINED

        # Raises on failure; nothing below runs and the buttons stay.
        await self.store.update(flower_id, "approved", "true" if approve else "false")

        decided_at = utcnow()
        if ticket is None:
            # Ticket predates the local store; record it as decided.
            await self.tickets.add(
                ModerationTicket(
                    message_id=message.id,
                    guild_id=message.guild.id if message.guild else 0,
                    channel_id=message.channel.id,
                    flower_id=flower_id,
                    status=status,
                    created_at_iso=decided_at.isoformat(),
                    decided_by=moderator_id,
                    decided_at_iso=decided_at.isoformat(),
                )
            )
        elif not await self.tickets.resolve(message.id, status, moderator_id, decided_at.isoformat()):
            # Lost a race with another press on the same ticket.
            current = await self.tickets.get(message.id)
            return DecisionOutcome(current.status if current else status, already_decided=True)

        original = message.embeds[0] if message.embeds else None
        await safe_edit_message(
            message,
            content=decision_banner(status),
            embed=decided_embed(original, status, moderator_id, decided_at),
            view=None,
        )
        log.info("Flower %s %s by %s", flower_id, status.value, moderator_id)
        return DecisionOutcome(status, already_decided=False)
