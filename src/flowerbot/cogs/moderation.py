from __future__ import annotations

from typing import TYPE_CHECKING

import discord

from ..base_cog import BaseCog
from ..constants import ERROR_MESSAGES
from ..errors import FlowerError
from ..models import TicketStatus
from ..services.discord_safety import safe_defer, safe_send
from ..ui.moderation_views import ModerationDecisionView

if TYPE_CHECKING:
    from ..bot import FlowerBot


class ModerationCog(BaseCog):
    """Approve/decline buttons on #moderation-workflow tickets."""

    def __init__(self, bot: "FlowerBot") -> None:
        super().__init__(bot)
        self.bot: "FlowerBot" = bot
        self.workflow = bot.moderation

    async def cog_load(self) -> None:
        await super().cog_load()
        # Reattach buttons for tickets still waiting on a decision.
        pending = await self.bot.ticket_store.pending()
        for ticket in pending:
            self.bot.add_view(ModerationDecisionView(ticket.flower_id), message_id=ticket.message_id)
        if pending:
            self.log.info("Rehydrated %d pending moderation ticket(s)", len(pending))

    async def handle_decision(self, interaction: discord.Interaction, flower_id: str, *, approve: bool) -> None:
        if not self.member_has(interaction, "manage_messages", "administrator"):
            await safe_send(interaction, "❌ You need the Manage Messages permission to moderate flowers.")
            return
        if interaction.message is None:
            return

        await safe_defer(interaction, ephemeral=True)
        try:
            outcome = await self.workflow.decide(interaction.message, flower_id, approve, interaction.user.id)
        except FlowerError as e:
            self.log.error("Moderation decision for flower %s failed: %s", flower_id, e)
            await safe_send(interaction, ERROR_MESSAGES["moderation_failed"])
            return
        except Exception:
            self.log.exception("Unexpected error deciding flower %s", flower_id)
            await safe_send(interaction, ERROR_MESSAGES["moderation_failed"])
            return

        verb = "approved" if outcome.status is TicketStatus.APPROVED else "declined"
        if outcome.already_decided:
            await safe_send(interaction, f"ℹ️ This flower was already {verb}.")
        else:
            await safe_send(interaction, f"✅ Flower {verb}.")
