from __future__ import annotations

import copy
from datetime import datetime
from typing import Optional

import discord

from ..constants import COLORS, MAX_FIELD_VALUE
from ..models import TicketStatus
from ..utils import discord_timestamp, truncate_text
from ..wizard.draft import Draft

STATUS_FIELD = "📊 Status"
PENDING_STATUS = "⏳ Awaiting moderation decision"


def review_embed(draft: Draft, identity: str) -> discord.Embed:
    e = discord.Embed(
        title="🌸 Review your Flower",
        description=draft.message or "*No message*",
        color=COLORS["flower"],
        timestamp=discord.utils.utcnow(),
    )
    e.add_field(name="Submitted by", value=identity, inline=True)
    e.add_field(name="Website Consent", value="Yes" if draft.consent else "No", inline=True)
    if draft.image is not None:
        e.set_image(url=draft.image.url)
    e.set_footer(text="Please confirm to submit.")
    return e


def announcement_embed(
    flower_id: str,
    message: str,
    identity: str,
    image_url: Optional[str],
) -> discord.Embed:
    e = discord.Embed(
        title="🌸 New Flower Submission 💐",
        description=message,
        color=COLORS["flower"],
        timestamp=discord.utils.utcnow(),
    )
    e.add_field(name="Submitted by", value=identity, inline=True)
    if image_url:
        e.set_image(url=image_url)
    e.set_footer(text=f"Flower ID: {flower_id}")
    return e


def moderation_embed(
    flower_id: str,
    announcement_url: str,
    identity: str,
    discord_username: str,
    message: str,
    image_url: Optional[str],
    submitted_at: datetime,
) -> discord.Embed:
    """Ticket embed. Moderators always see the account behind the public identity."""
    e = discord.Embed(
        title="🔍 Jump to Message →",
        url=announcement_url,
        color=COLORS["moderation"],
        timestamp=submitted_at,
    )
    e.add_field(name="📛 Submitted by", value=f"{discord_username} (Display: {identity})", inline=True)
    e.add_field(name="⏰ Submitted at", value=discord_timestamp(submitted_at), inline=False)
    e.add_field(name="📝 Message Content", value=truncate_text(message, MAX_FIELD_VALUE), inline=False)
    e.add_field(name=STATUS_FIELD, value=PENDING_STATUS, inline=False)
    if image_url:
        e.set_image(url=image_url)
    e.set_footer(text=f"Flower ID: {flower_id} | Requires approval for website publication")
    return e


def decided_embed(
    original: Optional[discord.Embed],
    status: TicketStatus,
    moderator_id: int,
    decided_at: datetime,
) -> discord.Embed:
    """Copy of the ticket embed with its status field rewritten."""
    # to_dict is shallow; copy so the original message embed stays untouched.
    e = discord.Embed.from_dict(copy.deepcopy(original.to_dict())) if original is not None else discord.Embed(title="Flower review")
    approved = status is TicketStatus.APPROVED
    e.colour = discord.Colour(COLORS["approved"] if approved else COLORS["declined"])
    label = "✅ **APPROVED**" if approved else "❌ **DECLINED**"
    value = f"{label} by <@{moderator_id}> at {discord_timestamp(decided_at)}"
    for index, field in enumerate(e.fields):
        if field.name == STATUS_FIELD:
            e.set_field_at(index, name=STATUS_FIELD, value=value, inline=False)
            break
    else:
        e.add_field(name=STATUS_FIELD, value=value, inline=False)
    return e


def decision_banner(status: TicketStatus) -> str:
    if status is TicketStatus.APPROVED:
        return "✅ **Approved for Website Publication**"
    return "❌ **Declined for Website Publication**"
