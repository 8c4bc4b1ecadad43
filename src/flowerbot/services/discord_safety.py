from __future__ import annotations

import logging
from typing import Any

import discord


log = logging.getLogger("flowerbot.discord_safety")


async def safe_defer(interaction: discord.Interaction, *, ephemeral: bool = True, thinking: bool = False) -> bool:
    try:
        if interaction.response.is_done():
            return True
        await interaction.response.defer(ephemeral=ephemeral, thinking=thinking)
        return True
    except (discord.NotFound, discord.HTTPException):
        return interaction.response.is_done()


async def safe_send(
    interaction: discord.Interaction,
    content: str | None = None,
    *,
    embed: discord.Embed | None = None,
    ephemeral: bool = True,
    view: discord.ui.View | None = None,
) -> bool:
    """Reply if the interaction is still unanswered, otherwise follow up."""
    kwargs: dict[str, Any] = {"content": content, "ephemeral": ephemeral}
    if embed is not None:
        kwargs["embed"] = embed
    if view is not None:
        kwargs["view"] = view
    try:
        if not interaction.response.is_done():
            await interaction.response.send_message(**kwargs)
        else:
            await interaction.followup.send(**kwargs)
        return True
    except (discord.NotFound, discord.HTTPException) as e:
        log.warning("safe_send failed: %s", e)
        return False


async def safe_edit_message(message: discord.Message, **kwargs: Any) -> bool:
    try:
        await message.edit(**kwargs)
        return True
    except (discord.NotFound, discord.HTTPException) as e:
        log.warning("safe_edit_message failed: %s", e)
        return False


async def safe_delete_message(message: discord.Message) -> bool:
    try:
        await message.delete()
        return True
    except (discord.NotFound, discord.HTTPException):
        # Usually a missing Manage Messages permission
        return False
