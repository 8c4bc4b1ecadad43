from __future__ import annotations

import logging

import discord
from discord.ext import commands

log = logging.getLogger("flowerbot.base_cog")


class BaseCog(commands.Cog):
    """Base class for all cogs with common functionality."""

    def __init__(self, bot: commands.Bot) -> None:
        self.bot = bot
        self.log = logging.getLogger(f"flowerbot.cog.{self.__class__.__name__.lower()}")

    async def cog_load(self) -> None:
        self.log.info("Loaded %s", self.__class__.__name__)

    async def cog_unload(self) -> None:
        self.log.info("Unloaded %s", self.__class__.__name__)

    def member_has(self, interaction: discord.Interaction, *permissions: str) -> bool:
        """True if the invoking member holds any of ``permissions`` in this channel."""
        perms = interaction.permissions
        if perms is None:
            return False
        return any(getattr(perms, name, False) for name in permissions)
