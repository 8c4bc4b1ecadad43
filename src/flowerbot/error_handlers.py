from __future__ import annotations

import logging

import discord
from discord import app_commands
from discord.ext import commands

from .constants import ERROR_MESSAGES
from .errors import FlowerError
from .services.discord_safety import safe_send
from .utils import error_embed

log = logging.getLogger("flowerbot.error_handlers")


class ErrorHandler(commands.Cog):
    """Last-resort handling for slash command errors."""

    def __init__(self, bot: commands.Bot) -> None:
        self.bot = bot
        self._previous = bot.tree.on_error
        bot.tree.on_error = self.on_app_command_error

    async def cog_unload(self) -> None:
        self.bot.tree.on_error = self._previous

    async def on_app_command_error(
        self,
        interaction: discord.Interaction,
        error: app_commands.AppCommandError,
    ) -> None:
        original = getattr(error, "original", error)

        if isinstance(original, FlowerError):
            await safe_send(interaction, embed=error_embed(original.user_message))
            return

        if isinstance(error, app_commands.NoPrivateMessage):
            await safe_send(interaction, embed=error_embed("This command can only be used in a server."))
            return

        if isinstance(error, app_commands.MissingPermissions):
            await safe_send(interaction, embed=error_embed(ERROR_MESSAGES["missing_permissions"]))
            return

        if isinstance(error, app_commands.CommandOnCooldown):
            await safe_send(
                interaction,
                embed=error_embed(f"This command is on cooldown. Try again in {error.retry_after:.1f}s"),
            )
            return

        if isinstance(error, app_commands.BotMissingPermissions):
            await safe_send(interaction, embed=error_embed("The bot lacks required permissions to run this command."))
            return

        log.error(
            "Unexpected error in app command %s",
            interaction.command.qualified_name if interaction.command else "?",
            exc_info=original,
        )
        await safe_send(interaction, embed=error_embed(ERROR_MESSAGES["generic"]))


async def setup_error_handlers(bot: commands.Bot) -> None:
    await bot.add_cog(ErrorHandler(bot))
