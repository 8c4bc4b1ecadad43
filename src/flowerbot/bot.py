from __future__ import annotations

import asyncio
import logging
from typing import Optional

import aiohttp
import discord
from discord.ext import commands

from .config import Settings
from .database import initialize_database
from .error_handlers import setup_error_handlers
from .services.content_filter import ContentFilter
from .services.flower_sheet import FlowerSheet
from .services.image_storage import DriveImageStorage, is_fetchable
from .services.ticket_store import ModerationTicketStore
from .utils import find_text_channel
from .wizard.collector import ImageCollector
from .wizard.finalizer import SubmissionFinalizer
from .wizard.machine import FlowerWizard
from .wizard.moderation import ModerationWorkflow
from .wizard.sessions import SessionTable

log = logging.getLogger("flowerbot.bot")


class _CommandSyncManager:
    def __init__(self, bot: "FlowerBot") -> None:
        self.bot = bot
        self._lock = asyncio.Lock()

    async def sync_startup(self) -> None:
        if self.bot.settings.sync_guild_id:
            await self.sync_guild(self.bot.settings.sync_guild_id)
        else:
            await self.sync_global()

    def _log_tree(self) -> None:
        cmds = self.bot.tree.get_commands()
        log.info("Tree commands loaded: %d", len(cmds))
        for c in cmds:
            log.info(" - /%s", c.name)

    async def sync_global(self) -> None:
        async with self._lock:
            await self.bot.tree.sync()
            log.info("Commands synced globally")
            self._log_tree()

    async def sync_guild(self, guild_id: int) -> None:
        async with self._lock:
            guild = discord.Object(id=guild_id)
            # Guild sync only sees commands copied onto the guild.
            self.bot.tree.copy_global_to(guild=guild)
            await self.bot.tree.sync(guild=guild)
            log.info("Commands synced to guild %d", guild_id)
            self._log_tree()


class FlowerBot(commands.Bot):
    def __init__(self, settings: Settings) -> None:
        intents = discord.Intents.default()
        # The image collector needs to see attachments on member messages.
        intents.message_content = bool(settings.message_content_intent)
        log.info("INTENTS: guilds=%s message_content=%s", intents.guilds, intents.message_content)

        super().__init__(
            command_prefix=commands.when_mentioned,
            intents=intents,
            allowed_mentions=discord.AllowedMentions(everyone=False, roles=False, users=True),
            help_command=None,
        )

        self.settings = settings
        self.http_session: Optional[aiohttp.ClientSession] = None

        self.ticket_store = ModerationTicketStore(settings.sqlite_path)
        self.flower_sheet = FlowerSheet.from_settings(settings)
        self.content_filter = ContentFilter(settings.content_filter_extra_words)

        self.sessions = SessionTable()
        self.wizard = FlowerWizard(self.sessions, self.content_filter, image_probe=self._probe_image)
        self.image_collector = ImageCollector(self.wait_for, timeout=settings.image_wait_seconds)
        self.moderation = ModerationWorkflow(self.flower_sheet, self.ticket_store, self._moderation_channel)
        self.finalizer = SubmissionFinalizer(
            self.flower_sheet,
            None,
            self.moderation,
            upload_timeout=settings.image_upload_timeout_seconds,
        )

        self._sync_mgr = _CommandSyncManager(self)

    async def _probe_image(self, url: str) -> bool:
        if self.http_session is None:
            return True
        return await is_fetchable(self.http_session, url)

    def _moderation_channel(self, guild_id: Optional[int]) -> Optional[discord.TextChannel]:
        guild = self.get_guild(guild_id) if guild_id else None
        if guild is None:
            return None
        return find_text_channel(guild, self.settings.moderation_channel_name)

    async def setup_hook(self) -> None:
        await initialize_database(self.settings.sqlite_path, [self.ticket_store])

        self.http_session = aiohttp.ClientSession()
        if self.settings.google_drive_folder_id:
            self.finalizer.image_store = DriveImageStorage(self.settings, self.http_session)
        else:
            log.warning("GOOGLE_DRIVE_FOLDER_ID not set; flowers will be saved without images")
        if not self.settings.sheets_configured:
            log.warning("Google Sheets credentials missing; submissions will fail until they are set")

        await setup_error_handlers(self)

        loaded: list[str] = []
        failed: list[str] = []

        # One broken cog must not stop the others from registering.
        async def _load_cog(import_path: str, class_name: str) -> None:
            try:
                log.info("Loading cog: %s.%s", import_path, class_name)
                mod = __import__(import_path, fromlist=[class_name])
                cls = getattr(mod, class_name)
                await self.add_cog(cls(self))
                loaded.append(f"{import_path}.{class_name}")
            except (ModuleNotFoundError, AttributeError) as e:
                log.error("Cog %s.%s not found: %s", import_path, class_name, e)
                failed.append(f"{import_path}.{class_name} ({type(e).__name__})")
            except Exception as e:
                log.exception("Failed to load cog: %s.%s", import_path, class_name)
                failed.append(f"{import_path}.{class_name} ({type(e).__name__})")

        await _load_cog("flowerbot.cogs.flower", "FlowerCog")
        await _load_cog("flowerbot.cogs.moderation", "ModerationCog")

        log.info("Cogs loaded: %d, failed: %d", len(loaded), len(failed))
        for f in failed:
            log.warning("  failed: %s", f)

        try:
            await self._sync_mgr.sync_startup()
        except discord.HTTPException:
            log.exception("Command sync failed")

    async def on_ready(self) -> None:
        log.info("Logged in as %s (%s)", self.user, self.user.id if self.user else "?")

    async def close(self) -> None:
        self.sessions.close_all()
        if self.http_session is not None and not self.http_session.closed:
            await self.http_session.close()
        await super().close()
