from __future__ import annotations

from typing import TYPE_CHECKING, Optional

import discord
from discord import app_commands

from ..base_cog import BaseCog
from ..config import Settings
from ..constants import ERROR_MESSAGES
from ..errors import FlowerError, ValidationError
from ..services.discord_safety import safe_defer, safe_delete_message, safe_send
from ..ui.embeds import review_embed
from ..ui.wizard_views import (
    ConsentView,
    ImageStepView,
    MessageModal,
    NameModal,
    NameStepView,
    ReviewView,
    ShareUsernameView,
    StartView,
)
from ..utils import find_text_channel
from ..wizard.draft import Draft, Step
from ..wizard.finalizer import Submitter

if TYPE_CHECKING:
    from ..bot import FlowerBot

START_PROMPT = "Let's submit your flower, one step at a time. First, write your message ✍️"
NAME_PROMPT = "✅ Great! Now, would you like to add your name? (You can stay anonymous if you prefer.)"
CONSENT_PROMPT = (
    "Do you consent to featuring your submission on the BobaTalks website? "
    "(You can choose No and still submit.)"
)
SHARE_USERNAME_PROMPT = (
    "You left your name blank. Should we show your Discord username with your flower, "
    "or keep it anonymous?"
)
IMAGE_PROMPT = (
    "📷 **Add an image (optional)**: You can upload an image or skip this step. When you click "
    "'Upload an image', I'll wait for your **next message with an image** in this channel. "
    "Supported formats: PNG, JPEG, WebP, GIF (max 25MB)."
)
REVIEW_PROMPT = "Please review your submission and confirm:"
WAITING_PROMPT = (
    "✅ **I'm waiting for your image!** Please send a message with an image attachment in this "
    "channel. I'll automatically detect it. (Timeout: {minutes} minutes)"
)
TIMEOUT_PROMPT = "⌛ **Image upload timeout.** Try again, or skip to continue without an image."
SUBMITTED = "✅ Submitted! Thanks for sharing your flower 💐"


class FlowerCog(BaseCog):
    """The /flower wizard: one ephemeral prompt per step."""

    def __init__(self, bot: "FlowerBot") -> None:
        super().__init__(bot)
        self.bot: "FlowerBot" = bot
        self.wizard = bot.wizard
        self.collector = bot.image_collector
        self.finalizer = bot.finalizer

    @property
    def settings(self) -> Settings:
        return self.bot.settings

    @app_commands.command(name="flower", description="Submit a flower 💐 via a guided, one-by-one wizard")
    @app_commands.guild_only()
    async def flower(self, interaction: discord.Interaction) -> None:
        self.wizard.start(interaction.user.id, interaction.channel_id or 0)
        await interaction.response.send_message(
            START_PROMPT, view=StartView(self, interaction.user.id), ephemeral=True
        )

    # -- rendering ---------------------------------------------------------

    def _username(self, user: discord.abc.User) -> str:
        return user.name

    async def _show_step(self, interaction: discord.Interaction, draft: Draft) -> None:
        """Send the prompt and controls for wherever the draft now is."""
        uid = draft.user_id
        if draft.step is Step.MESSAGE:
            await safe_send(interaction, START_PROMPT, view=StartView(self, uid))
        elif draft.step is Step.NAME:
            await safe_send(interaction, NAME_PROMPT, view=NameStepView(self, uid))
        elif draft.step is Step.CONSENT:
            await safe_send(interaction, CONSENT_PROMPT, view=ConsentView(self, uid))
        elif draft.step is Step.SHARE_USERNAME:
            await safe_send(interaction, SHARE_USERNAME_PROMPT, view=ShareUsernameView(self, uid))
        elif draft.step is Step.IMAGE:
            await safe_send(interaction, IMAGE_PROMPT, view=ImageStepView(self, uid))
        else:
            await self._show_review(interaction, draft)

    async def _show_review(self, interaction: discord.Interaction, draft: Draft) -> None:
        identity = draft.effective_identity(self._username(interaction.user))
        await safe_send(
            interaction,
            REVIEW_PROMPT,
            embed=review_embed(draft, identity),
            view=ReviewView(self, draft),
        )

    async def _fail(self, interaction: discord.Interaction, error: Exception) -> None:
        """Tell the user what went wrong and re-show the current step where that helps."""
        if isinstance(error, FlowerError):
            self.log.info("Flower step rejected for user %s: %s", interaction.user.id, error)
            await safe_send(interaction, error.user_message)
            if isinstance(error, ValidationError):
                draft = self.wizard.sessions.get(interaction.user.id)
                if draft is not None and not draft.submitting:
                    await self._show_step(interaction, draft)
            return
        self.log.exception("Unexpected error in flower wizard for user %s", interaction.user.id, exc_info=error)
        await safe_send(interaction, ERROR_MESSAGES["generic"])

    # -- modal openers -----------------------------------------------------

    async def open_message_modal(self, interaction: discord.Interaction) -> None:
        try:
            draft = self.wizard.require(interaction.user.id, Step.MESSAGE, Step.REVIEW)
        except FlowerError as e:
            await self._fail(interaction, e)
            return
        timeout = self.settings.wizard_view_timeout_seconds
        await interaction.response.send_modal(MessageModal(self, draft.message, timeout=timeout))

    async def open_name_modal(self, interaction: discord.Interaction) -> None:
        try:
            draft = self.wizard.require(interaction.user.id, Step.NAME, Step.REVIEW)
        except FlowerError as e:
            await self._fail(interaction, e)
            return
        timeout = self.settings.wizard_view_timeout_seconds
        await interaction.response.send_modal(NameModal(self, draft.display_name, timeout=timeout))

    # -- step handlers -----------------------------------------------------

    async def on_message_submitted(self, interaction: discord.Interaction, text: str) -> None:
        try:
            draft = self.wizard.submit_message(interaction.user.id, text)
        except Exception as e:
            await self._fail(interaction, e)
            return
        await self._show_step(interaction, draft)

    async def on_name_submitted(self, interaction: discord.Interaction, text: str) -> None:
        try:
            draft = self.wizard.submit_name(interaction.user.id, text)
        except Exception as e:
            await self._fail(interaction, e)
            return
        await self._show_step(interaction, draft)

    async def on_consent(self, interaction: discord.Interaction, consent: bool) -> None:
        try:
            draft = self.wizard.set_consent(interaction.user.id, consent)
        except Exception as e:
            await self._fail(interaction, e)
            return
        await self._show_step(interaction, draft)

    async def on_share_username(self, interaction: discord.Interaction, share: bool) -> None:
        try:
            draft = self.wizard.set_share_username(interaction.user.id, share)
        except Exception as e:
            await self._fail(interaction, e)
            return
        await self._show_step(interaction, draft)

    async def on_edit(self, interaction: discord.Interaction, step: Step) -> None:
        # Text fields are edited in place from REVIEW through their modal.
        if step is Step.MESSAGE:
            await self.open_message_modal(interaction)
            return
        if step is Step.NAME:
            await self.open_name_modal(interaction)
            return
        try:
            draft = self.wizard.edit(interaction.user.id, step)
        except Exception as e:
            await self._fail(interaction, e)
            return
        await self._show_step(interaction, draft)

    async def on_remove_image(self, interaction: discord.Interaction) -> None:
        try:
            draft = self.wizard.remove_image(interaction.user.id)
        except Exception as e:
            await self._fail(interaction, e)
            return
        await self._show_review(interaction, draft)

    # -- image capture -----------------------------------------------------

    async def on_image_skip(self, interaction: discord.Interaction) -> None:
        try:
            draft = self.wizard.skip_image(interaction.user.id)
        except Exception as e:
            await self._fail(interaction, e)
            return
        await self._show_review(interaction, draft)

    async def on_image_upload(self, interaction: discord.Interaction) -> None:
        user_id = interaction.user.id
        try:
            draft = self.wizard.begin_image(user_id)
        except Exception as e:
            await self._fail(interaction, e)
            return
        if interaction.channel is None or not hasattr(interaction.channel, "send"):
            await safe_send(interaction, "❌ Unable to set up image collection in this channel.")
            return

        minutes = max(1, round(self.collector.timeout / 60))
        await safe_send(interaction, WAITING_PROMPT.format(minutes=minutes))

        async def on_match(message: discord.Message) -> None:
            try:
                updated = await self.wizard.accept_image(user_id, message.attachments)
            except ValidationError as e:
                await safe_send(interaction, e.user_message, view=ImageStepView(self, user_id, retry=True))
                return
            except FlowerError as e:
                self.log.info("Dropping collected image for user %s: %s", user_id, e)
                return
            await safe_delete_message(message)
            await self._show_review(interaction, updated)

        async def on_timeout() -> None:
            current = self.wizard.sessions.get(user_id)
            if current is None or current.step is not Step.IMAGE:
                return
            await safe_send(interaction, TIMEOUT_PROMPT, view=ImageStepView(self, user_id, retry=True))

        self.collector.start(self.wizard.sessions, user_id, draft.channel_id, on_match, on_timeout)

    # -- submission --------------------------------------------------------

    def _announcement_channel(self, interaction: discord.Interaction) -> Optional[discord.abc.Messageable]:
        name = self.settings.flowers_channel_name
        if name and interaction.guild is not None:
            channel = find_text_channel(interaction.guild, name)
            if channel is not None:
                return channel
            self.log.warning("Flowers channel %r not found; announcing in the session channel", name)
        return interaction.channel  # type: ignore[return-value]

    async def on_confirm(self, interaction: discord.Interaction) -> None:
        user_id = interaction.user.id
        try:
            draft = self.wizard.confirm(user_id)
        except Exception as e:
            await self._fail(interaction, e)
            return

        await safe_defer(interaction, ephemeral=True, thinking=True)
        try:
            channel = self._announcement_channel(interaction)
            if channel is None:
                await safe_send(interaction, ERROR_MESSAGES["submit_failed"])
                return
            submitter = Submitter(
                user_id=user_id,
                username=self._username(interaction.user),
                guild_id=interaction.guild_id,
            )
            result = await self.finalizer.finalize(draft, submitter, channel)
        except FlowerError as e:
            self.log.error("Flower submission failed for user %s: %s", user_id, e)
            await safe_send(interaction, ERROR_MESSAGES["submit_failed"])
            return
        except Exception:
            self.log.exception("Unexpected error submitting flower for user %s", user_id)
            await safe_send(interaction, ERROR_MESSAGES["submit_failed"])
            return
        finally:
            # A /flower started while this one was submitting keeps its new draft.
            if self.wizard.sessions.get(user_id) is draft:
                self.wizard.finish(user_id)

        message = SUBMITTED
        if result.image_warning:
            message = f"{message}\n{result.image_warning}"
        await safe_send(interaction, message)
