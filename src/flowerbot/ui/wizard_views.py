from __future__ import annotations

from typing import TYPE_CHECKING, Optional

import discord

from ..constants import MESSAGE_MAX_LENGTH, MESSAGE_MIN_LENGTH, NAME_MAX_LENGTH
from ..wizard.draft import Draft, Step

if TYPE_CHECKING:
    from ..cogs.flower import FlowerCog


class MessageModal(discord.ui.Modal, title="Your flower message"):
    def __init__(self, controller: "FlowerCog", preset: Optional[str] = None, *, timeout: float = 900) -> None:
        super().__init__(timeout=timeout)
        self.controller = controller
        self.text = discord.ui.TextInput(
            label="Your flower message",
            placeholder="Share your appreciation, story, or message (10-1000 characters)",
            default=preset,
            required=True,
            min_length=MESSAGE_MIN_LENGTH,
            max_length=MESSAGE_MAX_LENGTH,
            style=discord.TextStyle.paragraph,
        )
        self.add_item(self.text)

    async def on_submit(self, interaction: discord.Interaction) -> None:
        await self.controller.on_message_submitted(interaction, self.text.value)


class NameModal(discord.ui.Modal, title="Your name (optional)"):
    def __init__(self, controller: "FlowerCog", preset: Optional[str] = None, *, timeout: float = 900) -> None:
        super().__init__(timeout=timeout)
        self.controller = controller
        self.text = discord.ui.TextInput(
            label="Your name (optional)",
            placeholder="Leave blank to stay anonymous",
            default=preset or None,
            required=False,
            max_length=NAME_MAX_LENGTH,
            style=discord.TextStyle.short,
        )
        self.add_item(self.text)

    async def on_submit(self, interaction: discord.Interaction) -> None:
        await self.controller.on_name_submitted(interaction, self.text.value)


class WizardView(discord.ui.View):
    """Buttons for one wizard prompt. Only the draft's owner may press them."""

    def __init__(self, controller: "FlowerCog", user_id: int) -> None:
        super().__init__(timeout=controller.settings.wizard_view_timeout_seconds)
        self.controller = controller
        self.user_id = user_id

    async def interaction_check(self, interaction: discord.Interaction) -> bool:
        if interaction.user.id != self.user_id:
            await interaction.response.send_message("This flower belongs to someone else. Run /flower to start your own.", ephemeral=True)
            return False
        return True


class StartView(WizardView):
    @discord.ui.button(label="Write your message", style=discord.ButtonStyle.primary)
    async def write(self, interaction: discord.Interaction, button: discord.ui.Button) -> None:
        await self.controller.open_message_modal(interaction)


class NameStepView(WizardView):
    @discord.ui.button(label="Add your name (optional)", style=discord.ButtonStyle.primary)
    async def add_name(self, interaction: discord.Interaction, button: discord.ui.Button) -> None:
        await self.controller.open_name_modal(interaction)

    @discord.ui.button(label="Skip (stay anonymous)", style=discord.ButtonStyle.secondary)
    async def skip(self, interaction: discord.Interaction, button: discord.ui.Button) -> None:
        await self.controller.on_name_submitted(interaction, "")


class ConsentView(WizardView):
    @discord.ui.button(label="Consent: Yes", style=discord.ButtonStyle.success)
    async def yes(self, interaction: discord.Interaction, button: discord.ui.Button) -> None:
        await self.controller.on_consent(interaction, True)

    @discord.ui.button(label="Consent: No", style=discord.ButtonStyle.secondary)
    async def no(self, interaction: discord.Interaction, button: discord.ui.Button) -> None:
        await self.controller.on_consent(interaction, False)


class ShareUsernameView(WizardView):
    @discord.ui.button(label="Show my username", style=discord.ButtonStyle.primary)
    async def share(self, interaction: discord.Interaction, button: discord.ui.Button) -> None:
        await self.controller.on_share_username(interaction, True)

    @discord.ui.button(label="Stay anonymous", style=discord.ButtonStyle.secondary)
    async def anonymous(self, interaction: discord.Interaction, button: discord.ui.Button) -> None:
        await self.controller.on_share_username(interaction, False)


class ImageStepView(WizardView):
    def __init__(self, controller: "FlowerCog", user_id: int, *, retry: bool = False) -> None:
        super().__init__(controller, user_id)
        if retry:
            self.upload.label = "Try again"

    @discord.ui.button(label="Upload an image", style=discord.ButtonStyle.primary)
    async def upload(self, interaction: discord.Interaction, button: discord.ui.Button) -> None:
        await self.controller.on_image_upload(interaction)

    @discord.ui.button(label="Skip (no image)", style=discord.ButtonStyle.secondary)
    async def skip(self, interaction: discord.Interaction, button: discord.ui.Button) -> None:
        await self.controller.on_image_skip(interaction)


class _EditButton(discord.ui.Button):
    def __init__(self, label: str, step: Step, row: int) -> None:
        super().__init__(label=label, style=discord.ButtonStyle.secondary, row=row)
        self.step = step

    async def callback(self, interaction: discord.Interaction) -> None:
        view: ReviewView = self.view  # type: ignore[assignment]
        await view.controller.on_edit(interaction, self.step)


class _RemoveImageButton(discord.ui.Button):
    def __init__(self) -> None:
        super().__init__(label="Remove Image", style=discord.ButtonStyle.danger, row=1)

    async def callback(self, interaction: discord.Interaction) -> None:
        view: ReviewView = self.view  # type: ignore[assignment]
        await view.controller.on_remove_image(interaction)


class _ConfirmButton(discord.ui.Button):
    def __init__(self) -> None:
        super().__init__(label="✅ Confirm & Submit", style=discord.ButtonStyle.success, row=2)

    async def callback(self, interaction: discord.Interaction) -> None:
        view: ReviewView = self.view  # type: ignore[assignment]
        await view.controller.on_confirm(interaction)


class ReviewView(WizardView):
    """Edit controls plus confirm. The username toggle only shows for anonymous drafts."""

    def __init__(self, controller: "FlowerCog", draft: Draft) -> None:
        super().__init__(controller, draft.user_id)
        self.add_item(_EditButton("Edit Message", Step.MESSAGE, row=0))
        self.add_item(_EditButton("Edit Name", Step.NAME, row=0))
        self.add_item(_EditButton("Edit Consent", Step.CONSENT, row=0))
        if draft.is_anonymous_name:
            self.add_item(_EditButton("Edit Username Sharing", Step.SHARE_USERNAME, row=0))
        self.add_item(_EditButton("Replace Image" if draft.image else "Add Image", Step.IMAGE, row=1))
        if draft.image is not None:
            self.add_item(_RemoveImageButton())
        self.add_item(_ConfirmButton())
