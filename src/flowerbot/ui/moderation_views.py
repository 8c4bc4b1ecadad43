from __future__ import annotations

from typing import Optional

import discord

CUSTOM_ID_PREFIX = "flower:mod"


def decision_custom_id(action: str, flower_id: str) -> str:
    return f"{CUSTOM_ID_PREFIX}:{action}:{flower_id}"


def parse_decision_custom_id(custom_id: Optional[str]) -> Optional[tuple[str, str]]:
    """Return (action, flower_id) for a moderation button id, else None."""
    if not custom_id or not custom_id.startswith(CUSTOM_ID_PREFIX + ":"):
        return None
    parts = custom_id.split(":", 3)
    if len(parts) != 4 or parts[2] not in ("approve", "decline") or not parts[3]:
        return None
    return parts[2], parts[3]


class _DecisionButton(discord.ui.Button):
    action = ""

    def __init__(self, flower_id: str, *, label: str, style: discord.ButtonStyle, emoji: str):
        super().__init__(
            label=label,
            style=style,
            emoji=emoji,
            custom_id=decision_custom_id(self.action, flower_id),
        )

    async def callback(self, interaction: discord.Interaction) -> None:
        parsed = parse_decision_custom_id(self.custom_id)
        if parsed is None:
            return
        cog = interaction.client.get_cog("ModerationCog")  # type: ignore[attr-defined]
        if cog is None:
            await interaction.response.send_message("❌ Moderation is not available right now.", ephemeral=True)
            return
        _, flower_id = parsed
        await cog.handle_decision(interaction, flower_id, approve=self.action == "approve")


class ApproveButton(_DecisionButton):
    action = "approve"

    def __init__(self, flower_id: str):
        super().__init__(flower_id, label="Approve", style=discord.ButtonStyle.success, emoji="✅")


class DeclineButton(_DecisionButton):
    action = "decline"

    def __init__(self, flower_id: str):
        super().__init__(flower_id, label="Decline", style=discord.ButtonStyle.danger, emoji="❌")


class ModerationDecisionView(discord.ui.View):
    def __init__(self, flower_id: str):
        super().__init__(timeout=None)
        self.add_item(ApproveButton(flower_id))
        self.add_item(DeclineButton(flower_id))
