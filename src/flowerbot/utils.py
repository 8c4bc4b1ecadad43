from __future__ import annotations

import logging
import re
from datetime import datetime, timezone
from typing import Optional
from urllib.parse import urlparse

import discord

from .constants import COLORS, MAX_EMBED_DESCRIPTION, MAX_EMBED_TITLE, MAX_FIELD_VALUE

log = logging.getLogger("flowerbot.utils")


def safe_embed(title: str, description: str, color: int = COLORS["default"]) -> discord.Embed:
    """Create an embed with safe length limits."""
    return discord.Embed(
        title=truncate_text(title, MAX_EMBED_TITLE),
        description=truncate_text(description, MAX_EMBED_DESCRIPTION),
        color=color,
    )


def error_embed(message: str) -> discord.Embed:
    return safe_embed("Error", message, COLORS["error"])


def truncate_text(text: str, max_length: int = MAX_FIELD_VALUE) -> str:
    """Truncate text to maximum length with ellipsis."""
    if len(text) <= max_length:
        return text
    return text[:max_length - 3] + "..."


def is_http_url(value: str | None) -> bool:
    if not value:
        return False
    try:
        parsed = urlparse(value)
    except ValueError:
        return False
    return parsed.scheme in {"http", "https"} and bool(parsed.netloc)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def iso_now() -> str:
    return utcnow().isoformat(timespec="milliseconds").replace("+00:00", "Z")


def discord_timestamp(when: datetime, style: str = "F") -> str:
    return f"<t:{int(when.timestamp())}:{style}>"


_NON_ALNUM_RE = re.compile(r"[^a-z0-9]+")


def normalize_channel_name(name: str) -> str:
    """Lowercase, drop emoji and punctuation: "🌸 Flower_Wall" -> "flower-wall"."""
    parts = _NON_ALNUM_RE.sub(" ", (name or "").strip().lower().replace("_", " ")).split()
    return "-".join(parts)


def find_text_channel(guild: discord.Guild, target: str) -> Optional[discord.TextChannel]:
    if not target:
        return None
    ch = discord.utils.get(guild.text_channels, name=target)
    if ch:
        return ch
    wanted = normalize_channel_name(target)
    if not wanted:
        return None
    for candidate in guild.text_channels:
        if normalize_channel_name(candidate.name) == wanted:
            return candidate
    return None
