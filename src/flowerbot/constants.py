from __future__ import annotations

from typing import Final

# Discord limits
MAX_EMBED_DESCRIPTION: Final[int] = 4096
MAX_EMBED_TITLE: Final[int] = 256
MAX_FIELD_VALUE: Final[int] = 1024

# Flower content rules
MESSAGE_MIN_LENGTH: Final[int] = 10
MESSAGE_MAX_LENGTH: Final[int] = 1000
NAME_MAX_LENGTH: Final[int] = 100
ANONYMOUS: Final[str] = "Anonymous"

# Image rules
MAX_IMAGE_BYTES: Final[int] = 25 * 1024 * 1024
ALLOWED_IMAGE_TYPES: Final[frozenset[str]] = frozenset(
    {"image/png", "image/jpeg", "image/jpg", "image/webp", "image/gif"}
)
ALLOWED_IMAGE_EXTENSIONS: Final[tuple[str, ...]] = (".png", ".jpg", ".jpeg", ".webp", ".gif")

# Timing (seconds)
IMAGE_WAIT_SECONDS: Final[int] = 120
IMAGE_UPLOAD_TIMEOUT_SECONDS: Final[int] = 60
WIZARD_VIEW_TIMEOUT_SECONDS: Final[int] = 900

# Colors (hex values)
COLORS = {
    "default": 0x5865F2,
    "flower": 0xFF69B4,
    "moderation": 0xFFD700,
    "approved": 0x00FF00,
    "declined": 0xFF0000,
    "error": 0xED4245,
}

# Generic user-facing messages
ERROR_MESSAGES = {
    "missing_permissions": "You don't have permission to use this command.",
    "generic": "Something went wrong. Please try again.",
    "session_expired": "Session expired. Run /flower again.",
    "stale_step": "That button belongs to an earlier step. Please use the latest prompt.",
    "submit_failed": "❌ Something went wrong while submitting your flower. Please run /flower and try again.",
    "moderation_failed": "❌ An error occurred while recording this decision. Please try again.",
}
