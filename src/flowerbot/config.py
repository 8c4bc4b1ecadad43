from __future__ import annotations

import os
from dataclasses import dataclass

from .constants import (
    IMAGE_UPLOAD_TIMEOUT_SECONDS,
    IMAGE_WAIT_SECONDS,
    WIZARD_VIEW_TIMEOUT_SECONDS,
)


def _get_int(name: str, default: int) -> int:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _get_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name, "").strip().lower()
    if not raw:
        return default
    return raw in {"1", "true", "yes", "y", "on"}


def _get_str(name: str, default: str = "") -> str:
    return os.getenv(name, "").strip() or default


def _get_list(name: str) -> tuple[str, ...]:
    raw = os.getenv(name, "")
    return tuple(part.strip() for part in raw.split(",") if part.strip())


@dataclass(frozen=True)
class Settings:
    token: str
    sync_guild_id: int
    sqlite_path: str
    log_level: str
    # The image collector reads attachments on guild messages.
    message_content_intent: bool = True

    # Channel name configuration. A blank flowers channel means
    # "announce in the channel where the session runs".
    flowers_channel_name: str = ""
    moderation_channel_name: str = "moderation-workflow"

    # Google Sheets datastore
    google_sheet_id: str = ""
    google_sheet_tab: str = "Flowers"
    google_service_account_email: str = ""
    google_private_key: str = ""

    # Google Drive image storage (OAuth preferred, service account fallback)
    google_drive_folder_id: str = ""
    google_client_id: str = ""
    google_client_secret: str = ""
    google_refresh_token: str = ""

    # Wizard timing
    image_wait_seconds: int = IMAGE_WAIT_SECONDS
    image_upload_timeout_seconds: int = IMAGE_UPLOAD_TIMEOUT_SECONDS
    wizard_view_timeout_seconds: int = WIZARD_VIEW_TIMEOUT_SECONDS

    content_filter_extra_words: tuple[str, ...] = ()

    @property
    def sheets_configured(self) -> bool:
        return bool(self.google_sheet_id and self.google_service_account_email and self.google_private_key)

    @property
    def drive_oauth_configured(self) -> bool:
        return bool(self.google_client_id and self.google_client_secret and self.google_refresh_token)


def load_settings() -> Settings:
    token = os.getenv("DISCORD_TOKEN", "").strip()
    if not token:
        raise RuntimeError("DISCORD_TOKEN is required")
    return Settings(
        token=token,
        sync_guild_id=_get_int("SYNC_GUILD_ID", 0),
        sqlite_path=_get_str("SQLITE_PATH", "flowerbot.sqlite3"),
        log_level=_get_str("LOG_LEVEL", "INFO"),
        message_content_intent=_get_bool("MESSAGE_CONTENT_INTENT", True),

        flowers_channel_name=_get_str("FLOWERS_CHANNEL_NAME"),
        moderation_channel_name=_get_str("MODERATION_CHANNEL_NAME", "moderation-workflow"),

        google_sheet_id=_get_str("GOOGLE_SHEET_ID"),
        google_sheet_tab=_get_str("GOOGLE_SHEET_TAB", "Flowers"),
        google_service_account_email=_get_str("GOOGLE_SERVICE_ACCOUNT_EMAIL"),
        # .env files carry the key on one line with literal "\n" sequences
        google_private_key=_get_str("GOOGLE_PRIVATE_KEY").replace("\\n", "\n"),

        google_drive_folder_id=_get_str("GOOGLE_DRIVE_FOLDER_ID"),
        google_client_id=_get_str("GOOGLE_CLIENT_ID"),
        google_client_secret=_get_str("GOOGLE_CLIENT_SECRET"),
        google_refresh_token=_get_str("GOOGLE_REFRESH_TOKEN"),

        image_wait_seconds=_get_int("IMAGE_WAIT_SECONDS", IMAGE_WAIT_SECONDS),
        image_upload_timeout_seconds=_get_int("IMAGE_UPLOAD_TIMEOUT_SECONDS", IMAGE_UPLOAD_TIMEOUT_SECONDS),
        wizard_view_timeout_seconds=_get_int("WIZARD_VIEW_TIMEOUT_SECONDS", WIZARD_VIEW_TIMEOUT_SECONDS),

        content_filter_extra_words=_get_list("CONTENT_FILTER_EXTRA_WORDS"),
    )
