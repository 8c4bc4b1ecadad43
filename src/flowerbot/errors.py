from __future__ import annotations

from .constants import ERROR_MESSAGES


class FlowerError(Exception):
    """Base class for errors that carry a short, user-safe message."""

    user_message: str = ERROR_MESSAGES["generic"]

    def __init__(self, detail: str = "", *, user_message: str | None = None) -> None:
        super().__init__(detail or self.user_message)
        if user_message is not None:
            self.user_message = user_message


class ValidationError(FlowerError):
    """User-correctable input problem scoped to a single field."""

    def __init__(self, field: str, user_message: str, detail: str = "") -> None:
        super().__init__(detail or f"{field}: {user_message}", user_message=user_message)
        self.field = field


class ContentPolicyError(ValidationError):
    """Text was rejected by the content filter."""


class SessionExpiredError(FlowerError):
    user_message = ERROR_MESSAGES["session_expired"]


class StaleStepError(FlowerError):
    """A control from an earlier step fired; the draft is left untouched."""

    user_message = ERROR_MESSAGES["stale_step"]


class TransientExternalError(FlowerError):
    """A collaborator (sheet, drive, discord) failed; the user may retry."""


class DatastoreError(TransientExternalError):
    pass


class RecordNotFoundError(DatastoreError):
    pass


class ImageStorageError(TransientExternalError):
    pass


class PublishError(TransientExternalError):
    pass


class IntegrityError(FlowerError):
    """A record exists without its announcement and could not be removed."""
