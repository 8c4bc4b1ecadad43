from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from ..constants import ANONYMOUS


class Step(str, Enum):
    MESSAGE = "message"
    NAME = "name"
    CONSENT = "consent"
    SHARE_USERNAME = "share_username"
    IMAGE = "image"
    REVIEW = "review"


# Steps a user may jump back to from REVIEW.
EDITABLE_STEPS = (Step.MESSAGE, Step.NAME, Step.CONSENT, Step.SHARE_USERNAME, Step.IMAGE)


@dataclass(frozen=True)
class ImageAttachment:
    url: str
    content_type: str
    filename: str
    size: int = 0


@dataclass
class Draft:
    """In-progress submission for one user."""
    user_id: int
    channel_id: int
    step: Step = Step.MESSAGE
    message: Optional[str] = None
    # None until the name step ran; "" means anonymous.
    display_name: Optional[str] = None
    consent: bool = False
    share_username: bool = False
    image: Optional[ImageAttachment] = None
    # Set when a field is being edited from REVIEW.
    returning_to_review: bool = False
    # Guards against a double-clicked Confirm.
    submitting: bool = False

    @property
    def is_anonymous_name(self) -> bool:
        return not self.display_name

    def effective_identity(self, username: Optional[str]) -> str:
        """Explicit name beats a shared username beats Anonymous."""
        if self.display_name:
            return self.display_name
        if self.share_username and username:
            return username
        return ANONYMOUS

    def shared_username(self, username: Optional[str]) -> Optional[str]:
        return username if (self.share_username and not self.display_name and username) else None
