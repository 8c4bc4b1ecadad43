"""Field rules for the flower wizard.

Each validator returns the normalised value or raises ``ValidationError`` /
``ContentPolicyError`` with a message that can be shown to the user as-is.
"""
from __future__ import annotations

import os
from typing import Iterable, Optional, Protocol

from ..constants import (
    ALLOWED_IMAGE_EXTENSIONS,
    ALLOWED_IMAGE_TYPES,
    MAX_IMAGE_BYTES,
    MESSAGE_MAX_LENGTH,
    MESSAGE_MIN_LENGTH,
    NAME_MAX_LENGTH,
)
from ..errors import ContentPolicyError, ValidationError
from ..services.content_filter import ContentFilter
from ..utils import is_http_url
from .draft import Draft, ImageAttachment


class AttachmentLike(Protocol):
    url: str
    filename: str
    content_type: Optional[str]
    size: int


def validate_message(text: Optional[str], content_filter: ContentFilter) -> str:
    message = (text or "").strip()
    if not message:
        raise ValidationError("message", "❌ Message cannot be empty. Please provide your flower message.")
    if len(message) < MESSAGE_MIN_LENGTH:
        raise ValidationError("message", f"❌ Please provide at least {MESSAGE_MIN_LENGTH} characters for your message.")
    if len(message) > MESSAGE_MAX_LENGTH:
        raise ValidationError("message", f"❌ Message is too long. Please keep it under {MESSAGE_MAX_LENGTH} characters.")
    if content_filter.is_inappropriate(message):
        raise ContentPolicyError(
            "message",
            "❌ Your message contains inappropriate language. Please keep it positive and respectful.",
        )
    return message


def validate_name(text: Optional[str], content_filter: ContentFilter) -> str:
    """Returns the trimmed name; an empty string means anonymous."""
    name = (text or "").strip()
    if len(name) > NAME_MAX_LENGTH:
        raise ValidationError("name", f"❌ Name is too long. Please keep it under {NAME_MAX_LENGTH} characters.")
    if name and content_filter.is_inappropriate(name):
        raise ContentPolicyError(
            "name",
            "❌ Your name contains inappropriate language. Please enter a different name or leave blank.",
        )
    return name


def is_allowed_image(content_type: Optional[str], filename: Optional[str]) -> bool:
    ctype = (content_type or "").split(";", 1)[0].strip().lower()
    if ctype in ALLOWED_IMAGE_TYPES:
        return True
    _, ext = os.path.splitext((filename or "").lower())
    return ext in ALLOWED_IMAGE_EXTENSIONS


def first_image(attachments: Iterable[AttachmentLike]) -> Optional[AttachmentLike]:
    for attachment in attachments:
        if is_allowed_image(attachment.content_type, attachment.filename):
            return attachment
    return None


def validate_image(attachments: Iterable[AttachmentLike]) -> ImageAttachment:
    """Pick the first supported image and check its size."""
    attachment = first_image(attachments)
    if attachment is None:
        raise ValidationError("image", "❌ That wasn't an image. Please send a PNG, JPEG, WebP, or GIF file.")
    size = int(attachment.size or 0)
    if size > MAX_IMAGE_BYTES:
        raise ValidationError(
            "image",
            f"❌ Image is too large ({size / 1024 / 1024:.2f}MB). Maximum size is 25MB. "
            "Please compress or use a smaller image.",
        )
    if not is_http_url(attachment.url):
        raise ValidationError("image", "❌ Invalid image URL. Please try uploading the image again.")
    return ImageAttachment(
        url=attachment.url,
        content_type=attachment.content_type or "image/png",
        filename=attachment.filename or "image.png",
        size=size,
    )


def validate_for_submit(draft: Draft, content_filter: ContentFilter) -> None:
    """Re-check every field before finalizing; intermediate state may have drifted."""
    message = (draft.message or "").strip()
    if len(message) < MESSAGE_MIN_LENGTH:
        raise ValidationError(
            "message",
            f"❌ You must have a message (at least {MESSAGE_MIN_LENGTH} characters) before confirming.",
        )
    if len(message) > MESSAGE_MAX_LENGTH:
        raise ValidationError("message", f"❌ Message is too long. Please keep it under {MESSAGE_MAX_LENGTH} characters.")
    if draft.image is not None and not is_http_url(draft.image.url):
        raise ValidationError("image", "❌ Invalid image URL. Please try uploading the image again.")
    if content_filter.is_inappropriate(message):
        raise ContentPolicyError("message", "❌ Your message contains inappropriate language. Please edit your message.")
    if draft.display_name and content_filter.is_inappropriate(draft.display_name):
        raise ContentPolicyError("name", "❌ Your name contains inappropriate language. Please edit your name.")
