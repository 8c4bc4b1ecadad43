from __future__ import annotations

import logging
from typing import Awaitable, Callable, Iterable, Optional

from ..errors import SessionExpiredError, StaleStepError, ValidationError
from ..services.content_filter import ContentFilter
from .draft import EDITABLE_STEPS, Draft, ImageAttachment, Step
from .sessions import SessionTable
from .validation import AttachmentLike, validate_for_submit, validate_image, validate_message, validate_name

log = logging.getLogger("flowerbot.wizard")

ImageProbe = Callable[[str], Awaitable[bool]]


class FlowerWizard:
    """Step transitions for the /flower submission flow.

    MESSAGE -> NAME -> CONSENT -> [SHARE_USERNAME when no name] -> IMAGE -> REVIEW.
    From REVIEW any field can be edited; the flow then returns straight to
    REVIEW with the other answers kept. Every handler checks the draft is at
    the step it serves, and validation failures leave the draft untouched.
    """

    def __init__(
        self,
        sessions: SessionTable,
        content_filter: ContentFilter,
        image_probe: Optional[ImageProbe] = None,
    ) -> None:
        self.sessions = sessions
        self.content_filter = content_filter
        self._image_probe = image_probe

    # -- session lifecycle -------------------------------------------------

    def start(self, user_id: int, channel_id: int) -> Draft:
        draft = self.sessions.open(Draft(user_id=user_id, channel_id=channel_id))
        log.info("Flower session started for user %s in channel %s", user_id, channel_id)
        return draft

    def finish(self, user_id: int) -> None:
        self.sessions.close(user_id)

    def require(self, user_id: int, *steps: Step) -> Draft:
        draft = self.sessions.get(user_id)
        if draft is None:
            raise SessionExpiredError(f"no flower draft for user {user_id}")
        if draft.submitting:
            raise StaleStepError(f"user {user_id} is already submitting")
        if steps and draft.step not in steps:
            raise StaleStepError(
                f"user {user_id} is at {draft.step.value}, handler expects {[s.value for s in steps]}"
            )
        return draft

    @staticmethod
    def _advance(draft: Draft, next_step: Step) -> None:
        if draft.returning_to_review:
            draft.returning_to_review = False
            draft.step = Step.REVIEW
        else:
            draft.step = next_step

    # -- steps -------------------------------------------------------------

    def submit_message(self, user_id: int, text: Optional[str]) -> Draft:
        """Accepted at MESSAGE, or at REVIEW to edit the message in place."""
        draft = self.require(user_id, Step.MESSAGE, Step.REVIEW)
        draft.message = validate_message(text, self.content_filter)
        if draft.step is Step.MESSAGE:
            self._advance(draft, Step.NAME)
        return draft

    def submit_name(self, user_id: int, text: Optional[str]) -> Draft:
        """Accepted at NAME, or at REVIEW to edit the name in place."""
        draft = self.require(user_id, Step.NAME, Step.REVIEW)
        name = validate_name(text, self.content_filter)
        editing = draft.step is Step.REVIEW or draft.returning_to_review
        draft.display_name = name
        if name:
            # A real name always wins; the username question no longer applies.
            draft.share_username = False
            if editing:
                draft.returning_to_review = False
                draft.step = Step.REVIEW
            else:
                draft.step = Step.CONSENT
        elif editing:
            # Consent is already known; only the username question is new.
            draft.returning_to_review = True
            draft.step = Step.SHARE_USERNAME
        else:
            draft.step = Step.CONSENT
        return draft

    def set_consent(self, user_id: int, consent: bool) -> Draft:
        draft = self.require(user_id, Step.CONSENT)
        draft.consent = bool(consent)
        if draft.returning_to_review:
            self._advance(draft, Step.REVIEW)
        elif draft.is_anonymous_name:
            draft.step = Step.SHARE_USERNAME
        else:
            draft.step = Step.IMAGE
        return draft

    def set_share_username(self, user_id: int, share: bool) -> Draft:
        draft = self.require(user_id, Step.SHARE_USERNAME)
        draft.share_username = bool(share) and draft.is_anonymous_name
        self._advance(draft, Step.IMAGE)
        return draft

    def begin_image(self, user_id: int) -> Draft:
        return self.require(user_id, Step.IMAGE)

    def attach_image(self, user_id: int, image: ImageAttachment) -> Draft:
        draft = self.require(user_id, Step.IMAGE)
        draft.image = image
        draft.returning_to_review = False
        draft.step = Step.REVIEW
        return draft

    async def accept_image(self, user_id: int, attachments: Iterable[AttachmentLike]) -> Draft:
        """Validate a collected message's attachments and move to REVIEW."""
        self.require(user_id, Step.IMAGE)
        image = validate_image(attachments)
        if self._image_probe is not None and not await self._image_probe(image.url):
            raise ValidationError(
                "image",
                "❌ I couldn't download that image. Please try uploading it again or skip this step.",
            )
        return self.attach_image(user_id, image)

    def skip_image(self, user_id: int) -> Draft:
        """Move on without a new image; an image kept from earlier stays."""
        draft = self.require(user_id, Step.IMAGE)
        self.sessions.stop_collector(user_id)
        draft.returning_to_review = False
        draft.step = Step.REVIEW
        return draft

    def remove_image(self, user_id: int) -> Draft:
        draft = self.require(user_id, Step.REVIEW)
        draft.image = None
        return draft

    def edit(self, user_id: int, step: Step) -> Draft:
        draft = self.require(user_id, Step.REVIEW)
        if step not in EDITABLE_STEPS:
            raise ValueError(f"{step} is not editable")
        if step is Step.SHARE_USERNAME and not draft.is_anonymous_name:
            raise ValidationError(
                "share_username",
                "Username sharing only applies when no name is given. Clear your name first.",
            )
        draft.step = step
        draft.returning_to_review = True
        return draft

    def confirm(self, user_id: int) -> Draft:
        """Final checks before handing the draft to the finalizer."""
        draft = self.require(user_id, Step.REVIEW)
        validate_for_submit(draft, self.content_filter)
        self.sessions.stop_collector(user_id)
        draft.submitting = True
        return draft
