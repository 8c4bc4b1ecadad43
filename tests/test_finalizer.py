from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock

import discord
import pytest

from flowerbot.errors import DatastoreError, ImageStorageError, IntegrityError, PublishError, ValidationError
from flowerbot.testing.fakes import FakeDatastore, FakeGuild, FakeTextChannel
from flowerbot.wizard.draft import Draft, ImageAttachment, Step
from flowerbot.wizard.finalizer import IMAGE_WARNING, ModerationHandoff, SubmissionFinalizer, Submitter

CDN_URL = "https://cdn.discordapp.com/attachments/1/2/rose.png"
DRIVE_URL = "https://drive.google.com/uc?id=abc123"


def _draft(*, name: str = "Rosa", consent: bool = True, share: bool = False, image: bool = True) -> Draft:
    return Draft(
        user_id=42,
        channel_id=7,
        step=Step.REVIEW,
        message="  Thank you for the lovely flowers!  ",
        display_name=name,
        consent=consent,
        share_username=share,
        image=ImageAttachment(url=CDN_URL, content_type="image/png", filename="rose.png") if image else None,
        submitting=True,
    )


def _channel() -> FakeTextChannel:
    guild = FakeGuild(id=1111)
    return guild.add_channel(FakeTextChannel(id=7, name="flowers"))


SUBMITTER = Submitter(user_id=42, username="rosa_d", guild_id=1111)


def _image_store(result=DRIVE_URL) -> AsyncMock:
    store = AsyncMock()
    if isinstance(result, Exception):
        store.store.side_effect = result
    else:
        store.store.return_value = result
    return store


@pytest.mark.asyncio
async def test_consented_submission_is_stored_announced_and_queued() -> None:
    datastore = FakeDatastore()
    moderation = AsyncMock()
    channel = _channel()
    finalizer = SubmissionFinalizer(datastore, _image_store(), moderation)

    result = await finalizer.finalize(_draft(), SUBMITTER, channel)

    new = datastore.created[0]
    assert new.message == "Thank you for the lovely flowers!"
    assert new.name == "Rosa"
    assert new.username is None
    assert new.website is True
    assert new.picture == DRIVE_URL

    assert len(channel.sent) == 1
    embed = channel.sent[0].embeds[0]
    assert embed.footer.text == f"Flower ID: {result.record.id}"
    assert embed.image.url == DRIVE_URL
    assert embed.fields[0].value == "Rosa"

    moderation.submit.assert_awaited_once()
    handoff: ModerationHandoff = moderation.submit.await_args.args[0]
    assert handoff.flower_id == result.record.id
    assert handoff.announcement_url == channel.sent[0].jump_url
    assert handoff.guild_id == 1111
    assert handoff.identity == "Rosa"
    assert handoff.discord_username == "rosa_d"
    assert result.sent_to_moderation is True
    assert result.image_warning is None


@pytest.mark.asyncio
async def test_no_consent_skips_moderation() -> None:
    datastore = FakeDatastore()
    moderation = AsyncMock()
    finalizer = SubmissionFinalizer(datastore, _image_store(), moderation)

    result = await finalizer.finalize(_draft(consent=False), SUBMITTER, _channel())

    moderation.submit.assert_not_awaited()
    assert result.sent_to_moderation is False
    assert datastore.created[0].website is False


@pytest.mark.asyncio
async def test_shared_username_is_recorded_only_when_anonymous() -> None:
    datastore = FakeDatastore()
    channel = _channel()
    finalizer = SubmissionFinalizer(datastore, None, None)

    result = await finalizer.finalize(_draft(name="", share=True, image=False), SUBMITTER, channel)

    assert datastore.created[0].name is None
    assert datastore.created[0].username == "rosa_d"
    assert result.identity == "rosa_d"


@pytest.mark.asyncio
async def test_anonymous_identity() -> None:
    finalizer = SubmissionFinalizer(FakeDatastore(), None, None)
    result = await finalizer.finalize(_draft(name="", share=False, image=False), SUBMITTER, _channel())
    assert result.identity == "Anonymous"
    assert result.image_warning is None


@pytest.mark.asyncio
async def test_image_upload_failure_is_soft() -> None:
    datastore = FakeDatastore()
    channel = _channel()
    finalizer = SubmissionFinalizer(datastore, _image_store(ImageStorageError("drive down")), None)

    result = await finalizer.finalize(_draft(consent=False), SUBMITTER, channel)

    assert datastore.created[0].picture is None
    assert result.image_warning == IMAGE_WARNING
    # The announcement still shows the original attachment.
    assert channel.sent[0].embeds[0].image.url == CDN_URL


@pytest.mark.asyncio
async def test_unexpected_image_store_error_is_soft() -> None:
    datastore = FakeDatastore()
    channel = _channel()
    store = _image_store(ValueError("Unable to load PEM file"))
    finalizer = SubmissionFinalizer(datastore, store, None)

    result = await finalizer.finalize(_draft(consent=False), SUBMITTER, channel)

    assert len(datastore.created) == 1
    assert datastore.created[0].picture is None
    assert result.image_warning == IMAGE_WARNING
    assert len(channel.sent) == 1


@pytest.mark.asyncio
async def test_image_upload_timeout_is_soft() -> None:
    async def slow_store(url: str) -> str:
        await asyncio.sleep(5)
        return DRIVE_URL

    store = AsyncMock()
    store.store.side_effect = slow_store
    datastore = FakeDatastore()
    finalizer = SubmissionFinalizer(datastore, store, None, upload_timeout=0.01)

    result = await finalizer.finalize(_draft(consent=False), SUBMITTER, _channel())

    assert datastore.created[0].picture is None
    assert result.image_warning == IMAGE_WARNING


@pytest.mark.asyncio
async def test_datastore_failure_publishes_nothing() -> None:
    datastore = FakeDatastore()
    datastore.create_error = DatastoreError("sheet unavailable")
    channel = _channel()
    moderation = AsyncMock()
    finalizer = SubmissionFinalizer(datastore, _image_store(), moderation)

    with pytest.raises(DatastoreError):
        await finalizer.finalize(_draft(), SUBMITTER, channel)
    assert channel.sent == []
    moderation.submit.assert_not_awaited()


@pytest.mark.asyncio
async def test_publish_failure_rolls_back_record() -> None:
    datastore = FakeDatastore()
    channel = _channel()
    channel.send_error = discord.Forbidden(AsyncMock(status=403, reason="Forbidden"), "Missing Access")
    moderation = AsyncMock()
    finalizer = SubmissionFinalizer(datastore, _image_store(), moderation)

    with pytest.raises(PublishError):
        await finalizer.finalize(_draft(), SUBMITTER, channel)

    created_id = next(iter(datastore.deleted))
    assert created_id.startswith("flower-")
    assert datastore.records == {}
    moderation.submit.assert_not_awaited()


@pytest.mark.asyncio
async def test_failed_rollback_is_an_integrity_error() -> None:
    datastore = FakeDatastore()
    datastore.delete_error = DatastoreError("sheet unavailable")
    channel = _channel()
    channel.send_error = RuntimeError("gateway hiccup")
    finalizer = SubmissionFinalizer(datastore, None, None)

    with pytest.raises(IntegrityError):
        await finalizer.finalize(_draft(image=False), SUBMITTER, channel)
    assert len(datastore.records) == 1


@pytest.mark.asyncio
async def test_moderation_failure_propagates_after_publish() -> None:
    datastore = FakeDatastore()
    channel = _channel()
    moderation = AsyncMock()
    moderation.submit.side_effect = RuntimeError("moderation channel unavailable")
    finalizer = SubmissionFinalizer(datastore, None, moderation)

    with pytest.raises(RuntimeError):
        await finalizer.finalize(_draft(image=False), SUBMITTER, channel)
    # The announcement stands and the record is kept.
    assert len(channel.sent) == 1
    assert len(datastore.records) == 1


@pytest.mark.asyncio
async def test_draft_without_message_is_rejected() -> None:
    datastore = FakeDatastore()
    channel = _channel()
    draft = _draft(image=False)
    draft.message = None
    finalizer = SubmissionFinalizer(datastore, None, None)

    with pytest.raises(ValidationError):
        await finalizer.finalize(draft, SUBMITTER, channel)
    assert datastore.created == []
    assert channel.sent == []
