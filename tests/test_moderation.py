from __future__ import annotations

from datetime import datetime, timezone

import asyncio

import pytest
import pytest_asyncio

from flowerbot.errors import DatastoreError
from flowerbot.models import ModerationTicket, NewFlower, TicketStatus
from flowerbot.services.ticket_store import ModerationTicketStore
from flowerbot.testing.fakes import FakeDatastore, FakeGuild, FakeMessage, FakeTextChannel
from flowerbot.ui.embeds import PENDING_STATUS, STATUS_FIELD
from flowerbot.ui.moderation_views import ModerationDecisionView, parse_decision_custom_id
from flowerbot.wizard.finalizer import ModerationHandoff
from flowerbot.wizard.moderation import REVIEW_HEADER, ModerationWorkflow

MODERATOR = 555


@pytest_asyncio.fixture
async def tickets(tmp_path) -> ModerationTicketStore:
    store = ModerationTicketStore(str(tmp_path / "tickets.sqlite3"))
    await store.init()
    return store


def _setup():
    guild = FakeGuild(id=1111)
    mod_channel = guild.add_channel(FakeTextChannel(id=99, name="moderation-workflow"))
    datastore = FakeDatastore()

    def resolve(guild_id):
        return mod_channel if guild_id == guild.id else None

    return guild, mod_channel, datastore, resolve


async def _queued(workflow: ModerationWorkflow, datastore: FakeDatastore, mod_channel: FakeTextChannel):
    record = await datastore.create(NewFlower(message="Thank you for everything!", website=True, name="Rosa"))
    ticket = await workflow.submit(
        ModerationHandoff(
            guild_id=1111,
            flower_id=record.id,
            announcement_url="https://discord.com/channels/1111/7/1",
            identity="Rosa",
            discord_username="rosa_d",
            message=record.message,
            image_url=None,
            submitted_at=datetime(2026, 5, 1, 12, 0, tzinfo=timezone.utc),
        )
    )
    return record, ticket, mod_channel.sent[-1]


def _status_value(message: FakeMessage) -> str:
    return next(f.value for f in message.embeds[0].fields if f.name == STATUS_FIELD)


@pytest.mark.asyncio
async def test_submit_posts_ticket_with_buttons(tickets) -> None:
    _, mod_channel, datastore, resolve = _setup()
    workflow = ModerationWorkflow(datastore, tickets, resolve)

    record, ticket, message = await _queued(workflow, datastore, mod_channel)

    assert message.content == REVIEW_HEADER
    assert isinstance(message.view, ModerationDecisionView)
    ids = sorted(item.custom_id for item in message.view.children)
    assert ids == [f"flower:mod:approve:{record.id}", f"flower:mod:decline:{record.id}"]
    assert _status_value(message) == PENDING_STATUS
    assert message.embeds[0].url == "https://discord.com/channels/1111/7/1"
    submitted_by = next(f.value for f in message.embeds[0].fields if f.name == "📛 Submitted by")
    assert submitted_by == "rosa_d (Display: Rosa)"

    assert ticket.status is TicketStatus.PENDING
    stored = await tickets.get(message.id)
    assert stored == ticket
    assert [t.message_id for t in await tickets.pending()] == [message.id]


@pytest.mark.asyncio
async def test_submit_without_channel_is_skipped(tickets) -> None:
    datastore = FakeDatastore()
    workflow = ModerationWorkflow(datastore, tickets, lambda guild_id: None)
    ticket = await workflow.submit(
        ModerationHandoff(
            guild_id=1111,
            flower_id="abc",
            announcement_url="https://discord.com/channels/1111/7/1",
            identity="Rosa",
            discord_username="rosa_d",
            message="Thank you for everything!",
            image_url=None,
            submitted_at=datetime.now(timezone.utc),
        )
    )
    assert ticket is None
    assert await tickets.pending() == []


@pytest.mark.asyncio
@pytest.mark.parametrize("approve, status, value", [(True, TicketStatus.APPROVED, "true"), (False, TicketStatus.DECLINED, "false")])
async def test_decision_updates_sheet_then_message(tickets, approve, status, value) -> None:
    _, mod_channel, datastore, resolve = _setup()
    workflow = ModerationWorkflow(datastore, tickets, resolve)
    record, _, message = await _queued(workflow, datastore, mod_channel)

    outcome = await workflow.decide(message, record.id, approve, MODERATOR)

    assert outcome.status is status
    assert outcome.already_decided is False
    assert datastore.updates == [(record.id, "approved", value)]
    assert message.view is None
    assert status.value.upper() in _status_value(message)
    assert f"<@{MODERATOR}>" in _status_value(message)
    assert "Website Publication" in message.content

    stored = await tickets.get(message.id)
    assert stored.status is status
    assert stored.decided_by == MODERATOR
    assert await tickets.pending() == []


@pytest.mark.asyncio
async def test_second_press_does_not_write_again(tickets) -> None:
    _, mod_channel, datastore, resolve = _setup()
    workflow = ModerationWorkflow(datastore, tickets, resolve)
    record, _, message = await _queued(workflow, datastore, mod_channel)

    await workflow.decide(message, record.id, True, MODERATOR)
    again = await workflow.decide(message, record.id, False, MODERATOR + 1)

    assert again.already_decided is True
    assert again.status is TicketStatus.APPROVED
    assert datastore.updates == [(record.id, "approved", "true")]
    assert (await tickets.get(message.id)).decided_by == MODERATOR


class SlowDatastore(FakeDatastore):
    async def update(self, flower_id: str, field: str, value: str):
        await asyncio.sleep(0.01)
        return await super().update(flower_id, field, value)


@pytest.mark.asyncio
async def test_simultaneous_presses_decide_once(tickets) -> None:
    _, mod_channel, _, resolve = _setup()
    datastore = SlowDatastore()
    workflow = ModerationWorkflow(datastore, tickets, resolve)
    record, _, message = await _queued(workflow, datastore, mod_channel)

    approve, decline = await asyncio.gather(
        workflow.decide(message, record.id, True, MODERATOR),
        workflow.decide(message, record.id, False, MODERATOR + 1),
    )

    assert approve.already_decided is False
    assert decline.already_decided is True
    assert decline.status is TicketStatus.APPROVED
    # One sheet write, and it agrees with the ticket.
    assert datastore.updates == [(record.id, "approved", "true")]
    assert (await tickets.get(message.id)).status is TicketStatus.APPROVED
    assert "APPROVED" in _status_value(message)


@pytest.mark.asyncio
async def test_sheet_failure_keeps_ticket_open(tickets) -> None:
    _, mod_channel, datastore, resolve = _setup()
    workflow = ModerationWorkflow(datastore, tickets, resolve)
    record, _, message = await _queued(workflow, datastore, mod_channel)
    datastore.update_error = DatastoreError("sheet unavailable")

    with pytest.raises(DatastoreError):
        await workflow.decide(message, record.id, True, MODERATOR)

    assert message.edits == []
    assert isinstance(message.view, ModerationDecisionView)
    assert (await tickets.get(message.id)).status is TicketStatus.PENDING

    # A retry after the sheet recovers goes through.
    datastore.update_error = None
    outcome = await workflow.decide(message, record.id, True, MODERATOR)
    assert outcome.already_decided is False


@pytest.mark.asyncio
async def test_untracked_ticket_is_recorded_on_decision(tickets) -> None:
    guild, mod_channel, datastore, resolve = _setup()
    workflow = ModerationWorkflow(datastore, tickets, resolve)
    record = await datastore.create(NewFlower(message="Thank you for everything!", website=True))
    message = await mod_channel.send(REVIEW_HEADER, view=None)

    outcome = await workflow.decide(message, record.id, False, MODERATOR)

    assert outcome.status is TicketStatus.DECLINED
    stored = await tickets.get(message.id)
    assert stored.status is TicketStatus.DECLINED
    assert stored.guild_id == guild.id


@pytest.mark.asyncio
async def test_ticket_store_resolve_is_conditional(tickets) -> None:
    ticket = ModerationTicket(
        message_id=1,
        guild_id=2,
        channel_id=3,
        flower_id="f",
        status=TicketStatus.PENDING,
        created_at_iso="2026-05-01T12:00:00.000Z",
    )
    await tickets.add(ticket)
    assert await tickets.resolve(1, TicketStatus.APPROVED, MODERATOR, "2026-05-01T12:05:00") is True
    assert await tickets.resolve(1, TicketStatus.DECLINED, MODERATOR, "2026-05-01T12:06:00") is False
    assert (await tickets.get(1)).status is TicketStatus.APPROVED
    assert await tickets.resolve(404, TicketStatus.APPROVED, MODERATOR, "x") is False
    with pytest.raises(ValueError):
        await tickets.resolve(1, TicketStatus.PENDING, MODERATOR, "x")


@pytest.mark.parametrize(
    "custom_id, parsed",
    [
        ("flower:mod:approve:abc-123", ("approve", "abc-123")),
        ("flower:mod:decline:abc-123", ("decline", "abc-123")),
        ("flower:mod:delete:abc", None),
        ("flower:mod:approve:", None),
        ("gw:join:1:2", None),
        (None, None),
    ],
)
def test_parse_decision_custom_id(custom_id, parsed) -> None:
    assert parse_decision_custom_id(custom_id) == parsed
