from __future__ import annotations

import gspread
import pytest

from flowerbot.errors import DatastoreError, RecordNotFoundError, ValidationError
from flowerbot.models import SHEET_COLUMNS, FlowerRecord, NewFlower
from flowerbot.services.flower_sheet import FlowerSheet, coerce_field_value
from flowerbot.testing.fakes import FakeWorksheet


@pytest.fixture
def worksheet() -> FakeWorksheet:
    return FakeWorksheet(header=list(SHEET_COLUMNS))


@pytest.mark.asyncio
async def test_create_appends_row_in_column_order(worksheet) -> None:
    sheet = FlowerSheet(worksheet)
    record = await sheet.create(
        NewFlower(message="Thanks for everything!", website=True, name="Rosa", picture="https://drive.google.com/uc?id=1")
    )

    assert len(worksheet.rows) == 2
    row = worksheet.rows[1]
    assert row[0] == record.id
    assert row[1:5] == ["Rosa", "", "Thanks for everything!", "https://drive.google.com/uc?id=1"]
    assert row[5].upper() == "TRUE"
    assert row[6].upper() == "FALSE"
    assert record.approved is False
    assert record.last_updated.endswith("Z")


@pytest.mark.asyncio
async def test_get_reads_back_record(worksheet) -> None:
    sheet = FlowerSheet(worksheet)
    created = await sheet.create(NewFlower(message="Thanks for everything!", website=False, username="rosa_d"))

    fetched = await sheet.get(created.id)
    assert fetched == created
    assert await sheet.get("missing") is None


@pytest.mark.asyncio
async def test_update_approved_flag(worksheet) -> None:
    sheet = FlowerSheet(worksheet)
    first = await sheet.create(NewFlower(message="First flower here", website=True))
    second = await sheet.create(NewFlower(message="Second flower here", website=True))

    updated = await sheet.update(second.id, "approved", "TRUE")

    assert updated.approved is True
    assert (await sheet.get(second.id)).approved is True
    assert (await sheet.get(first.id)).approved is False


@pytest.mark.asyncio
async def test_update_unknown_record(worksheet) -> None:
    sheet = FlowerSheet(worksheet)
    with pytest.raises(RecordNotFoundError):
        await sheet.update("nope", "approved", "true")


@pytest.mark.asyncio
async def test_update_rejects_bad_input_before_touching_sheet(worksheet) -> None:
    sheet = FlowerSheet(worksheet)
    with pytest.raises(ValidationError):
        await sheet.update("some-id", "id", "x")
    with pytest.raises(ValidationError):
        await sheet.update("some-id", "approved", "yes")
    with pytest.raises(ValidationError):
        await sheet.update("", "approved", "true")
    assert "col_values" not in worksheet.calls


@pytest.mark.asyncio
async def test_delete_removes_row(worksheet) -> None:
    sheet = FlowerSheet(worksheet)
    keep = await sheet.create(NewFlower(message="Keep this flower", website=False))
    drop = await sheet.create(NewFlower(message="Drop this flower", website=False))

    await sheet.delete(drop.id)

    assert await sheet.get(drop.id) is None
    assert await sheet.get(keep.id) is not None
    with pytest.raises(RecordNotFoundError):
        await sheet.delete(drop.id)


@pytest.mark.asyncio
async def test_gspread_errors_become_datastore_errors(worksheet) -> None:
    def broken(*args, **kwargs):
        raise gspread.exceptions.GSpreadException("quota exceeded")

    worksheet.append_row = broken
    sheet = FlowerSheet(worksheet)
    with pytest.raises(DatastoreError):
        await sheet.create(NewFlower(message="Thanks for everything!", website=False))


@pytest.mark.asyncio
async def test_worksheet_opened_lazily_once(worksheet) -> None:
    opened: list[int] = []

    def opener():
        opened.append(1)
        return worksheet

    sheet = FlowerSheet(opener=opener)
    assert opened == []
    await sheet.create(NewFlower(message="Thanks for everything!", website=False))
    await sheet.create(NewFlower(message="Thanks again, friend!", website=False))
    assert opened == [1]


def test_sheet_needs_a_source() -> None:
    with pytest.raises(ValueError):
        FlowerSheet()


@pytest.mark.parametrize(
    "field, value, expected",
    [
        ("approved", "true", True),
        ("website", "False", False),
        ("name", "Rosa", "Rosa"),
        ("picture", "https://example.com/a.png", "https://example.com/a.png"),
    ],
)
def test_coerce_field_value(field, value, expected) -> None:
    assert coerce_field_value(field, value) == expected


@pytest.mark.parametrize(
    "field, value",
    [("lastUpdated", "x"), ("approved", ""), ("picture", "not-a-url"), ("message", "   ")],
)
def test_coerce_field_value_rejects(field, value) -> None:
    with pytest.raises(ValidationError):
        coerce_field_value(field, value)


def test_from_row_pads_short_rows() -> None:
    record = FlowerRecord.from_row(["abc", "", "", "hello there"])
    assert record.id == "abc"
    assert record.name is None
    assert record.website is False
    assert record.last_updated == ""
