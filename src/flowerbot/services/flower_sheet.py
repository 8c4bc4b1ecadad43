from __future__ import annotations

import asyncio
import logging
import uuid
from dataclasses import replace
from typing import Any, Callable, Optional, TypeVar

import gspread
from google.auth.exceptions import GoogleAuthError
from google.oauth2.service_account import Credentials

from ..config import Settings
from ..errors import DatastoreError, FlowerError, RecordNotFoundError, ValidationError
from ..models import BOOLEAN_FIELDS, SHEET_COLUMNS, UPDATABLE_FIELDS, FlowerRecord, NewFlower
from ..utils import iso_now, is_http_url

log = logging.getLogger("flowerbot.flower_sheet")

SCOPES = ["https://www.googleapis.com/auth/spreadsheets"]
HEADER_ROW_COUNT = 1
_LAST_COLUMN = chr(ord("A") + len(SHEET_COLUMNS) - 1)

T = TypeVar("T")


def _validate_record(record: FlowerRecord) -> None:
    if not record.message or not record.message.strip():
        raise ValidationError("message", "Message cannot be empty.")
    if record.picture and not is_http_url(record.picture):
        raise ValidationError("picture", "Picture must be a valid URL.", f"picture={record.picture!r}")


def coerce_field_value(field: str, value: str) -> Any:
    """Convert a string field value to its stored type, rejecting bad input."""
    if field not in UPDATABLE_FIELDS:
        raise ValidationError(
            field,
            f"Invalid field name: '{field}'. Valid fields are: {', '.join(UPDATABLE_FIELDS)}",
        )
    if not isinstance(value, str) or not value:
        raise ValidationError(field, "Value must be a non-empty string.")
    if field in BOOLEAN_FIELDS:
        lowered = value.lower()
        if lowered not in {"true", "false"}:
            raise ValidationError(field, f"Invalid value for '{field}': must be 'true' or 'false', got '{value}'")
        return lowered == "true"
    if field == "picture" and not is_http_url(value):
        raise ValidationError(field, f"Invalid value for 'picture': must be a valid URL, got '{value}'")
    if field == "message" and not value.strip():
        raise ValidationError(field, "Message cannot be empty.")
    return value


class FlowerSheet:
    """Flower records kept in a Google Sheet, one row per submission.

    gspread is synchronous, so every call is pushed to a worker thread.
    Row numbers shift on delete, so find-then-write sequences hold a lock.
    """

    def __init__(
        self,
        worksheet: Optional[gspread.Worksheet] = None,
        *,
        opener: Optional[Callable[[], gspread.Worksheet]] = None,
    ) -> None:
        if worksheet is None and opener is None:
            raise ValueError("FlowerSheet needs a worksheet or an opener")
        self._worksheet = worksheet
        self._opener = opener
        self._open_lock = asyncio.Lock()
        self._write_lock = asyncio.Lock()

    @classmethod
    def from_settings(cls, settings: Settings) -> "FlowerSheet":
        def _open() -> gspread.Worksheet:
            if not settings.sheets_configured:
                raise DatastoreError(
                    "GOOGLE_SHEET_ID, GOOGLE_SERVICE_ACCOUNT_EMAIL and GOOGLE_PRIVATE_KEY must be set"
                )
            creds = Credentials.from_service_account_info(
                {
                    "type": "service_account",
                    "client_email": settings.google_service_account_email,
                    "private_key": settings.google_private_key,
                    "token_uri": "https://oauth2.googleapis.com/token",
                },
                scopes=SCOPES,
            )
            client = gspread.authorize(creds)
            return client.open_by_key(settings.google_sheet_id).worksheet(settings.google_sheet_tab)

        return cls(opener=_open)

    async def _ws(self) -> gspread.Worksheet:
        if self._worksheet is not None:
            return self._worksheet
        async with self._open_lock:
            if self._worksheet is None:
                assert self._opener is not None
                self._worksheet = await self._run("open", lambda _: self._opener())
        return self._worksheet

    async def _run(self, operation: str, fn: Callable[[Any], T]) -> T:
        ws = self._worksheet
        try:
            return await asyncio.to_thread(fn, ws)
        except FlowerError:
            raise
        except (gspread.exceptions.GSpreadException, GoogleAuthError, OSError, ValueError) as e:
            log.exception("Sheet operation %s failed", operation)
            raise DatastoreError(f"sheet {operation} failed: {e}") from e

    @staticmethod
    def _find_row(ws: gspread.Worksheet, flower_id: str) -> Optional[int]:
        ids = ws.col_values(1)
        for index in range(HEADER_ROW_COUNT, len(ids)):
            if ids[index] == flower_id:
                return index + 1
        return None

    async def create(self, flower: NewFlower) -> FlowerRecord:
        """Append a flower and return it with its generated id."""
        record = FlowerRecord(
            id=str(uuid.uuid4()),
            name=flower.name or None,
            username=flower.username or None,
            message=flower.message,
            picture=flower.picture or None,
            website=bool(flower.website),
            approved=False,
            last_updated=iso_now(),
        )
        _validate_record(record)
        await self._ws()
        await self._run(
            "create",
            lambda ws: ws.append_row(
                record.to_row(),
                value_input_option="USER_ENTERED",
                insert_data_option="INSERT_ROWS",
            ),
        )
        log.info("Created flower %s", record.id)
        return record

    async def get(self, flower_id: str) -> Optional[FlowerRecord]:
        await self._ws()

        def _get(ws: gspread.Worksheet) -> Optional[FlowerRecord]:
            row = self._find_row(ws, flower_id)
            if row is None:
                return None
            return FlowerRecord.from_row(ws.row_values(row))

        return await self._run("get", _get)

    async def update(self, flower_id: str, field: str, value: str) -> FlowerRecord:
        """Set one field of a flower from its string encoding."""
        if not flower_id:
            raise ValidationError("id", "ID must be a non-empty string.")
        converted = coerce_field_value(field, value)
        await self._ws()

        def _update(ws: gspread.Worksheet) -> FlowerRecord:
            row = self._find_row(ws, flower_id)
            if row is None:
                raise RecordNotFoundError(f"Flower with ID {flower_id} not found")
            current = FlowerRecord.from_row(ws.row_values(row))
            updated = replace(current, **{field: converted}, last_updated=iso_now())
            _validate_record(updated)
            ws.update(
                range_name=f"A{row}:{_LAST_COLUMN}{row}",
                values=[updated.to_row()],
                value_input_option="USER_ENTERED",
            )
            log.info("Updated field '%s' for flower %s in row %d", field, flower_id, row)
            return updated

        async with self._write_lock:
            return await self._run("update", _update)

    async def delete(self, flower_id: str) -> None:
        await self._ws()

        def _delete(ws: gspread.Worksheet) -> None:
            row = self._find_row(ws, flower_id)
            if row is None:
                raise RecordNotFoundError(f"Flower with ID {flower_id} not found")
            ws.delete_rows(row)
            log.info("Deleted flower %s (row %d)", flower_id, row)

        async with self._write_lock:
            await self._run("delete", _delete)
