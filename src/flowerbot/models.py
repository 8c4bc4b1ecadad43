from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

# Sheet column order, one header row above the data.
SHEET_COLUMNS = ("id", "name", "username", "message", "picture", "website", "approved", "lastUpdated")
UPDATABLE_FIELDS = ("name", "username", "message", "picture", "website", "approved")
BOOLEAN_FIELDS = ("website", "approved")


@dataclass(frozen=True)
class NewFlower:
    """A flower ready to be written; id, approval and timestamp are assigned by the store."""
    message: str
    website: bool
    name: Optional[str] = None
    username: Optional[str] = None
    picture: Optional[str] = None


@dataclass(frozen=True)
class FlowerRecord:
    id: str
    message: str
    website: bool
    approved: bool
    last_updated: str
    name: Optional[str] = None
    username: Optional[str] = None
    picture: Optional[str] = None

    def to_row(self) -> list:
        return [
            self.id,
            self.name or "",
            self.username or "",
            self.message,
            self.picture or "",
            self.website,
            self.approved,
            self.last_updated,
        ]

    @classmethod
    def from_row(cls, row: list) -> "FlowerRecord":
        cells = [str(c) if c is not None else "" for c in row] + [""] * (len(SHEET_COLUMNS) - len(row))
        return cls(
            id=cells[0],
            name=cells[1] or None,
            username=cells[2] or None,
            message=cells[3],
            picture=cells[4] or None,
            website=_cell_bool(cells[5]),
            approved=_cell_bool(cells[6]),
            last_updated=cells[7],
        )


def _cell_bool(value: str) -> bool:
    # Sheets renders USER_ENTERED booleans as TRUE/FALSE
    return value.strip().upper() == "TRUE"


class TicketStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    DECLINED = "declined"

    @property
    def terminal(self) -> bool:
        return self is not TicketStatus.PENDING


@dataclass(frozen=True)
class ModerationTicket:
    message_id: int
    guild_id: int
    channel_id: int
    flower_id: str
    status: TicketStatus
    created_at_iso: str
    decided_by: Optional[int] = None
    decided_at_iso: Optional[str] = None
