from __future__ import annotations

from typing import Optional

import aiosqlite

from ..models import ModerationTicket, TicketStatus
from .base import SqliteStore

_COLUMNS = "message_id, guild_id, channel_id, flower_id, status, decided_by, decided_at_iso, created_at_iso"


class ModerationTicketStore(SqliteStore[ModerationTicket]):
    """Moderation tickets keyed by the Discord message that carries them.

    A ticket only ever leaves ``pending`` once; ``resolve`` is a conditional
    update so a second decision on the same ticket is rejected here rather
    than written to the sheet again.
    """

    async def _create_tables(self, db: aiosqlite.Connection) -> None:
        await db.execute(
            """
            CREATE TABLE IF NOT EXISTS moderation_tickets (
              message_id INTEGER PRIMARY KEY,
              guild_id INTEGER NOT NULL,
              channel_id INTEGER NOT NULL,
              flower_id TEXT NOT NULL,
              status TEXT NOT NULL DEFAULT 'pending',
              decided_by INTEGER NULL,
              decided_at_iso TEXT NULL,
              created_at_iso TEXT NOT NULL
            )
            """
        )
        await db.execute("CREATE INDEX IF NOT EXISTS idx_modtickets_status ON moderation_tickets(status)")
        await db.execute("CREATE INDEX IF NOT EXISTS idx_modtickets_flower ON moderation_tickets(flower_id)")

    def _from_row(self, row: aiosqlite.Row) -> ModerationTicket:
        return ModerationTicket(
            message_id=int(row["message_id"]),
            guild_id=int(row["guild_id"]),
            channel_id=int(row["channel_id"]),
            flower_id=str(row["flower_id"]),
            status=TicketStatus(row["status"]),
            decided_by=(int(row["decided_by"]) if row["decided_by"] is not None else None),
            decided_at_iso=(str(row["decided_at_iso"]) if row["decided_at_iso"] is not None else None),
            created_at_iso=str(row["created_at_iso"]),
        )

    async def get(self, message_id: int) -> Optional[ModerationTicket]:
        return await self._fetch_one(
            f"SELECT {_COLUMNS} FROM moderation_tickets WHERE message_id = ?", (message_id,)
        )

    async def add(self, ticket: ModerationTicket) -> None:
        await self._write(
            f"INSERT OR REPLACE INTO moderation_tickets ({_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
            (
                ticket.message_id,
                ticket.guild_id,
                ticket.channel_id,
                ticket.flower_id,
                ticket.status.value,
                ticket.decided_by,
                ticket.decided_at_iso,
                ticket.created_at_iso,
            ),
        )

    async def pending(self) -> list[ModerationTicket]:
        return await self._fetch_all(
            f"SELECT {_COLUMNS} FROM moderation_tickets WHERE status = ? ORDER BY created_at_iso",
            (TicketStatus.PENDING.value,),
        )

    async def resolve(
        self,
        message_id: int,
        status: TicketStatus,
        moderator_id: int,
        decided_at_iso: str,
    ) -> bool:
        """Move a pending ticket to a terminal status. Returns False if it was already decided."""
        if not status.terminal:
            raise ValueError("resolve() needs a terminal status")
        changed = await self._write(
            """
            UPDATE moderation_tickets
            SET status = ?, decided_by = ?, decided_at_iso = ?
            WHERE message_id = ? AND status = ?
            """,
            (status.value, moderator_id, decided_at_iso, message_id, TicketStatus.PENDING.value),
        )
        return changed == 1
