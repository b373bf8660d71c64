from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional, Protocol, Sequence

import asyncpg

from flatflow.errors import GroupNotFoundError
from flatflow.logging import get_logger, sql_logger
from flatflow.models import ChoreContribution, ExpenseRecord, Member, MemberId, ShareRecord
from flatflow.services.cache import EPOCH


class Connection(Protocol):
    async def fetch(self, query: str, *args: Any) -> Sequence[Any]: ...

    async def fetchrow(self, query: str, *args: Any) -> Any: ...

    async def fetchval(self, query: str, *args: Any) -> Any: ...


class Database:
    def __init__(self, dsn: str) -> None:
        self._dsn = dsn
        self._pool: asyncpg.Pool | None = None
        self._log = get_logger(__name__)

    async def __aenter__(self) -> Database:
        await self.connect()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    async def connect(self) -> None:
        if self._pool is None:
            # asyncpg wants a plain postgresql:// scheme, without "+asyncpg"
            dsn = self._dsn.replace("+asyncpg", "")
            self._pool = await asyncpg.create_pool(dsn)
            self._log.info("db.pool.created")

    async def close(self) -> None:
        if self._pool is not None:
            await self._pool.close()
            self._pool = None
            self._log.info("db.pool.closed")

    async def fetch(self, query: str, *args: Any) -> list[asyncpg.Record]:
        pool = await self._ensure_pool()
        sql_logger.debug("sql.fetch", query=query, args=args)
        return await pool.fetch(query, *args)

    async def fetchrow(self, query: str, *args: Any) -> asyncpg.Record | None:
        pool = await self._ensure_pool()
        sql_logger.debug("sql.fetchrow", query=query, args=args)
        return await pool.fetchrow(query, *args)

    async def fetchval(self, query: str, *args: Any) -> Any:
        pool = await self._ensure_pool()
        sql_logger.debug("sql.fetchval", query=query, args=args)
        return await pool.fetchval(query, *args)

    async def _ensure_pool(self) -> asyncpg.Pool:
        if self._pool is None:
            await self.connect()
        assert self._pool
        return self._pool


@dataclass(slots=True, frozen=True)
class GroupSnapshot:
    group_id: MemberId
    group_name: str
    members: Sequence[Member]
    expenses: Sequence[ExpenseRecord]
    chores: Sequence[ChoreContribution]
    last_modified: datetime


class GroupSnapshotRepository:
    """Read-only queries that turn stored group data into engine records."""

    def __init__(self, db: Connection) -> None:
        self.db = db

    async def fetchval(self, query: str, *args: Any) -> Any:
        return await self.db.fetchval(query, *args)

    async def get_group(self, group_id: MemberId) -> Optional[Any]:
        return await self.db.fetchrow("SELECT id, name FROM groups WHERE id = $1", group_id)

    async def latest_modification(self, group_id: MemberId) -> datetime:
        value = await self.db.fetchval(
            """
            SELECT GREATEST(
                (SELECT MAX(updated_at) FROM expenses WHERE group_id = $1),
                (SELECT MAX(ca.updated_at)
                   FROM chore_assignments ca
                   JOIN chores c ON c.id = ca.chore_id
                  WHERE c.group_id = $1),
                (SELECT MAX(updated_at) FROM group_members WHERE group_id = $1)
            )
            """,
            group_id,
        )
        return value or EPOCH

    async def load_members(self, group_id: MemberId) -> list[Member]:
        rows = await self.db.fetch(
            """
            SELECT u.id, u.name
            FROM group_members gm
            JOIN users u ON u.id = gm.user_id
            WHERE gm.group_id = $1
            ORDER BY gm.joined_at, u.id
            """,
            group_id,
        )
        return [Member(id=row["id"], display_name=row["name"]) for row in rows]

    async def load_expenses(self, group_id: MemberId) -> list[ExpenseRecord]:
        expense_rows = await self.db.fetch(
            """
            SELECT id, amount, paid_by_id
            FROM expenses
            WHERE group_id = $1
            ORDER BY created_at, id
            """,
            group_id,
        )
        if not expense_rows:
            return []

        share_rows = await self.db.fetch(
            """
            SELECT expense_id, user_id, amount, is_paid
            FROM expense_shares
            WHERE expense_id = ANY($1::bigint[])
            ORDER BY id
            """,
            [row["id"] for row in expense_rows],
        )
        shares: dict[Any, list[ShareRecord]] = {}
        for row in share_rows:
            shares.setdefault(row["expense_id"], []).append(
                ShareRecord(member_id=row["user_id"], owed_amount=row["amount"], is_paid=row["is_paid"])
            )

        return [
            ExpenseRecord(
                id=row["id"],
                total_amount=row["amount"],
                payer_id=row["paid_by_id"],
                shares=tuple(shares.get(row["id"], ())),
            )
            for row in expense_rows
        ]

    async def load_chore_contributions(self, group_id: MemberId) -> list[ChoreContribution]:
        rows = await self.db.fetch(
            """
            SELECT ca.user_id, c.points, ca.is_completed
            FROM chore_assignments ca
            JOIN chores c ON c.id = ca.chore_id
            WHERE c.group_id = $1
            ORDER BY ca.id
            """,
            group_id,
        )
        return [
            ChoreContribution(member_id=row["user_id"], points=row["points"], is_completed=row["is_completed"])
            for row in rows
        ]

    async def load_snapshot(self, group_id: MemberId, last_modified: Optional[datetime] = None) -> GroupSnapshot:
        group = await self.get_group(group_id)
        if group is None:
            raise GroupNotFoundError(f"group {group_id} not found")
        if last_modified is None:
            last_modified = await self.latest_modification(group_id)

        return GroupSnapshot(
            group_id=group_id,
            group_name=group["name"],
            members=tuple(await self.load_members(group_id)),
            expenses=tuple(await self.load_expenses(group_id)),
            chores=tuple(await self.load_chore_contributions(group_id)),
            last_modified=last_modified,
        )
