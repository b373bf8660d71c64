from __future__ import annotations

from datetime import datetime
from typing import Optional, Protocol

from flatflow.config import Settings, get_settings
from flatflow.logging import get_logger
from flatflow.models import MemberId
from flatflow.services.authz import assert_group_member
from flatflow.services.cache import Fingerprint, ResultCache, make_fingerprint
from flatflow.services.report import GroupBalanceReport, build_group_report


class SnapshotSource(Protocol):
    async def fetchval(self, query: str, *args: object) -> object: ...

    async def latest_modification(self, group_id: MemberId) -> datetime: ...

    async def load_snapshot(self, group_id: MemberId, last_modified: Optional[datetime] = None): ...


class GroupBalanceService:
    def __init__(
        self,
        repo: SnapshotSource,
        cache: Optional[ResultCache[GroupBalanceReport]] = None,
        settings: Optional[Settings] = None,
    ) -> None:
        if cache is None:
            settings = settings or get_settings()
            cache = ResultCache(
                ttl_seconds=settings.cache_ttl_seconds,
                max_entries=settings.cache_max_entries,
            )
        self.repo = repo
        self.cache = cache
        self._log = get_logger(__name__)

    async def fingerprint(self, group_id: MemberId) -> Fingerprint:
        return make_fingerprint(group_id, await self.repo.latest_modification(group_id))

    async def get_report(self, user_id: MemberId, group_id: MemberId) -> tuple[GroupBalanceReport, bool]:
        """Balance report for ``group_id`` as seen by ``user_id``; second item tells whether it came from cache."""
        await assert_group_member(self.repo, user_id, group_id)
        fingerprint = await self.fingerprint(group_id)

        async def compute() -> GroupBalanceReport:
            snapshot = await self.repo.load_snapshot(group_id, fingerprint.last_modified)
            return build_group_report(
                group_id=snapshot.group_id,
                group_name=snapshot.group_name,
                members=snapshot.members,
                expenses=snapshot.expenses,
                chores=snapshot.chores,
                last_modified=snapshot.last_modified,
            )

        report, hit = await self.cache.get_or_compute(group_id, fingerprint, compute)
        self._log.info("group_balance.served", group_id=group_id, cache="HIT" if hit else "MISS")
        return report, hit
