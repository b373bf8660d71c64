from __future__ import annotations

from typing import Protocol

from flatflow.errors import AuthorizationError
from flatflow.models import MemberId


class Repository(Protocol):
    async def fetchval(self, query: str, *args: object) -> object: ...


async def is_group_member(repo: Repository, user_id: MemberId, group_id: MemberId) -> bool:
    member_id = await repo.fetchval(
        "SELECT user_id FROM group_members WHERE group_id = $1 AND user_id = $2",
        group_id,
        user_id,
    )
    return member_id is not None


async def assert_group_member(repo: Repository, user_id: MemberId, group_id: MemberId) -> None:
    if not await is_group_member(repo, user_id, group_id):
        raise AuthorizationError("Group not found or access denied.")
