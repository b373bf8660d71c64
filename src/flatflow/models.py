from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Sequence, Union

MemberId = Union[int, str]
RecordId = Union[int, str]


@dataclass(slots=True, frozen=True)
class Member:
    id: MemberId
    display_name: str


@dataclass(slots=True, frozen=True)
class ShareRecord:
    member_id: MemberId
    owed_amount: int
    # Informational only: balances debit paid and unpaid shares alike.
    is_paid: bool = False


@dataclass(slots=True, frozen=True)
class ExpenseRecord:
    id: RecordId
    total_amount: int
    payer_id: MemberId
    shares: Sequence[ShareRecord] = field(default_factory=tuple)


@dataclass(slots=True, frozen=True)
class ChoreContribution:
    member_id: MemberId
    points: int
    is_completed: bool


@dataclass(slots=True, frozen=True)
class NetBalance:
    member_id: MemberId
    balance: int


@dataclass(slots=True, frozen=True)
class Settlement:
    from_member_id: MemberId
    to_member_id: MemberId
    amount: int


@dataclass(slots=True, frozen=True)
class FairnessScore:
    member_id: MemberId
    score: int
    expense_subscore: int
    chore_subscore: int
    raw_contribution: int


def unique_members(members: Iterable[Member]) -> list[Member]:
    """Members with repeated ids dropped; the first occurrence wins."""
    seen: set[MemberId] = set()
    result: list[Member] = []
    for member in members:
        if member.id not in seen:
            seen.add(member.id)
            result.append(member)
    return result
