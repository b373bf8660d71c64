from __future__ import annotations

from typing import Iterable, Sequence

from flatflow.logging import get_logger
from flatflow.models import ExpenseRecord, Member, MemberId, NetBalance, unique_members

log = get_logger(__name__)


def fold_balances(members: Sequence[Member], expenses: Iterable[ExpenseRecord]) -> dict[MemberId, int]:
    balances: dict[MemberId, int] = {member.id: 0 for member in members}
    for expense in expenses:
        if expense.payer_id in balances:
            balances[expense.payer_id] += expense.total_amount
        for share in expense.shares:
            if share.member_id in balances:
                balances[share.member_id] -= share.owed_amount
    return balances


def compute_net_balances(members: Sequence[Member], expenses: Iterable[ExpenseRecord]) -> list[NetBalance]:
    """Net balance per member, in member order.

    The payer is credited the full amount and every share debits its member,
    paid or not. Ids outside ``members`` are skipped and a repeated member
    id yields a single entry.
    """
    members = unique_members(members)
    balances = fold_balances(members, expenses)
    result = [NetBalance(member_id=member.id, balance=balances[member.id]) for member in members]
    log.debug("balances.computed", members=len(result))
    return result
