from __future__ import annotations

from typing import Iterable, List, Optional, Sequence

from flatflow.logging import get_logger
from flatflow.models import Member, MemberId, NetBalance, Settlement

log = get_logger(__name__)


def _find_extremes(balances: dict[MemberId, int]) -> tuple[Optional[MemberId], Optional[MemberId]]:
    max_debtor: Optional[MemberId] = None
    max_debt = 0
    max_creditor: Optional[MemberId] = None
    max_credit = 0

    for member_id, balance in balances.items():
        # strict comparison: the first member seen keeps a tie
        if balance < 0 and -balance > max_debt:
            max_debt = -balance
            max_debtor = member_id
        elif balance > 0 and balance > max_credit:
            max_credit = balance
            max_creditor = member_id

    return max_debtor, max_creditor


def plan_settlements(members: Sequence[Member], net_balances: Iterable[NetBalance]) -> List[Settlement]:
    """Greedy settlement plan: repeatedly match the largest debtor with the largest creditor.

    Every round zeroes at least one side, so ``n`` members with a nonzero
    balance produce at most ``n - 1`` transfers. The result is deterministic
    for a fixed member order but not guaranteed to be the minimum possible
    number of transfers.
    """
    balances: dict[MemberId, int] = {member.id: 0 for member in members}
    for net in net_balances:
        if net.member_id in balances:
            balances[net.member_id] = net.balance

    settlements: list[Settlement] = []
    while True:
        debtor, creditor = _find_extremes(balances)
        if debtor is None or creditor is None:
            break

        amount = min(-balances[debtor], balances[creditor])
        settlements.append(Settlement(from_member_id=debtor, to_member_id=creditor, amount=amount))

        balances[debtor] += amount
        balances[creditor] -= amount

    log.debug("settlements.planned", members=len(balances), settlements=len(settlements))
    return settlements


def outstanding_debts(member_id: MemberId, settlements: Iterable[Settlement]) -> list[Settlement]:
    return [s for s in settlements if s.from_member_id == member_id]


def amounts_owed(member_id: MemberId, settlements: Iterable[Settlement]) -> list[Settlement]:
    return [s for s in settlements if s.to_member_id == member_id]


def total_debt(member_id: MemberId, settlements: Iterable[Settlement]) -> int:
    return sum(s.amount for s in outstanding_debts(member_id, settlements))


def total_owed(member_id: MemberId, settlements: Iterable[Settlement]) -> int:
    return sum(s.amount for s in amounts_owed(member_id, settlements))
