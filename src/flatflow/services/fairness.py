from __future__ import annotations

import math
from dataclasses import dataclass
from fractions import Fraction
from typing import Iterable, Sequence

from flatflow.logging import get_logger
from flatflow.models import ChoreContribution, ExpenseRecord, FairnessScore, Member, MemberId, unique_members

log = get_logger(__name__)

EXPENSE_WEIGHT = Fraction(50)
CHORE_WEIGHT = Fraction(50)
NEUTRAL_CHORE_SCORE = Fraction(25)
UNASSIGNED_CHORE_SCORE = Fraction(20)
POINT_VALUE = 10


@dataclass(slots=True)
class _ExpenseTally:
    paid: int = 0
    owed: int = 0


@dataclass(slots=True)
class _ChoreTally:
    completed: int = 0
    total: int = 0
    points: int = 0


def round_half_up(value: Fraction) -> int:
    return math.floor(value + Fraction(1, 2))


def _clamp(value: Fraction, low: Fraction, high: Fraction) -> Fraction:
    return min(max(value, low), high)


def expense_component(tally: _ExpenseTally) -> Fraction:
    if tally.owed > 0:
        return _clamp(Fraction(tally.paid, tally.owed) * EXPENSE_WEIGHT, Fraction(0), EXPENSE_WEIGHT)
    # nothing owed: full credit whether or not they paid anything
    return EXPENSE_WEIGHT


def chore_component(tally: _ChoreTally, group_points: int) -> Fraction:
    if tally.total > 0:
        return Fraction(tally.completed, tally.total) * CHORE_WEIGHT
    if group_points == 0:
        return NEUTRAL_CHORE_SCORE
    return UNASSIGNED_CHORE_SCORE


def compute_fairness_scores(
    members: Sequence[Member],
    expenses: Iterable[ExpenseRecord],
    chores: Iterable[ChoreContribution],
) -> list[FairnessScore]:
    """Blend expense and chore contribution into a 0-100 score per member.

    Each half is worth up to 50 points. The expense half is the ratio of what
    a member fronted to what they owe; the chore half is their completion
    rate. Members without chores get 25 when the group has no chore points at
    all and 20 when others do. Arithmetic is exact and rounding is half-up, so
    identical inputs always give identical scores.
    """
    members = unique_members(members)
    expense_tallies: dict[MemberId, _ExpenseTally] = {member.id: _ExpenseTally() for member in members}
    chore_tallies: dict[MemberId, _ChoreTally] = {member.id: _ChoreTally() for member in members}

    for expense in expenses:
        payer = expense_tallies.get(expense.payer_id)
        if payer is not None:
            payer.paid += expense.total_amount
        for share in expense.shares:
            debtor = expense_tallies.get(share.member_id)
            if debtor is not None:
                debtor.owed += share.owed_amount

    group_points = 0
    for chore in chores:
        group_points += chore.points
        tally = chore_tallies.get(chore.member_id)
        if tally is None:
            continue
        tally.total += 1
        if chore.is_completed:
            tally.completed += 1
            tally.points += chore.points

    scores: list[FairnessScore] = []
    for member in members:
        expense_tally = expense_tallies[member.id]
        chore_tally = chore_tallies[member.id]
        expense_part = expense_component(expense_tally)
        chore_part = chore_component(chore_tally, group_points)

        scores.append(
            FairnessScore(
                member_id=member.id,
                score=round_half_up(_clamp(expense_part + chore_part, Fraction(0), Fraction(100))),
                expense_subscore=round_half_up(expense_part * 2),
                chore_subscore=round_half_up(chore_part * 2),
                raw_contribution=(expense_tally.paid - expense_tally.owed) + chore_tally.points * POINT_VALUE,
            )
        )

    log.debug("fairness.computed", members=len(scores), group_points=group_points)
    return scores
