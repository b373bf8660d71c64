from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_EVEN, Decimal
from enum import Enum
from fractions import Fraction
from typing import Mapping, Optional, Sequence

from flatflow.errors import SplitError
from flatflow.models import MemberId, ShareRecord


class SplitType(str, Enum):
    EQUAL = "EQUAL"
    PERCENTAGE = "PERCENTAGE"
    EXACT = "EXACT"
    SHARES = "SHARES"


@dataclass(slots=True)
class ShareInput:
    member_id: MemberId
    amount: Optional[int] = None
    percentage: Optional[Decimal] = None
    shares: Optional[int] = None


def split_amount(amount: int, participants: Sequence[MemberId]) -> dict[MemberId, int]:
    if amount < 0:
        raise SplitError("amount must be non-negative")
    if not participants:
        raise SplitError("participants must not be empty")

    n = len(participants)
    base_share = (Decimal(amount) / Decimal(n)).quantize(Decimal("1"), rounding=ROUND_HALF_EVEN)

    shares = [int(base_share) for _ in participants]
    remainder = amount - sum(shares)

    idx = 0
    step = 1 if remainder > 0 else -1
    while remainder != 0:
        shares[idx] += step
        remainder -= step
        idx = (idx + 1) % n

    return {participant: share for participant, share in zip(participants, shares)}


def split_weighted(amount: int, weights: Mapping[MemberId, Fraction]) -> dict[MemberId, int]:
    """Apportion ``amount`` by weight with the largest-remainder method.

    Units left after flooring go to the largest fractional remainders; ties
    keep mapping order.
    """
    if amount < 0:
        raise SplitError("amount must be non-negative")
    if not weights:
        raise SplitError("participants must not be empty")
    if any(weight < 0 for weight in weights.values()):
        raise SplitError("weights must be non-negative")
    total_weight = sum(weights.values(), Fraction(0))
    if total_weight <= 0:
        raise SplitError("weights must not all be zero")

    exact = {member_id: Fraction(amount) * weight / total_weight for member_id, weight in weights.items()}
    result = {member_id: int(value) for member_id, value in exact.items()}
    leftover = amount - sum(result.values())

    order = sorted(exact, key=lambda member_id: exact[member_id] - result[member_id], reverse=True)
    for member_id in order[:leftover]:
        result[member_id] += 1
    return result


def _weights(split_type: SplitType, inputs: Sequence[ShareInput]) -> dict[MemberId, Fraction]:
    if split_type == SplitType.PERCENTAGE:
        percentages = {item.member_id: Fraction(item.percentage or 0) for item in inputs}
        if sum(percentages.values(), Fraction(0)) != 100:
            raise SplitError("percentages must sum to 100")
        return percentages

    counts: dict[MemberId, Fraction] = {}
    for item in inputs:
        if item.shares is None or item.shares <= 0:
            raise SplitError("share counts must be positive")
        counts[item.member_id] = Fraction(item.shares)
    return counts


def build_shares(
    amount: int,
    payer_id: MemberId,
    split_type: SplitType,
    inputs: Sequence[ShareInput],
) -> list[ShareRecord]:
    """Turn split input into share records that add up exactly to ``amount``.

    The payer's own share is recorded as already paid.
    """
    if amount < 0:
        raise SplitError("amount must be non-negative")
    if not inputs:
        raise SplitError("participants must not be empty")

    if split_type == SplitType.EQUAL:
        owed = split_amount(amount, [item.member_id for item in inputs])
    elif split_type == SplitType.EXACT:
        owed = {}
        for item in inputs:
            if item.amount is None or item.amount < 0:
                raise SplitError("exact shares need a non-negative amount")
            owed[item.member_id] = owed.get(item.member_id, 0) + item.amount
        if sum(owed.values()) != amount:
            raise SplitError("share amounts must sum to the expense amount")
    else:
        owed = split_weighted(amount, _weights(split_type, inputs))

    return [
        ShareRecord(member_id=member_id, owed_amount=value, is_paid=member_id == payer_id)
        for member_id, value in owed.items()
    ]
