from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Hashable, Sequence

from flatflow.logging import get_logger
from flatflow.models import ChoreContribution, ExpenseRecord, FairnessScore, Member, NetBalance, Settlement
from flatflow.services.balances import compute_net_balances
from flatflow.services.fairness import compute_fairness_scores
from flatflow.services.settlement import plan_settlements

log = get_logger(__name__)


@dataclass(slots=True, frozen=True)
class BalanceSummary:
    total_expenses: int
    total_amount: int
    total_chores: int
    completed_chores: int
    members: int
    settlements_needed: int


@dataclass(slots=True, frozen=True)
class GroupBalanceReport:
    group_id: Hashable
    group_name: str
    last_modified: datetime
    members: Sequence[Member]
    balances: Sequence[NetBalance]
    settlements: Sequence[Settlement]
    fairness_scores: Sequence[FairnessScore]
    summary: BalanceSummary

    def to_dict(self) -> dict[str, Any]:
        names = {member.id: member.display_name for member in self.members}
        return {
            "groupId": self.group_id,
            "groupName": self.group_name,
            "lastModified": self.last_modified.isoformat(),
            "balances": [
                {"userId": b.member_id, "userName": names.get(b.member_id, "Unknown"), "balance": b.balance}
                for b in self.balances
            ],
            "settlements": [
                {
                    "from": s.from_member_id,
                    "fromName": names.get(s.from_member_id, "Unknown"),
                    "to": s.to_member_id,
                    "toName": names.get(s.to_member_id, "Unknown"),
                    "amount": s.amount,
                }
                for s in self.settlements
            ],
            "fairnessScores": [
                {
                    "userId": f.member_id,
                    "userName": names.get(f.member_id, "Unknown"),
                    "score": f.score,
                    "expenseContribution": f.expense_subscore,
                    "choreContribution": f.chore_subscore,
                    "totalContribution": f.raw_contribution,
                }
                for f in self.fairness_scores
            ],
            "summary": {
                "totalExpenses": self.summary.total_expenses,
                "totalAmount": self.summary.total_amount,
                "totalChores": self.summary.total_chores,
                "completedChores": self.summary.completed_chores,
                "members": self.summary.members,
                "settlementsNeeded": self.summary.settlements_needed,
            },
        }


def build_group_report(
    group_id: Hashable,
    group_name: str,
    members: Sequence[Member],
    expenses: Sequence[ExpenseRecord],
    chores: Sequence[ChoreContribution],
    last_modified: datetime,
) -> GroupBalanceReport:
    balances = compute_net_balances(members, expenses)
    settlements = plan_settlements(members, balances)
    fairness = compute_fairness_scores(members, expenses, chores)

    summary = BalanceSummary(
        total_expenses=len(expenses),
        total_amount=sum(expense.total_amount for expense in expenses),
        total_chores=len(chores),
        completed_chores=sum(1 for chore in chores if chore.is_completed),
        members=len(members),
        settlements_needed=len(settlements),
    )
    log.info("report.built", group_id=group_id, settlements=summary.settlements_needed)
    return GroupBalanceReport(
        group_id=group_id,
        group_name=group_name,
        last_modified=last_modified,
        members=tuple(members),
        balances=tuple(balances),
        settlements=tuple(settlements),
        fairness_scores=tuple(fairness),
        summary=summary,
    )
