"""FlatFlow: shared-expense reconciliation for flat groups."""

from __future__ import annotations

from flatflow.services.balances import compute_net_balances
from flatflow.services.fairness import compute_fairness_scores
from flatflow.services.settlement import plan_settlements

__all__ = ["compute_net_balances", "plan_settlements", "compute_fairness_scores"]
