"""Cross-loan reductions over completed results.

Everything here runs after each loan has been computed on its own; nothing
feeds back into the engine. The helpers produce the figures the comparison
views need: leverage relative to the smallest offer, lowest net cost, payoff
times and the series behind the balance and cost charts.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Sequence, Tuple

from .data_models import LoanResult

# Amounts under this are treated as rounding noise when flagging leverage or leftover debt.
MATERIALITY_THRESHOLD = 1000.0


@dataclass(frozen=True)
class ComparisonEntry:
    id: str
    name: str
    leverage_amount: float
    has_leverage: bool
    has_remaining_debt: bool
    is_lowest_cost: bool
    months_to_payoff: int
    years_to_payoff: float
    first_month_outflow: float
    net_cost: float
    remaining_balance: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "leverageAmount": self.leverage_amount,
            "hasLeverage": self.has_leverage,
            "hasRemainingDebt": self.has_remaining_debt,
            "isLowestCost": self.is_lowest_cost,
            "monthsToPayoff": self.months_to_payoff,
            "yearsToPayoff": self.years_to_payoff,
            "firstMonthOutflow": self.first_month_outflow,
            "netCost": self.net_cost,
            "remainingBalance": self.remaining_balance,
        }


@dataclass(frozen=True)
class ComparisonReport:
    """Per-loan comparison entries plus figures about the whole set."""

    entries: Tuple[ComparisonEntry, ...]
    min_principal: float
    max_months: int

    @property
    def lowest_cost_ids(self) -> List[str]:
        return [entry.id for entry in self.entries if entry.is_lowest_cost]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "entries": [entry.to_dict() for entry in self.entries],
            "minPrincipal": self.min_principal,
            "maxMonths": self.max_months,
            "lowestCostIds": self.lowest_cost_ids,
        }


def min_principal(results: Sequence[LoanResult]) -> float:
    """Return the smallest principal among the offers (0 for an empty set)."""
    if not results:
        return 0.0
    return min(r.params.principal for r in results)


def compare_results(results: Sequence[LoanResult]) -> ComparisonReport:
    """Build the comparison report for a set of computed loans.

    The leverage of an offer is how much more cash it puts in hand than the
    smallest offer, which is taken as the debt currently being refinanced.
    """
    smallest = min_principal(results)
    entries = []
    for r in results:
        leverage = r.params.principal - smallest
        entries.append(
            ComparisonEntry(
                id=r.params.id,
                name=r.params.name,
                leverage_amount=leverage,
                has_leverage=leverage > MATERIALITY_THRESHOLD,
                has_remaining_debt=r.summary.remaining_balance > MATERIALITY_THRESHOLD,
                is_lowest_cost=all(other.summary.net_cost >= r.summary.net_cost for other in results),
                months_to_payoff=r.months,
                years_to_payoff=r.months / 12,
                first_month_outflow=r.first_month_outflow,
                net_cost=r.summary.net_cost,
                remaining_balance=r.summary.remaining_balance,
            )
        )
    max_months = max((r.months for r in results), default=0)
    return ComparisonReport(entries=tuple(entries), min_principal=smallest, max_months=max_months)


def balance_series(results: Sequence[LoanResult]) -> List[Dict[str, float]]:
    """Month-aligned balances for every loan.

    Each point is ``{"month": m, "loan_<id>": balance, ...}``. A loan whose
    schedule ended earlier shows a zero balance for the remaining months.
    """
    max_months = max((r.months for r in results), default=0)
    series = []
    for i in range(max_months):
        point: Dict[str, float] = {"month": i + 1}
        for r in results:
            point[f"loan_{r.params.id}"] = r.table[i].balance if i < r.months else 0.0
        series.append(point)
    return series


def cost_breakdown(results: Sequence[LoanResult]) -> List[Dict[str, Any]]:
    """Stacked cost components per loan: principal retired, leftover debt, interest and expenses."""
    return [
        {
            "name": r.params.name,
            "principal": r.params.principal - r.summary.remaining_balance,
            "remaining": r.summary.remaining_balance,
            "interest": r.summary.total_interest,
            "expenses": r.summary.total_iva + r.summary.total_insurance + r.summary.total_opening_fee,
        }
        for r in results
    ]
