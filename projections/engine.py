"""Core month-by-month deterministic net-worth projection."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Any

from .assets import grow_assets, initial_asset_states, summarize_assets
from .cash_flow import ProjectionState, compute_month_cash_flow, recurring_monthly_total
from .debts import build_liability_book
from .events import EventSchedule, add_months
from .log import get_logger
from .schema import Config, Snapshot

logger = get_logger(__name__)


@dataclass(slots=True, frozen=True)
class DataPoint:
    date: date
    value: float

    def to_dict(self) -> dict[str, Any]:
        return {"date": self.date.isoformat(), "value": self.value}


@dataclass(slots=True, frozen=True)
class CashFlowPoint:
    date: date
    income: float
    expenses: float
    net: float

    def to_dict(self) -> dict[str, Any]:
        return {"date": self.date.isoformat(), "income": self.income, "expenses": self.expenses, "net": self.net}


@dataclass(slots=True, frozen=True)
class AssetBreakdownPoint:
    date: date
    assets: dict[str, float]

    def to_dict(self) -> dict[str, Any]:
        return {"date": self.date.isoformat(), "assets": dict(self.assets)}


@dataclass(slots=True, frozen=True)
class DebtPayoffPoint:
    date: date
    debts: dict[str, float]
    total_debt: float

    def to_dict(self) -> dict[str, Any]:
        return {"date": self.date.isoformat(), "debts": dict(self.debts), "total_debt": self.total_debt}


@dataclass(slots=True, frozen=True)
class ProjectionResult:
    net_worth: tuple[DataPoint, ...]
    assets: tuple[DataPoint, ...]
    liabilities: tuple[DataPoint, ...]
    cash_flow: tuple[CashFlowPoint, ...]
    asset_breakdown: tuple[AssetBreakdownPoint, ...]
    debt_payoff: tuple[DebtPayoffPoint, ...]

    def __len__(self) -> int:
        return len(self.net_worth)

    def debt_free_date(self) -> date | None:
        for point in self.debt_payoff:
            if point.total_debt <= 0:
                return point.date
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "net_worth": [p.to_dict() for p in self.net_worth],
            "assets": [p.to_dict() for p in self.assets],
            "liabilities": [p.to_dict() for p in self.liabilities],
            "cash_flow": [p.to_dict() for p in self.cash_flow],
            "asset_breakdown": [p.to_dict() for p in self.asset_breakdown],
            "debt_payoff": [p.to_dict() for p in self.debt_payoff],
        }


def run_projection(config: Config, snapshot: Snapshot | None = None, start: date | None = None) -> ProjectionResult:
    """Simulate ``config.time_horizon_years * 12`` months after ``start``.

    Month 0 reports the snapshot as-is apart from events dated in it; growth,
    savings deposits and debt payments apply from month 1. Events land in their
    calendar month before its cash flow is computed. Inputs are never mutated.
    """
    snapshot = snapshot or Snapshot()
    start = start or date.today()
    total_months = max(0, config.total_months)

    asset_states = initial_asset_states(snapshot.accounts, config)
    liabilities = build_liability_book(snapshot.accounts, snapshot.debts, config)
    state = ProjectionState.from_config(config, recurring_monthly_total(snapshot.recurring_expenses))
    schedule = EventSchedule.build(config.events, add_months(start, total_months))

    logger.debug(
        "projection_started",
        months=total_months,
        accounts=len(snapshot.accounts),
        tracked_debts=len(liabilities.tracked),
        events=len(schedule),
        start=start.isoformat(),
    )

    net_worth: list[DataPoint] = []
    asset_totals: list[DataPoint] = []
    liability_totals: list[DataPoint] = []
    cash_flow: list[CashFlowPoint] = []
    asset_breakdown: list[AssetBreakdownPoint] = []
    debt_payoff: list[DebtPayoffPoint] = []

    for month in range(total_months + 1):
        current = add_months(start, month)
        month_events = schedule.apply_month(current, month, state, liabilities)
        flow = compute_month_cash_flow(config, month, current, state, month_events.income, month_events.expenses)

        if month == 0:
            asset_step = summarize_assets(asset_states)
            liability_step = liabilities.summarize()
        else:
            asset_step = grow_assets(asset_states, flow.savings)
            liability_step = liabilities.step()

        cash_flow.append(CashFlowPoint(date=current, income=flow.income, expenses=flow.expenses, net=flow.net))
        net_worth.append(DataPoint(date=current, value=asset_step.total - liability_step.total))
        asset_totals.append(DataPoint(date=current, value=asset_step.total))
        liability_totals.append(DataPoint(date=current, value=liability_step.total))
        asset_breakdown.append(AssetBreakdownPoint(date=current, assets=asset_step.breakdown))
        debt_payoff.append(DebtPayoffPoint(date=current, debts=liability_step.debts, total_debt=liability_step.total))

    logger.debug("projection_finished", points=len(net_worth), ending_net_worth=round(net_worth[-1].value, 2))
    return ProjectionResult(
        net_worth=tuple(net_worth),
        assets=tuple(asset_totals),
        liabilities=tuple(liability_totals),
        cash_flow=tuple(cash_flow),
        asset_breakdown=tuple(asset_breakdown),
        debt_payoff=tuple(debt_payoff),
    )
