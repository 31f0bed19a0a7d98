"""Sensitivity sweeps: re-run the projection with one parameter perturbed."""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import date
import math
from typing import Iterable

from .engine import ProjectionResult, run_projection
from .schema import Config, Snapshot
from .validate import validate_config

SWEEPABLE_FIELDS = frozenset(
    {
        "time_horizon_years",
        "annual_salary",
        "annual_salary_growth",
        "inflation_rate",
        "monthly_expenses",
        "annual_expense_growth",
        "monthly_savings_rate",
    }
)


@dataclass(slots=True)
class SweepRun:
    value: float
    ending_net_worth: float
    ending_assets: float
    ending_liabilities: float
    debt_free_date: date | None


@dataclass(slots=True)
class SweepResult:
    field: str
    runs: list[SweepRun]

    @property
    def min_net_worth(self) -> float:
        return min((run.ending_net_worth for run in self.runs), default=0.0)

    @property
    def max_net_worth(self) -> float:
        return max((run.ending_net_worth for run in self.runs), default=0.0)

    @property
    def median_net_worth(self) -> float:
        return _percentile([run.ending_net_worth for run in self.runs], 0.5)


def _percentile(values: list[float], pct: float) -> float:
    ordered = sorted(values)
    if not ordered:
        return 0.0
    if len(ordered) == 1:
        return ordered[0]
    position = (len(ordered) - 1) * pct
    low = int(math.floor(position))
    high = int(math.ceil(position))
    if low == high:
        return ordered[low]
    weight = position - low
    return (ordered[low] * (1.0 - weight)) + (ordered[high] * weight)


def _summarize(value: float, result: ProjectionResult) -> SweepRun:
    return SweepRun(
        value=value,
        ending_net_worth=result.net_worth[-1].value,
        ending_assets=result.assets[-1].value,
        ending_liabilities=result.liabilities[-1].value,
        debt_free_date=result.debt_free_date(),
    )


def _coerce(field: str, value: float) -> float | int:
    if field != "time_horizon_years":
        return float(value)
    if not float(value).is_integer():
        raise ValueError(f"time_horizon_years sweep values must be whole years; got {value:g}")
    return int(value)


def run_sweep(
    config: Config,
    snapshot: Snapshot | None,
    field: str,
    values: Iterable[float],
    start: date | None = None,
) -> SweepResult:
    """Run one projection per value; every variant must pass validation first."""
    if field not in SWEEPABLE_FIELDS:
        expected = ", ".join(sorted(SWEEPABLE_FIELDS))
        raise ValueError(f"unsupported sweep field: {field}; expected one of [{expected}]")

    variants: list[tuple[float, Config]] = []
    for value in values:
        variant = replace(config, **{field: _coerce(field, value)})
        validation = validate_config(variant, snapshot)
        if not validation.is_valid:
            raise ValueError(f"{field}={value:g} is not valid: {'; '.join(validation.errors)}")
        variants.append((float(value), variant))

    start = start or date.today()
    runs = [_summarize(value, run_projection(variant, snapshot, start=start)) for value, variant in variants]
    return SweepResult(field=field, runs=runs)


def parse_sweep_arg(raw: str) -> tuple[str, list[float]]:
    """Parse ``FIELD=V1,V2,...`` from the command line."""
    name, sep, values = raw.partition("=")
    if not sep or not values:
        raise ValueError(f"sweep must look like FIELD=V1,V2,...; got '{raw}'")
    try:
        parsed = [float(item) for item in values.split(",") if item.strip()]
    except ValueError as exc:
        raise ValueError(f"sweep values must be numbers; got '{values}'") from exc
    name = name.strip()
    for value in parsed:
        _coerce(name, value)
    return name, parsed
