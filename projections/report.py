"""JSON report rendering and plain-text summaries."""

from __future__ import annotations

from datetime import UTC, datetime
import hashlib
import json
from pathlib import Path

from .engine import ProjectionResult
from .schema import Config
from .sensitivity import SweepResult
from .tax import compute_annual_tax, marginal_rate


def _money(value: float) -> str:
    return f"${value:,.0f}"


def config_hash(config: Config) -> str:
    canonical = json.dumps(config.to_dict(), sort_keys=True)
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()[:12]


def render_report(config: Config, result: ProjectionResult) -> str:
    """Serialize a projection to the calculate-response JSON shape plus run metadata."""
    payload = result.to_dict()
    payload["meta"] = {
        "generated": datetime.now(UTC).isoformat(timespec="seconds"),
        "config_hash": config_hash(config),
        "months": len(result) - 1,
    }
    return json.dumps(payload, indent=2)


def write_report(path: str | Path, content: str) -> None:
    Path(path).write_text(content, encoding="utf-8")


def summary_lines(config: Config, result: ProjectionResult) -> list[str]:
    first = result.net_worth[0]
    last = result.net_worth[-1]
    peak_debt = max(result.liabilities, key=lambda point: point.value)
    first_year_tax = compute_annual_tax(config.annual_salary, config)
    combined_marginal = marginal_rate(config.annual_salary, config.federal_tax_brackets) + marginal_rate(
        config.annual_salary, config.provincial_tax_brackets
    )
    debt_free = result.debt_free_date()

    lines = [
        f"Horizon: {first.date.isoformat()} to {last.date.isoformat()} ({len(result) - 1} months)",
        f"Starting net worth: {_money(first.value)}",
        f"Ending net worth: {_money(last.value)}",
        f"Ending assets: {_money(result.assets[-1].value)}",
        f"Peak liabilities: {_money(peak_debt.value)} ({peak_debt.date.isoformat()})",
        f"First-year tax: {_money(first_year_tax.total_tax)} (effective {first_year_tax.effective_rate:.1%}, marginal {combined_marginal:.1%})",
        f"Debt-free: {debt_free.isoformat() if debt_free else 'not within horizon'}",
    ]
    return lines


def sweep_lines(sweep: SweepResult) -> list[str]:
    lines = [f"Sweep over {sweep.field}:"]
    for run in sweep.runs:
        debt_free = run.debt_free_date.isoformat() if run.debt_free_date else "-"
        lines.append(
            f"  {run.value:g}: net worth {_money(run.ending_net_worth)}, "
            f"liabilities {_money(run.ending_liabilities)}, debt-free {debt_free}"
        )
    lines.append(
        f"  min {_money(sweep.min_net_worth)} / median {_money(sweep.median_net_worth)} / max {_money(sweep.max_net_worth)}"
    )
    return lines
