"""Progressive income-tax helpers for federal and provincial ledgers."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

from .schema import Config, TaxBracket


@dataclass(slots=True)
class TaxResult:
    gross_income: float
    federal_tax: float
    provincial_tax: float

    @property
    def total_tax(self) -> float:
        return self.federal_tax + self.provincial_tax

    @property
    def net_income(self) -> float:
        return self.gross_income - self.total_tax

    @property
    def effective_rate(self) -> float:
        if self.gross_income <= 0:
            return 0.0
        return self.total_tax / self.gross_income


def calculate_tax(income: float, brackets: Sequence[TaxBracket]) -> float:
    """Apply an ascending bracket table to ``income``.

    A bracket with ``up_to_income == 0`` is the unbounded top bracket. The
    table is not validated; unsorted or gapped tables give wrong numbers.
    """
    if income <= 0 or not brackets:
        return 0.0

    remaining = income
    tax = 0.0
    for idx, bracket in enumerate(brackets):
        if bracket.is_unbounded:
            taxable_at_rate = remaining
        elif idx == 0:
            taxable_at_rate = min(remaining, bracket.up_to_income)
        else:
            width = bracket.up_to_income - brackets[idx - 1].up_to_income
            taxable_at_rate = min(remaining, width)
        tax += taxable_at_rate * bracket.rate
        remaining -= taxable_at_rate
        if remaining <= 0:
            break
    return tax


def marginal_rate(income: float, brackets: Sequence[TaxBracket]) -> float:
    """Rate applied to the last dollar of ``income``."""
    if not brackets:
        return 0.0
    for bracket in brackets:
        if bracket.is_unbounded or income <= bracket.up_to_income:
            return bracket.rate
    return brackets[-1].rate


def compute_annual_tax(gross_income: float, config: Config) -> TaxResult:
    # Federal and provincial ledgers are applied independently to the same gross.
    return TaxResult(
        gross_income=gross_income,
        federal_tax=calculate_tax(gross_income, config.federal_tax_brackets),
        provincial_tax=calculate_tax(gross_income, config.provincial_tax_brackets),
    )
