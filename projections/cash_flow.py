"""Monthly income, expense and savings derivation."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Iterable

from .log import get_logger
from .schema import Config, RecurringExpense
from .tax import TaxResult, compute_annual_tax

logger = get_logger(__name__)

MONTHLY_FACTORS = {
    "weekly": 52.0 / 12.0,
    "bi-weekly": 26.0 / 12.0,
    "biweekly": 26.0 / 12.0,
    "semi-monthly": 2.0,
    "monthly": 1.0,
    "quarterly": 1.0 / 3.0,
    "annually": 1.0 / 12.0,
    "annual": 1.0 / 12.0,
    "yearly": 1.0 / 12.0,
}


def monthly_equivalent(amount: float, frequency: str) -> float:
    """Convert a recurring amount to its monthly equivalent; unknown frequencies give 0."""
    factor = MONTHLY_FACTORS.get(frequency.strip().lower())
    if factor is None:
        return 0.0
    return amount * factor


def recurring_monthly_total(expenses: Iterable[RecurringExpense]) -> float:
    total = 0.0
    for expense in expenses:
        if not expense.is_active:
            continue
        if expense.frequency.strip().lower() not in MONTHLY_FACTORS:
            logger.warning("recurring_expense_unknown_frequency", name=expense.name, frequency=expense.frequency)
            continue
        total += monthly_equivalent(expense.amount, expense.frequency)
    return total


def growth_multiplier(annual_rate: float, years_elapsed: float) -> float:
    return (1.0 + annual_rate) ** years_elapsed


def clamp_savings(net_cash_flow: float, savings_rate: float) -> float:
    """Savings never go negative and never exceed the month's net cash flow."""
    if net_cash_flow <= 0:
        return 0.0
    return min(max(0.0, net_cash_flow * savings_rate), net_cash_flow)


@dataclass(slots=True)
class ProjectionState:
    """Salary, expense level and savings rate for one run, as events leave them.

    Growth compounds from ``*_base_month``; a change event rebases the level
    to the month it lands in so the new growth rate starts from there.
    """

    annual_salary: float
    annual_salary_growth: float
    monthly_expenses: float
    annual_expense_growth: float
    monthly_savings_rate: float
    salary_base_month: int = 0
    expense_base_month: int = 0

    @classmethod
    def from_config(cls, config: Config, recurring_monthly: float = 0.0) -> "ProjectionState":
        return cls(
            annual_salary=config.annual_salary,
            annual_salary_growth=config.annual_salary_growth,
            monthly_expenses=config.monthly_expenses + recurring_monthly,
            annual_expense_growth=config.annual_expense_growth,
            monthly_savings_rate=config.monthly_savings_rate,
        )

    def gross_salary(self, month: int) -> float:
        years_elapsed = (month - self.salary_base_month) / 12.0
        return self.annual_salary * growth_multiplier(self.annual_salary_growth, years_elapsed)

    def expense_level(self, month: int) -> float:
        years_elapsed = (month - self.expense_base_month) / 12.0
        return self.monthly_expenses * growth_multiplier(self.annual_expense_growth, years_elapsed)

    def rebase_salary(self, month: int) -> None:
        self.annual_salary = self.gross_salary(month)
        self.salary_base_month = month

    def rebase_expenses(self, month: int) -> None:
        self.monthly_expenses = self.expense_level(month)
        self.expense_base_month = month


@dataclass(slots=True)
class MonthCashFlow:
    month: int
    date: date
    gross_annual_salary: float
    tax: TaxResult
    net_monthly_income: float
    one_time_income: float
    expenses: float
    savings: float

    @property
    def income(self) -> float:
        return self.net_monthly_income + self.one_time_income

    @property
    def net(self) -> float:
        return self.income - self.expenses


def compute_month_cash_flow(
    config: Config,
    month: int,
    current_date: date,
    state: ProjectionState | None = None,
    event_income: float = 0.0,
    event_expenses: float = 0.0,
) -> MonthCashFlow:
    if state is None:
        state = ProjectionState.from_config(config)

    gross = state.gross_salary(month)
    tax = compute_annual_tax(gross, config)
    net_monthly_income = (gross - tax.total_tax) / 12.0

    expenses = state.expense_level(month)
    expenses += sum(item.amount for item in config.one_time_expenses if item.occurs_in(current_date))
    one_time_income = sum(item.amount for item in config.one_time_incomes if item.occurs_in(current_date))
    if event_expenses:
        expenses += event_expenses
    if event_income:
        one_time_income += event_income

    net = net_monthly_income + one_time_income - expenses
    return MonthCashFlow(
        month=month,
        date=current_date,
        gross_annual_salary=gross,
        tax=tax,
        net_monthly_income=net_monthly_income,
        one_time_income=one_time_income,
        expenses=expenses,
        savings=clamp_savings(net, state.monthly_savings_rate),
    )
