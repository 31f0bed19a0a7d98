"""Semantic validation for projection configs and snapshots."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from typing import Sequence

from .cash_flow import MONTHLY_FACTORS
from .events import RECURRENCE_MONTHS
from .schema import EXPENSE_CHANGE_TYPES, KNOWN_ACCOUNT_TYPES, Config, Snapshot, TaxBracket

MIN_HORIZON_YEARS = 1
MAX_HORIZON_YEARS = 30


@dataclass(slots=True)
class ValidationResult:
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors


def _check_range(result: ValidationResult, path: str, value: float, low: float | None, high: float | None) -> None:
    if low is not None and value < low:
        result.errors.append(f"{path}: must be >= {low:g}")
    if high is not None and value > high:
        result.errors.append(f"{path}: must be <= {high:g}")


def _check_brackets(result: ValidationResult, path: str, brackets: Sequence[TaxBracket]) -> None:
    previous = 0.0
    for idx, bracket in enumerate(brackets):
        base = f"{path}[{idx}]"
        _check_range(result, f"{base}.rate", bracket.rate, 0.0, 1.0)
        if bracket.up_to_income < 0:
            result.errors.append(f"{base}.up_to_income: must be >= 0")
            continue
        if bracket.is_unbounded:
            if idx != len(brackets) - 1:
                result.errors.append(f"{base}.up_to_income: unbounded bracket (0) must be last")
            continue
        if bracket.up_to_income <= previous:
            result.errors.append(f"{base}.up_to_income: brackets must be in ascending order")
        previous = bracket.up_to_income


def _check_type_keys(result: ValidationResult, path: str, mapping: dict[str, float]) -> None:
    for key in mapping:
        if key not in KNOWN_ACCOUNT_TYPES:
            result.warnings.append(f"{path}.{key}: unknown account type; lookups will use 0")


def validate_config(config: Config, snapshot: Snapshot | None = None) -> ValidationResult:
    result = ValidationResult()

    horizon = config.time_horizon_years
    if not MIN_HORIZON_YEARS <= horizon <= MAX_HORIZON_YEARS:
        result.errors.append(
            f"time_horizon_years: {horizon} is not valid; expected {MIN_HORIZON_YEARS}-{MAX_HORIZON_YEARS}"
        )
    _check_range(result, "monthly_savings_rate", config.monthly_savings_rate, 0.0, 1.0)
    _check_range(result, "annual_salary", config.annual_salary, 0.0, None)
    _check_range(result, "monthly_expenses", config.monthly_expenses, 0.0, None)

    _check_brackets(result, "federal_tax_brackets", config.federal_tax_brackets)
    _check_brackets(result, "provincial_tax_brackets", config.provincial_tax_brackets)

    _check_type_keys(result, "investment_returns", config.investment_returns)
    _check_type_keys(result, "asset_appreciation", config.asset_appreciation)
    _check_type_keys(result, "savings_allocation", config.savings_allocation)
    for path, mapping in (("investment_returns", config.investment_returns), ("asset_appreciation", config.asset_appreciation)):
        for key, rate in mapping.items():
            if rate <= -1.0:
                result.errors.append(f"{path}.{key}: annual rate must be > -1")

    for key, fraction in config.savings_allocation.items():
        _check_range(result, f"savings_allocation.{key}", fraction, 0.0, 1.0)
    allocated = sum(config.savings_allocation.values())
    if allocated > 1.0 + 1e-9:
        result.warnings.append(f"savings_allocation: fractions sum to {allocated:.2f}; more than the monthly savings is deposited")

    for key, amount in config.extra_debt_payments.items():
        _check_range(result, f"extra_debt_payments.{key}", amount, 0.0, None)

    for idx, item in enumerate(config.one_time_expenses):
        _check_range(result, f"one_time_expenses[{idx}].amount", item.amount, 0.0, None)
    for idx, item in enumerate(config.one_time_incomes):
        _check_range(result, f"one_time_incomes[{idx}].amount", item.amount, 0.0, None)

    _validate_events(result, config)

    if snapshot is not None:
        _validate_snapshot(result, config, snapshot)
    return result


def _validate_events(result: ValidationResult, config: Config) -> None:
    for idx, event in enumerate(config.events):
        base = f"events[{idx}]"
        params = event.parameters
        if event.type in ("one_time_income", "one_time_expense", "extra_debt_payment"):
            _check_range(result, f"{base}.parameters.amount", params.amount, 0.0, None)
        if event.type == "extra_debt_payment" and not params.account_id:
            result.errors.append(f"{base}.parameters.account_id: required for extra_debt_payment")
        if event.type == "salary_change":
            if params.new_salary is None and params.new_salary_growth is None:
                result.errors.append(f"{base}.parameters: salary_change needs new_salary or new_salary_growth")
            if params.new_salary is not None:
                _check_range(result, f"{base}.parameters.new_salary", params.new_salary, 0.0, None)
        if event.type == "expense_level_change":
            change_type = params.expense_change_type
            if change_type and change_type not in EXPENSE_CHANGE_TYPES:
                result.errors.append(
                    f"{base}.parameters.expense_change_type: '{change_type}' is not valid; "
                    f"expected one of [{', '.join(EXPENSE_CHANGE_TYPES)}]"
                )
            if change_type in ("", "absolute") and params.new_expenses is None and params.new_expense_growth is None:
                result.errors.append(f"{base}.parameters.new_expenses: required for an absolute expense change")
            if params.new_expenses is not None:
                _check_range(result, f"{base}.parameters.new_expenses", params.new_expenses, 0.0, None)
            if change_type == "relative_percent" and params.expense_change < -1.0:
                result.warnings.append(f"{base}.parameters.expense_change: below -100%; expenses are floored at 0")
        if event.type == "savings_rate_change":
            if params.new_savings_rate is None:
                result.errors.append(f"{base}.parameters.new_savings_rate: required for savings_rate_change")
            else:
                _check_range(result, f"{base}.parameters.new_savings_rate", params.new_savings_rate, 0.0, 1.0)
        if event.is_recurring:
            if event.recurrence_frequency.strip().lower() not in RECURRENCE_MONTHS:
                result.warnings.append(
                    f"{base}.recurrence_frequency: '{event.recurrence_frequency}' is not recognized; "
                    "the event happens once"
                )
            if event.recurrence_end_date is not None and event.recurrence_end_date < event.date:
                result.errors.append(f"{base}.recurrence_end_date: must not be before date")


def _validate_snapshot(result: ValidationResult, config: Config, snapshot: Snapshot) -> None:
    account_ids = Counter(account.id for account in snapshot.accounts)
    for account_id, count in account_ids.items():
        if count > 1:
            result.errors.append(f"accounts: duplicate account id '{account_id}'")

    debt_ids = Counter(debt.account_id for debt in snapshot.debts)
    for idx, debt in enumerate(snapshot.debts):
        base = f"debts[{idx}]"
        if debt.account_id not in account_ids:
            result.warnings.append(f"{base}.account_id: '{debt.account_id}' does not match any account; it will be ignored")
        if debt_ids[debt.account_id] > 1:
            result.warnings.append(f"{base}.account_id: '{debt.account_id}' has more than one debt record; the last one is used")
        _check_range(result, f"{base}.interest_rate", debt.interest_rate, 0.0, None)
        _check_range(result, f"{base}.payment_amount", debt.payment_amount, 0.0, None)
        payment = debt.payment_amount + config.extra_debt_payments.get(debt.account_id, 0.0)
        first_interest = abs(debt.current_balance) * debt.interest_rate / 12.0 / 100.0
        if abs(debt.current_balance) > 0 and payment <= first_interest:
            result.warnings.append(f"{base}.payment_amount: does not cover monthly interest; the balance will grow")

    for account_id in config.extra_debt_payments:
        if account_id not in debt_ids:
            result.warnings.append(f"extra_debt_payments.{account_id}: no tracked mortgage or loan; payment is ignored")

    allocated_types = Counter(
        account.type.value
        for account in snapshot.accounts
        if account.is_asset and account.type.value in config.savings_allocation
    )
    for type_label, count in allocated_types.items():
        if count > 1:
            result.warnings.append(
                f"savings_allocation.{type_label}: {count} accounts share this type; each receives the full fraction"
            )

    for idx, expense in enumerate(snapshot.recurring_expenses):
        if expense.frequency.strip().lower() not in MONTHLY_FACTORS:
            result.warnings.append(
                f"recurring_expenses[{idx}].frequency: '{expense.frequency}' is not recognized; the expense is skipped"
            )

    for idx, event in enumerate(config.events):
        if event.type == "extra_debt_payment" and event.parameters.account_id and event.parameters.account_id not in debt_ids:
            result.warnings.append(
                f"events[{idx}].parameters.account_id: '{event.parameters.account_id}' has no tracked mortgage or loan; "
                "the payment is skipped"
            )
