"""Projection config and snapshot dataclasses with JSON loading."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
import json
from pathlib import Path
from typing import Any


class SchemaError(ValueError):
    """Raised when raw JSON cannot be parsed into schema objects."""


def _expect_dict(value: Any, path: str) -> dict[str, Any]:
    if not isinstance(value, dict):
        raise SchemaError(f"{path}: expected object")
    return value


def _expect_list(value: Any, path: str) -> list[Any]:
    if not isinstance(value, list):
        raise SchemaError(f"{path}: expected array")
    return value


def _require(data: dict[str, Any], key: str, path: str) -> Any:
    if key not in data:
        raise SchemaError(f"{path}.{key}: missing required field")
    return data[key]


def _optional(data: dict[str, Any], key: str, default: Any = None) -> Any:
    value = data.get(key, default)
    return default if value is None else value


def _number(value: Any, path: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise SchemaError(f"{path}: expected number")
    return float(value)


def _rate_map(value: Any, path: str) -> dict[str, float]:
    raw = _expect_dict(value, path)
    return {str(key): _number(item, f"{path}.{key}") for key, item in raw.items()}


def _parse_date(value: Any, path: str) -> date:
    if not isinstance(value, str):
        raise SchemaError(f"{path}: expected date string")
    try:
        return datetime.fromisoformat(value).date()
    except ValueError as exc:
        raise SchemaError(f"{path}: '{value}' is not a valid ISO date") from exc


class AccountType(str, Enum):
    CHECKING = "checking"
    SAVINGS = "savings"
    CASH = "cash"
    BROKERAGE = "brokerage"
    TFSA = "tfsa"
    RRSP = "rrsp"
    CRYPTO = "crypto"
    REAL_ESTATE = "real_estate"
    VEHICLE = "vehicle"
    COLLECTIBLE = "collectible"
    CREDIT_CARD = "credit_card"
    LOAN = "loan"
    MORTGAGE = "mortgage"
    LINE_OF_CREDIT = "line_of_credit"
    OTHER = "other"
    STOCK_OPTIONS = "stock_options"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, label: str) -> "AccountType":
        """Map a raw type label onto the enum; unrecognized labels become UNKNOWN."""
        try:
            return cls(label.strip().lower())
        except ValueError:
            return cls.UNKNOWN


KNOWN_ACCOUNT_TYPES = frozenset(t.value for t in AccountType if t is not AccountType.UNKNOWN)


@dataclass(slots=True, frozen=True)
class TaxBracket:
    up_to_income: float
    rate: float

    @property
    def is_unbounded(self) -> bool:
        return self.up_to_income == 0

    @classmethod
    def from_dict(cls, data: dict[str, Any], path: str) -> "TaxBracket":
        return cls(
            up_to_income=_number(_require(data, "up_to_income", path), f"{path}.up_to_income"),
            rate=_number(_require(data, "rate", path), f"{path}.rate"),
        )

    def to_dict(self) -> dict[str, Any]:
        return {"up_to_income": self.up_to_income, "rate": self.rate}


@dataclass(slots=True, frozen=True)
class OneTimeAmount:
    date: date
    amount: float
    description: str = ""

    def occurs_in(self, current: date) -> bool:
        return self.date.year == current.year and self.date.month == current.month

    @classmethod
    def from_dict(cls, data: dict[str, Any], path: str) -> "OneTimeAmount":
        return cls(
            date=_parse_date(_require(data, "date", path), f"{path}.date"),
            amount=_number(_require(data, "amount", path), f"{path}.amount"),
            description=str(_optional(data, "description", "")),
        )

    def to_dict(self) -> dict[str, Any]:
        return {"date": self.date.isoformat(), "amount": self.amount, "description": self.description}


def _brackets(data: dict[str, Any], key: str, path: str) -> tuple[TaxBracket, ...]:
    items = _expect_list(_optional(data, key, []), f"{path}.{key}")
    return tuple(
        TaxBracket.from_dict(_expect_dict(item, f"{path}.{key}[{idx}]"), f"{path}.{key}[{idx}]")
        for idx, item in enumerate(items)
    )


def _one_time(data: dict[str, Any], key: str, path: str) -> tuple[OneTimeAmount, ...]:
    items = _expect_list(_optional(data, key, []), f"{path}.{key}")
    return tuple(
        OneTimeAmount.from_dict(_expect_dict(item, f"{path}.{key}[{idx}]"), f"{path}.{key}[{idx}]")
        for idx, item in enumerate(items)
    )


def _optional_number(data: dict[str, Any], key: str, path: str) -> float | None:
    value = data.get(key)
    if value is None:
        return None
    return _number(value, f"{path}.{key}")


EVENT_TYPES = (
    "one_time_income",
    "one_time_expense",
    "extra_debt_payment",
    "salary_change",
    "expense_level_change",
    "savings_rate_change",
)
EXPENSE_CHANGE_TYPES = ("absolute", "relative_amount", "relative_percent")


@dataclass(slots=True, frozen=True)
class EventParameters:
    """Type-specific event inputs; None means the event leaves that value alone."""

    amount: float = 0.0
    category: str = ""
    account_id: str = ""
    new_salary: float | None = None
    new_salary_growth: float | None = None
    new_expenses: float | None = None
    expense_change: float = 0.0
    expense_change_type: str = ""
    new_expense_growth: float | None = None
    new_savings_rate: float | None = None
    reason: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any], path: str) -> "EventParameters":
        return cls(
            amount=_number(_optional(data, "amount", 0.0), f"{path}.amount"),
            category=str(_optional(data, "category", "")),
            account_id=str(_optional(data, "account_id", "")),
            new_salary=_optional_number(data, "new_salary", path),
            new_salary_growth=_optional_number(data, "new_salary_growth", path),
            new_expenses=_optional_number(data, "new_expenses", path),
            expense_change=_number(_optional(data, "expense_change", 0.0), f"{path}.expense_change"),
            expense_change_type=str(_optional(data, "expense_change_type", "")),
            new_expense_growth=_optional_number(data, "new_expense_growth", path),
            new_savings_rate=_optional_number(data, "new_savings_rate", path),
            reason=str(_optional(data, "reason", "")),
        )

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "amount": self.amount,
            "category": self.category,
            "account_id": self.account_id,
            "expense_change": self.expense_change,
            "expense_change_type": self.expense_change_type,
            "reason": self.reason,
        }
        for key in ("new_salary", "new_salary_growth", "new_expenses", "new_expense_growth", "new_savings_rate"):
            value = getattr(self, key)
            if value is not None:
                payload[key] = value
        return payload


@dataclass(slots=True, frozen=True)
class Event:
    """A dated life event; recurring events repeat until their end date or the horizon."""

    type: str
    date: date
    id: str = ""
    description: str = ""
    parameters: EventParameters = field(default_factory=EventParameters)
    is_recurring: bool = False
    recurrence_frequency: str = ""
    recurrence_end_date: date | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any], path: str) -> "Event":
        event_type = str(_require(data, "type", path))
        if event_type not in EVENT_TYPES:
            raise SchemaError(f"{path}.type: '{event_type}' is not valid; expected one of [{', '.join(EVENT_TYPES)}]")
        end_date = data.get("recurrence_end_date")
        return cls(
            type=event_type,
            date=_parse_date(_require(data, "date", path), f"{path}.date"),
            id=str(_optional(data, "id", "")),
            description=str(_optional(data, "description", "")),
            parameters=EventParameters.from_dict(
                _expect_dict(_optional(data, "parameters", {}), f"{path}.parameters"), f"{path}.parameters"
            ),
            is_recurring=bool(_optional(data, "is_recurring", False)),
            recurrence_frequency=str(_optional(data, "recurrence_frequency", "")),
            recurrence_end_date=None if end_date is None else _parse_date(end_date, f"{path}.recurrence_end_date"),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type,
            "date": self.date.isoformat(),
            "description": self.description,
            "parameters": self.parameters.to_dict(),
            "is_recurring": self.is_recurring,
            "recurrence_frequency": self.recurrence_frequency,
            "recurrence_end_date": None if self.recurrence_end_date is None else self.recurrence_end_date.isoformat(),
        }


def _events(data: dict[str, Any], path: str) -> tuple[Event, ...]:
    items = _expect_list(_optional(data, "events", []), f"{path}.events")
    return tuple(
        Event.from_dict(_expect_dict(item, f"{path}.events[{idx}]"), f"{path}.events[{idx}]")
        for idx, item in enumerate(items)
    )


@dataclass(slots=True, frozen=True)
class Config:
    """Economic assumptions for one projection run.

    ``inflation_rate`` is carried for serialization only; salary and expense
    growth use their own rates.
    """

    time_horizon_years: int
    annual_salary: float = 0.0
    annual_salary_growth: float = 0.0
    inflation_rate: float = 0.0
    federal_tax_brackets: tuple[TaxBracket, ...] = ()
    provincial_tax_brackets: tuple[TaxBracket, ...] = ()
    monthly_expenses: float = 0.0
    annual_expense_growth: float = 0.0
    monthly_savings_rate: float = 0.0
    investment_returns: dict[str, float] = field(default_factory=dict)
    asset_appreciation: dict[str, float] = field(default_factory=dict)
    extra_debt_payments: dict[str, float] = field(default_factory=dict)
    one_time_expenses: tuple[OneTimeAmount, ...] = ()
    one_time_incomes: tuple[OneTimeAmount, ...] = ()
    savings_allocation: dict[str, float] = field(default_factory=dict)
    events: tuple[Event, ...] = ()

    @property
    def total_months(self) -> int:
        return self.time_horizon_years * 12

    @classmethod
    def from_dict(cls, data: dict[str, Any], path: str = "config") -> "Config":
        horizon = _require(data, "time_horizon_years", path)
        if isinstance(horizon, bool) or not isinstance(horizon, int):
            raise SchemaError(f"{path}.time_horizon_years: expected integer")
        return cls(
            time_horizon_years=horizon,
            annual_salary=_number(_optional(data, "annual_salary", 0.0), f"{path}.annual_salary"),
            annual_salary_growth=_number(_optional(data, "annual_salary_growth", 0.0), f"{path}.annual_salary_growth"),
            inflation_rate=_number(_optional(data, "inflation_rate", 0.0), f"{path}.inflation_rate"),
            federal_tax_brackets=_brackets(data, "federal_tax_brackets", path),
            provincial_tax_brackets=_brackets(data, "provincial_tax_brackets", path),
            monthly_expenses=_number(_optional(data, "monthly_expenses", 0.0), f"{path}.monthly_expenses"),
            annual_expense_growth=_number(_optional(data, "annual_expense_growth", 0.0), f"{path}.annual_expense_growth"),
            monthly_savings_rate=_number(_optional(data, "monthly_savings_rate", 0.0), f"{path}.monthly_savings_rate"),
            investment_returns=_rate_map(_optional(data, "investment_returns", {}), f"{path}.investment_returns"),
            asset_appreciation=_rate_map(_optional(data, "asset_appreciation", {}), f"{path}.asset_appreciation"),
            extra_debt_payments=_rate_map(_optional(data, "extra_debt_payments", {}), f"{path}.extra_debt_payments"),
            one_time_expenses=_one_time(data, "one_time_expenses", path),
            one_time_incomes=_one_time(data, "one_time_incomes", path),
            savings_allocation=_rate_map(_optional(data, "savings_allocation", {}), f"{path}.savings_allocation"),
            events=_events(data, path),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "time_horizon_years": self.time_horizon_years,
            "inflation_rate": self.inflation_rate,
            "annual_salary": self.annual_salary,
            "annual_salary_growth": self.annual_salary_growth,
            "federal_tax_brackets": [b.to_dict() for b in self.federal_tax_brackets],
            "provincial_tax_brackets": [b.to_dict() for b in self.provincial_tax_brackets],
            "monthly_expenses": self.monthly_expenses,
            "annual_expense_growth": self.annual_expense_growth,
            "monthly_savings_rate": self.monthly_savings_rate,
            "investment_returns": dict(self.investment_returns),
            "extra_debt_payments": dict(self.extra_debt_payments),
            "one_time_expenses": [e.to_dict() for e in self.one_time_expenses],
            "one_time_incomes": [i.to_dict() for i in self.one_time_incomes],
            "asset_appreciation": dict(self.asset_appreciation),
            "savings_allocation": dict(self.savings_allocation),
            "events": [e.to_dict() for e in self.events],
        }


@dataclass(slots=True, frozen=True)
class AccountSnapshot:
    id: str
    type: AccountType
    is_asset: bool
    balance: float
    currency: str = "CAD"

    @classmethod
    def from_dict(cls, data: dict[str, Any], path: str) -> "AccountSnapshot":
        return cls(
            id=str(_require(data, "id", path)),
            type=AccountType.parse(str(_require(data, "type", path))),
            is_asset=bool(_require(data, "is_asset", path)),
            balance=_number(_optional(data, "balance", 0.0), f"{path}.balance"),
            currency=str(_optional(data, "currency", "CAD")),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type.value,
            "is_asset": self.is_asset,
            "currency": self.currency,
            "balance": self.balance,
        }


DEBT_KINDS = {"mortgage", "loan"}


@dataclass(slots=True, frozen=True)
class DebtSnapshot:
    account_id: str
    current_balance: float
    interest_rate: float
    payment_amount: float
    kind: str = "loan"

    @classmethod
    def from_dict(cls, data: dict[str, Any], path: str) -> "DebtSnapshot":
        kind = str(_optional(data, "kind", "loan"))
        if kind not in DEBT_KINDS:
            raise SchemaError(f"{path}.kind: '{kind}' is not valid; expected one of [loan, mortgage]")
        return cls(
            account_id=str(_require(data, "account_id", path)),
            current_balance=_number(_require(data, "current_balance", path), f"{path}.current_balance"),
            interest_rate=_number(_require(data, "interest_rate", path), f"{path}.interest_rate"),
            payment_amount=_number(_require(data, "payment_amount", path), f"{path}.payment_amount"),
            kind=kind,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "account_id": self.account_id,
            "kind": self.kind,
            "current_balance": self.current_balance,
            "interest_rate": self.interest_rate,
            "payment_amount": self.payment_amount,
        }


@dataclass(slots=True, frozen=True)
class RecurringExpense:
    name: str
    amount: float
    frequency: str
    is_active: bool = True

    @classmethod
    def from_dict(cls, data: dict[str, Any], path: str) -> "RecurringExpense":
        return cls(
            name=str(_require(data, "name", path)),
            amount=_number(_require(data, "amount", path), f"{path}.amount"),
            frequency=str(_require(data, "frequency", path)),
            is_active=bool(_optional(data, "is_active", True)),
        )

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "amount": self.amount, "frequency": self.frequency, "is_active": self.is_active}


@dataclass(slots=True, frozen=True)
class Snapshot:
    """Point-in-time read of accounts, tracked debts and recurring expenses."""

    accounts: tuple[AccountSnapshot, ...] = ()
    debts: tuple[DebtSnapshot, ...] = ()
    recurring_expenses: tuple[RecurringExpense, ...] = ()

    @classmethod
    def from_dict(cls, data: dict[str, Any], path: str = "snapshot") -> "Snapshot":
        return cls(
            accounts=tuple(
                AccountSnapshot.from_dict(_expect_dict(item, f"accounts[{idx}]"), f"accounts[{idx}]")
                for idx, item in enumerate(_expect_list(_optional(data, "accounts", []), "accounts"))
            ),
            debts=tuple(
                DebtSnapshot.from_dict(_expect_dict(item, f"debts[{idx}]"), f"debts[{idx}]")
                for idx, item in enumerate(_expect_list(_optional(data, "debts", []), "debts"))
            ),
            recurring_expenses=tuple(
                RecurringExpense.from_dict(_expect_dict(item, f"recurring_expenses[{idx}]"), f"recurring_expenses[{idx}]")
                for idx, item in enumerate(_expect_list(_optional(data, "recurring_expenses", []), "recurring_expenses"))
            ),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "accounts": [a.to_dict() for a in self.accounts],
            "debts": [d.to_dict() for d in self.debts],
            "recurring_expenses": [r.to_dict() for r in self.recurring_expenses],
        }


def _load_json_object(path: str | Path, label: str) -> dict[str, Any]:
    raw = json.loads(Path(path).read_text(encoding="utf-8"))
    if not isinstance(raw, dict):
        raise SchemaError(f"{label}: root must be a JSON object")
    return raw


def load_config(path: str | Path) -> Config:
    """Load config JSON into a Config; accepts a bare config or a ``{"config": ...}`` request body."""
    raw = _load_json_object(path, "config")
    if "config" in raw and isinstance(raw["config"], dict):
        return parse_request(raw)
    return Config.from_dict(raw)


def load_snapshot(path: str | Path) -> Snapshot:
    return Snapshot.from_dict(_load_json_object(path, "snapshot"))


def parse_request(body: Any) -> Config:
    """Extract the Config from a ``{"config": {...}}`` calculate request."""
    data = _expect_dict(body, "request")
    return Config.from_dict(_expect_dict(_require(data, "config", "request"), "config"))
