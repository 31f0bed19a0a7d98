"""Mortgage/loan amortization and static liability pass-through."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from .log import get_logger
from .schema import AccountSnapshot, Config, DebtSnapshot

logger = get_logger(__name__)


@dataclass(slots=True)
class DebtState:
    debt: DebtSnapshot
    balance: float
    extra_payment: float

    @property
    def account_id(self) -> str:
        return self.debt.account_id

    @property
    def monthly_rate(self) -> float:
        return self.debt.interest_rate / 12.0 / 100.0

    @property
    def payment(self) -> float:
        return self.debt.payment_amount + self.extra_payment


@dataclass(slots=True)
class Payment:
    interest: float
    principal: float
    balance_after: float


@dataclass(slots=True)
class LiabilityStep:
    total: float
    debts: dict[str, float]


def amortize_month(state: DebtState) -> Payment:
    """Apply one monthly payment; a paid-off debt stays at zero."""
    if state.balance <= 0:
        state.balance = 0.0
        return Payment(interest=0.0, principal=0.0, balance_after=0.0)

    interest = state.balance * state.monthly_rate
    principal = min(state.payment - interest, state.balance)
    state.balance = max(state.balance - principal, 0.0)
    return Payment(interest=interest, principal=principal, balance_after=state.balance)


@dataclass(slots=True)
class LiabilityBook:
    static: dict[str, float]
    tracked: list[DebtState]

    def summarize(self) -> LiabilityStep:
        debts = dict(self.static)
        for state in self.tracked:
            debts[state.account_id] = state.balance
        return LiabilityStep(total=sum(debts.values()), debts=debts)

    def pay_down(self, account_id: str, amount: float) -> float | None:
        """Apply a lump sum to a tracked debt; returns the amount paid, or None if untracked."""
        for state in self.tracked:
            if state.account_id == account_id:
                paid = max(0.0, min(amount, state.balance))
                state.balance -= paid
                return paid
        return None

    def step(self) -> LiabilityStep:
        for state in self.tracked:
            amortize_month(state)
        return self.summarize()


def build_liability_book(
    accounts: Iterable[AccountSnapshot],
    debts: Iterable[DebtSnapshot],
    config: Config,
) -> LiabilityBook:
    accounts = list(accounts)
    known_ids = {account.id for account in accounts}

    tracked: dict[str, DebtState] = {}
    for debt in debts:
        if debt.account_id not in known_ids:
            logger.debug("debt_ignored_missing_account", account_id=debt.account_id, kind=debt.kind)
            continue
        tracked[debt.account_id] = DebtState(
            debt=debt,
            balance=abs(debt.current_balance),
            extra_payment=config.extra_debt_payments.get(debt.account_id, 0.0),
        )

    static: dict[str, float] = {}
    for account in accounts:
        if account.is_asset or account.balance == 0 or account.id in tracked:
            continue
        static[account.id] = abs(account.balance)

    return LiabilityBook(static=static, tracked=list(tracked.values()))
