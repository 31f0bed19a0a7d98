"""Asset account growth and savings allocation."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from .log import get_logger
from .schema import AccountSnapshot, AccountType, Config

logger = get_logger(__name__)


@dataclass(slots=True)
class AssetState:
    account: AccountSnapshot
    balance: float
    annual_rate: float
    allocation: float


@dataclass(slots=True)
class AssetStep:
    total: float
    breakdown: dict[str, float]


def annual_to_monthly_rate(annual_rate: float) -> float:
    if annual_rate <= -1.0:
        return -1.0
    return (1.0 + annual_rate) ** (1.0 / 12.0) - 1.0


def growth_rate_for(account_type: AccountType, config: Config) -> float | None:
    """Annual rate for an account type: returns first, appreciation second.

    Returns None when neither map knows the type; UNKNOWN never matches.
    """
    if account_type is AccountType.UNKNOWN:
        return None
    label = account_type.value
    if label in config.investment_returns:
        return config.investment_returns[label]
    if label in config.asset_appreciation:
        return config.asset_appreciation[label]
    return None


def allocation_for(account_type: AccountType, config: Config) -> float:
    if account_type is AccountType.UNKNOWN:
        return 0.0
    return config.savings_allocation.get(account_type.value, 0.0)


def initial_asset_states(accounts: Iterable[AccountSnapshot], config: Config) -> list[AssetState]:
    states: list[AssetState] = []
    for account in accounts:
        if not account.is_asset:
            continue
        rate = growth_rate_for(account.type, config)
        if rate is None:
            logger.debug("growth_rate_missing", account_id=account.id, account_type=account.type.value)
        states.append(
            AssetState(
                account=account,
                balance=account.balance,
                annual_rate=0.0 if rate is None else rate,
                allocation=allocation_for(account.type, config),
            )
        )
    return states


def summarize_assets(states: Iterable[AssetState]) -> AssetStep:
    breakdown: dict[str, float] = {}
    total = 0.0
    for state in states:
        total += state.balance
        key = state.account.type.value
        breakdown[key] = breakdown.get(key, 0.0) + state.balance
    return AssetStep(total=total, breakdown=breakdown)


def grow_assets(states: list[AssetState], savings: float) -> AssetStep:
    """Advance every asset one month; savings land after growth is applied."""
    for state in states:
        state.balance *= 1.0 + annual_to_monthly_rate(state.annual_rate)
        if savings > 0 and state.allocation:
            state.balance += savings * state.allocation
    return summarize_assets(states)
