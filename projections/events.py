"""Life events: recurrence expansion and per-month application to a run."""

from __future__ import annotations

import calendar
from dataclasses import dataclass, replace
from datetime import date
from typing import Iterable

from .cash_flow import ProjectionState
from .debts import LiabilityBook
from .log import get_logger
from .schema import Event, EventParameters

logger = get_logger(__name__)

RECURRENCE_MONTHS = {"monthly": 1, "quarterly": 3, "annually": 12}


def add_months(start: date, months: int) -> date:
    """Calendar-month offset that clamps the day to the end of the target month."""
    index = start.year * 12 + (start.month - 1) + months
    year, month_zero = divmod(index, 12)
    month = month_zero + 1
    day = min(start.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def expand_recurring(events: Iterable[Event], horizon_end: date) -> list[Event]:
    """Flatten recurring events into dated single occurrences, sorted by date.

    A recurring event repeats from its own date until ``recurrence_end_date``
    or ``horizon_end``, whichever comes first. Each occurrence is offset from
    the first date so month-end days do not drift.
    """
    expanded: list[Event] = []
    for event in events:
        if not event.is_recurring:
            expanded.append(event)
            continue

        step = RECURRENCE_MONTHS.get(event.recurrence_frequency.strip().lower())
        if step is None:
            logger.warning("event_unknown_recurrence", event_id=event.id, frequency=event.recurrence_frequency)
            expanded.append(replace(event, is_recurring=False))
            continue

        end = horizon_end
        if event.recurrence_end_date is not None and event.recurrence_end_date < horizon_end:
            end = event.recurrence_end_date

        occurrence = 0
        current = event.date
        while current <= end:
            expanded.append(
                replace(
                    event,
                    id=f"{event.id}_occurrence_{occurrence}",
                    date=current,
                    is_recurring=False,
                    recurrence_frequency="",
                    recurrence_end_date=None,
                )
            )
            occurrence += 1
            current = add_months(event.date, occurrence * step)

    expanded.sort(key=lambda item: item.date)
    return expanded


@dataclass(slots=True)
class MonthEvents:
    income: float = 0.0
    expenses: float = 0.0


def _change_expenses(state: ProjectionState, params: EventParameters, month: int) -> None:
    state.rebase_expenses(month)
    if params.expense_change_type == "relative_amount":
        state.monthly_expenses += params.expense_change
    elif params.expense_change_type == "relative_percent":
        state.monthly_expenses *= 1.0 + params.expense_change
    elif params.new_expenses is not None:
        state.monthly_expenses = params.new_expenses
    state.monthly_expenses = max(state.monthly_expenses, 0.0)
    if params.new_expense_growth is not None:
        state.annual_expense_growth = params.new_expense_growth


def apply_event(
    event: Event,
    month: int,
    state: ProjectionState,
    liabilities: LiabilityBook,
    totals: MonthEvents,
) -> None:
    params = event.parameters
    if event.type == "one_time_income":
        totals.income += params.amount
    elif event.type == "one_time_expense":
        totals.expenses += params.amount
    elif event.type == "extra_debt_payment":
        paid = liabilities.pay_down(params.account_id, params.amount)
        if paid is None:
            logger.warning("event_debt_not_tracked", event_id=event.id, account_id=params.account_id)
            return
        totals.expenses += paid
    elif event.type == "salary_change":
        state.rebase_salary(month)
        if params.new_salary is not None:
            state.annual_salary = params.new_salary
        if params.new_salary_growth is not None:
            state.annual_salary_growth = params.new_salary_growth
    elif event.type == "expense_level_change":
        _change_expenses(state, params, month)
    elif event.type == "savings_rate_change":
        if params.new_savings_rate is not None:
            state.monthly_savings_rate = min(max(params.new_savings_rate, 0.0), 1.0)
    else:
        logger.warning("event_unknown_type", event_id=event.id, event_type=event.type)


class EventSchedule:
    """Event occurrences grouped by calendar month; built fresh for every run."""

    def __init__(self, occurrences: Iterable[Event]) -> None:
        self._by_month: dict[tuple[int, int], list[Event]] = {}
        for event in occurrences:
            self._by_month.setdefault((event.date.year, event.date.month), []).append(event)

    @classmethod
    def build(cls, events: Iterable[Event], horizon_end: date) -> "EventSchedule":
        return cls(expand_recurring(events, horizon_end))

    def __len__(self) -> int:
        return sum(len(items) for items in self._by_month.values())

    def for_month(self, current: date) -> list[Event]:
        return list(self._by_month.get((current.year, current.month), ()))

    def apply_month(
        self,
        current: date,
        month: int,
        state: ProjectionState,
        liabilities: LiabilityBook,
    ) -> MonthEvents:
        totals = MonthEvents()
        for event in self.for_month(current):
            apply_event(event, month, state, liabilities, totals)
        return totals
