from datetime import date

import pytest
from structlog.testing import capture_logs

from projections.cash_flow import (
    ProjectionState,
    clamp_savings,
    compute_month_cash_flow,
    monthly_equivalent,
    recurring_monthly_total,
)
from projections.schema import Config, OneTimeAmount, RecurringExpense, TaxBracket


def _config(**overrides) -> Config:
    base = dict(
        time_horizon_years=1,
        annual_salary=80_000,
        federal_tax_brackets=(TaxBracket(55_867, 0.15), TaxBracket(0, 0.2)),
        monthly_expenses=3_000,
        monthly_savings_rate=0.2,
    )
    base.update(overrides)
    return Config(**base)


def test_month_zero_net_income_and_savings():
    flow = compute_month_cash_flow(_config(), 0, date(2026, 1, 15))

    tax = 55_867 * 0.15 + (80_000 - 55_867) * 0.2
    net_monthly = (80_000 - tax) / 12
    assert flow.income == pytest.approx(net_monthly)
    assert flow.expenses == pytest.approx(3_000)
    assert flow.net == pytest.approx(net_monthly - 3_000)
    assert flow.savings == pytest.approx((net_monthly - 3_000) * 0.2)


def test_salary_and_expenses_compound_by_fractional_years():
    config = _config(annual_salary_growth=0.10, annual_expense_growth=0.05, federal_tax_brackets=())
    flow = compute_month_cash_flow(config, 18, date(2027, 7, 1))

    assert flow.gross_annual_salary == pytest.approx(80_000 * 1.10 ** 1.5)
    assert flow.expenses == pytest.approx(3_000 * 1.05 ** 1.5)


def test_one_time_amounts_match_year_and_month_only():
    config = _config(
        one_time_expenses=(
            OneTimeAmount(date(2026, 3, 28), 1_000, "Vacation"),
            OneTimeAmount(date(2026, 3, 2), 250, "Repairs"),
            OneTimeAmount(date(2027, 3, 2), 9_999, "Next year"),
        ),
        one_time_incomes=(OneTimeAmount(date(2026, 3, 1), 2_000, "Bonus"),),
    )
    march = compute_month_cash_flow(config, 2, date(2026, 3, 15))
    april = compute_month_cash_flow(config, 3, date(2026, 4, 15))

    assert march.expenses == pytest.approx(3_000 + 1_250)
    assert march.one_time_income == pytest.approx(2_000)
    assert april.expenses == pytest.approx(3_000)
    assert april.one_time_income == 0.0


def test_negative_cash_flow_saves_nothing():
    flow = compute_month_cash_flow(_config(monthly_expenses=20_000), 0, date(2026, 1, 1))
    assert flow.net < 0
    assert flow.savings == 0.0


@pytest.mark.parametrize("net", [-5_000.0, -0.01])
@pytest.mark.parametrize("rate", [0.0, 0.2, 1.0, 1.5])
def test_savings_clamp_for_negative_flow(net, rate):
    assert clamp_savings(net, rate) == 0.0


def test_savings_never_exceed_net_flow():
    assert clamp_savings(1_000.0, 1.5) == 1_000.0
    assert clamp_savings(1_000.0, -0.5) == 0.0


@pytest.mark.parametrize(
    ("frequency", "expected"),
    [
        ("weekly", 100 * 52 / 12),
        ("bi-weekly", 100 * 26 / 12),
        ("semi-monthly", 200.0),
        ("monthly", 100.0),
        ("Monthly", 100.0),
        ("quarterly", 100 / 3),
        ("annually", 100 / 12),
        ("fortnightly-ish", 0.0),
    ],
)
def test_monthly_equivalent(frequency, expected):
    assert monthly_equivalent(100, frequency) == pytest.approx(expected)


def test_recurring_expenses_join_expense_base_and_grow():
    recurring = recurring_monthly_total(
        [
            RecurringExpense("Internet", 500, "monthly"),
            RecurringExpense("Insurance", 1_200, "quarterly"),
            RecurringExpense("Gym", 60, "monthly", is_active=False),
            RecurringExpense("Mystery", 999, "sometimes"),
        ]
    )
    assert recurring == pytest.approx(900.0)

    config = _config(monthly_expenses=2_000, annual_expense_growth=0.02)
    flow = compute_month_cash_flow(config, 12, date(2027, 1, 1), ProjectionState.from_config(config, recurring))
    assert flow.expenses == pytest.approx(2_900 * 1.02)


def test_unknown_frequency_is_logged_and_skipped():
    with capture_logs() as logs:
        total = recurring_monthly_total([RecurringExpense("Mystery", 999, "sometimes")])

    assert total == 0.0
    assert logs == [
        {
            "event": "recurring_expense_unknown_frequency",
            "log_level": "warning",
            "name": "Mystery",
            "frequency": "sometimes",
        }
    ]


def test_rebased_expenses_compound_from_the_new_base_month():
    state = ProjectionState.from_config(_config(monthly_expenses=2_000, annual_expense_growth=0.02))
    state.rebase_expenses(6)

    assert state.expense_base_month == 6
    assert state.monthly_expenses == pytest.approx(2_000 * 1.02 ** 0.5)
    assert state.expense_level(18) == pytest.approx(2_000 * 1.02**1.5)


def test_event_amounts_join_the_month():
    config = _config()
    plain = compute_month_cash_flow(config, 3, date(2026, 4, 1))
    flow = compute_month_cash_flow(config, 3, date(2026, 4, 1), None, event_income=1_000, event_expenses=250)

    assert flow.income == pytest.approx(plain.income + 1_000)
    assert flow.expenses == pytest.approx(plain.expenses + 250)
