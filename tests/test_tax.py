import pytest

from projections.schema import Config, TaxBracket
from projections.tax import calculate_tax, compute_annual_tax, marginal_rate

THREE_BRACKETS = (
    TaxBracket(50_000, 0.15),
    TaxBracket(100_000, 0.20),
    TaxBracket(0, 0.26),
)


def test_two_bracket_partition():
    brackets = [TaxBracket(50_000, 0.15), TaxBracket(0, 0.25)]
    assert calculate_tax(100_000, brackets) == pytest.approx(32_500.0)


@pytest.mark.parametrize("income", [0, 1, 45_000, 1_000_000])
def test_empty_bracket_table_is_zero(income):
    assert calculate_tax(income, []) == 0.0


def test_zero_and_negative_income_are_untaxed():
    assert calculate_tax(0, THREE_BRACKETS) == 0.0
    assert calculate_tax(-10_000, THREE_BRACKETS) == 0.0


def test_very_high_income_uses_unbounded_top_bracket():
    # 50k @ 15% + 50k @ 20% + 900k @ 26%
    assert calculate_tax(1_000_000, THREE_BRACKETS) == pytest.approx(251_500.0)


def test_exact_bracket_boundary():
    assert calculate_tax(50_000, THREE_BRACKETS) == pytest.approx(7_500.0)
    assert calculate_tax(100_000, THREE_BRACKETS) == pytest.approx(17_500.0)


def test_income_above_last_bounded_bracket_is_left_untaxed():
    brackets = [TaxBracket(50_000, 0.10)]
    assert calculate_tax(80_000, brackets) == pytest.approx(5_000.0)


def test_single_unbounded_bracket_is_flat_tax():
    assert calculate_tax(80_000, [TaxBracket(0, 0.2)]) == pytest.approx(16_000.0)


def test_zero_rate_first_bracket_acts_as_exemption():
    brackets = [TaxBracket(15_000, 0.0), TaxBracket(0, 0.15)]
    assert calculate_tax(60_000, brackets) == pytest.approx(6_750.0)


def test_tax_is_monotonic_in_income():
    incomes = [i * 7_500.0 for i in range(0, 60)]
    taxes = [calculate_tax(income, THREE_BRACKETS) for income in incomes]
    assert all(later >= earlier for earlier, later in zip(taxes, taxes[1:]))


def test_federal_and_provincial_are_summed_independently():
    config = Config(
        time_horizon_years=1,
        federal_tax_brackets=(TaxBracket(55_867, 0.15), TaxBracket(0, 0.2)),
        provincial_tax_brackets=(TaxBracket(0, 0.05),),
    )
    result = compute_annual_tax(80_000, config)

    assert result.federal_tax == pytest.approx(55_867 * 0.15 + (80_000 - 55_867) * 0.2)
    assert result.provincial_tax == pytest.approx(4_000.0)
    assert result.total_tax == pytest.approx(result.federal_tax + result.provincial_tax)
    assert result.net_income == pytest.approx(80_000 - result.total_tax)
    assert 0 < result.effective_rate < 0.25


def test_marginal_rate_lookup():
    assert marginal_rate(40_000, THREE_BRACKETS) == 0.15
    assert marginal_rate(75_000, THREE_BRACKETS) == 0.20
    assert marginal_rate(500_000, THREE_BRACKETS) == 0.26
    assert marginal_rate(500_000, []) == 0.0
