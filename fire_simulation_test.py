import math
import unittest
from dataclasses import replace
from fire_math import MAX_SAFE_INTEGER
from fire_simulation import (
    CalculatorInputs,
    DEFAULT_INPUTS,
    YearData,
    depletion_age,
    has_calculation_limits,
    run_simulation,
    simulate,
    summarize_results,
)


class TestYearlySimulationLogic(unittest.TestCase):
    def setUp(self):
        # Zero growth/inflation for easy logic checks
        self.inputs = CalculatorInputs(
            current_age=50, retire_age=55, die_age=60, start_year=2025,
            current_assets=100000, current_expense=10000,
            inflation_rate=0, investment_return=0,
            annual_savings=5000
        )

    def test_sequence_completeness(self):
        data = simulate(self.inputs)
        self.assertEqual(len(data), 60 - 50 + 1)
        self.assertEqual([d.age for d in data], list(range(50, 61)))
        self.assertEqual([d.year for d in data], list(range(2025, 2036)))

    def test_accumulation_then_withdrawal(self):
        """
        5 saving years (50-54): 100k + 5 * 5k = 125k.
        6 retirement years (55-60): 125k - 6 * 10k = 65k.
        """
        data = simulate(self.inputs)
        self.assertEqual(data[4].assets, 125000)
        self.assertEqual(data[4].expenses, 10000)
        self.assertEqual(data[-1].assets, 65000)
        self.assertEqual(data[-1].net_worth, data[-1].assets)

    def test_growth_applied_before_contribution(self):
        inputs = replace(self.inputs, investment_return=10, retire_age=51)
        data = simulate(inputs)
        self.assertAlmostEqual(data[0].assets, 100000 * 1.10 + 5000, places=6)

    def test_inflation_adjusted_savings(self):
        """Savings inflate from year 0 on the same clock as expenses."""
        inputs = replace(self.inputs, current_assets=0, inflation_rate=10, inflation_adjust_savings=True)
        data = simulate(inputs)
        self.assertAlmostEqual(data[0].assets, 5000, places=6)
        self.assertAlmostEqual(data[1].assets, 5000 + 5500, places=6)

    def test_expenses_inflate_from_today(self):
        inputs = replace(self.inputs, inflation_rate=5)
        data = simulate(inputs)
        self.assertAlmostEqual(data[5].expenses, 10000 * 1.05 ** 5, places=6)

    def test_partial_income_window(self):
        """Income offsets withdrawals from retire_age through partial_income_until_age only."""
        inputs = replace(self.inputs, partial_income=4000, partial_income_until_age=57)
        data = simulate(inputs)
        by_age = {d.age: d for d in data}

        self.assertEqual(by_age[54].income, 0)
        self.assertEqual(by_age[55].income, 4000)
        self.assertEqual(by_age[57].income, 4000)
        self.assertEqual(by_age[58].income, 0)

        self.assertEqual(by_age[55].expenses, 6000)
        self.assertEqual(by_age[58].expenses, 10000)
        # 125k - 3 * 6k - 3 * 10k
        self.assertEqual(by_age[60].assets, 77000)

    def test_partial_income_inflates_from_retirement(self):
        inputs = replace(self.inputs, inflation_rate=10, partial_income=4000,
                         partial_income_until_age=60, inflation_adjust_partial_income=True)
        by_age = {d.age: d for d in simulate(inputs)}
        self.assertAlmostEqual(by_age[55].income, 4000, places=6)
        self.assertAlmostEqual(by_age[57].income, 4000 * 1.10 ** 2, places=6)

    def test_income_above_expense_floors_withdrawal_at_zero(self):
        inputs = replace(self.inputs, partial_income=25000, partial_income_until_age=60)
        data = simulate(inputs)
        for d in data:
            self.assertGreaterEqual(d.expenses, 0)
        # Surplus income is not added to assets
        self.assertEqual(data[-1].assets, 125000)

    def test_no_growth_on_negative_balance(self):
        """Once assets go negative the debt does not compound."""
        inputs = replace(self.inputs, current_age=55, current_assets=15000, investment_return=10)
        data = simulate(inputs)
        # Age 55: 15000 * 1.1 - 10000 = 6500
        self.assertAlmostEqual(data[0].assets, 6500, places=6)
        # Age 56: 6500 * 1.1 - 10000 = -2850
        self.assertAlmostEqual(data[1].assets, -2850, places=6)
        # Age 57: -2850 - 10000, no interest
        self.assertAlmostEqual(data[2].assets, -12850, places=6)

    def test_zero_growth_decumulation_exact(self):
        inputs = CalculatorInputs(
            current_age=65, retire_age=65, die_age=95,
            current_assets=1200000, current_expense=40000,
            inflation_rate=0, investment_return=0, annual_savings=0
        )
        data = simulate(inputs)
        self.assertEqual(len(data), 31)
        self.assertEqual(data[-1].assets, 1200000 - 31 * 40000)
        self.assertEqual(data[-1].assets, -40000)

    def test_inverted_ages_yield_empty_projection(self):
        inputs = replace(self.inputs, die_age=45)
        self.assertEqual(simulate(inputs), [])

    def test_retire_before_current_age_is_all_retirement(self):
        inputs = replace(self.inputs, retire_age=40)
        data = simulate(inputs)
        self.assertEqual(len(data), 11)
        self.assertEqual(data[-1].assets, 100000 - 11 * 10000)

    def test_idempotent(self):
        inputs = replace(DEFAULT_INPUTS, start_year=2030)
        self.assertEqual(simulate(inputs), simulate(inputs))


class TestCalculationLimits(unittest.TestCase):
    def test_overflow_is_clamped(self):
        """Extreme compounding never leaks inf/NaN into the records."""
        inputs = CalculatorInputs(
            current_age=20, retire_age=150, die_age=200,
            current_assets=1e9, current_expense=1e6,
            inflation_rate=300, investment_return=500, annual_savings=1e6
        )
        data = simulate(inputs)
        self.assertEqual(len(data), 181)
        for d in data:
            self.assertTrue(math.isfinite(d.assets))
            self.assertTrue(math.isfinite(d.income))
            self.assertLessEqual(d.expenses, MAX_SAFE_INTEGER)
            self.assertLessEqual(d.income, MAX_SAFE_INTEGER)
        self.assertEqual(data[-1].expenses, MAX_SAFE_INTEGER)
        self.assertTrue(has_calculation_limits(data))

    def test_normal_projection_within_limits(self):
        self.assertFalse(has_calculation_limits(simulate(DEFAULT_INPUTS)))


class TestResultsSummary(unittest.TestCase):
    def test_summary_values(self):
        inputs = CalculatorInputs(
            current_age=30, retire_age=32, die_age=34,
            current_assets=0, current_expense=1000,
            inflation_rate=10, investment_return=0, annual_savings=10000
        )
        data = simulate(inputs)
        summary = summarize_results(inputs, data)

        # Age 32 is a retirement year: 20000 - 1000 * 1.1^2
        self.assertAlmostEqual(summary.retirement_assets, 20000 - 1210, places=6)
        self.assertAlmostEqual(summary.retirement_assets_today, (20000 - 1210) / 1.21, places=6)
        self.assertEqual(summary.final_assets, data[-1].assets)
        self.assertEqual(summary.die_age, 34)
        self.assertFalse(summary.exceeds_limits)

    def test_summary_of_empty_projection(self):
        inputs = replace(DEFAULT_INPUTS, die_age=20)
        summary = summarize_results(inputs, simulate(inputs))
        self.assertEqual(summary.retirement_assets, 0)
        self.assertEqual(summary.final_assets, 0)

    def test_depletion_age(self):
        data = [
            YearData(age=70, year=2050, assets=10, expenses=5, income=0, net_worth=10),
            YearData(age=71, year=2051, assets=-5, expenses=15, income=0, net_worth=-5),
        ]
        self.assertEqual(depletion_age(data), 71)
        self.assertIsNone(depletion_age(data[:1]))


class TestFullIntegration(unittest.TestCase):
    def test_run_simulation_completes(self):
        """Ensure the main loop runs and produces a DataFrame."""
        df = run_simulation(DEFAULT_INPUTS)

        self.assertEqual(len(df), DEFAULT_INPUTS.die_age - DEFAULT_INPUTS.current_age + 1)
        for col in ('age', 'year', 'assets', 'expenses', 'income', 'net_worth'):
            self.assertIn(col, df.columns)
        self.assertEqual(df['age'].iloc[0], DEFAULT_INPUTS.current_age)
        self.assertTrue((df['expenses'] >= 0).all())


if __name__ == '__main__':
    unittest.main()
