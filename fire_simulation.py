import pandas as pd
from dataclasses import dataclass, field
from typing import List, Optional
from datetime import datetime

from fire_math import MAX_SAFE_INTEGER, clamp_to_safe, is_finite_number, safe_compound

# =============================================================================
# DATA MODELS
# =============================================================================

class Strategy:
    """Savings philosophies the calculator can solve for."""
    CURRENT_PLAN = "CURRENT_PLAN"
    FIRE = "FIRE"
    DIE_WITH_ZERO = "DIE_WITH_ZERO"


@dataclass(frozen=True)
class CalculatorInputs:
    """Inputs for the net worth projection. Rates are percentage points (4 == 4%)."""
    # Timeline
    current_age: int
    retire_age: int
    die_age: int

    # Balance & spending (today's dollars)
    current_assets: float
    current_expense: float

    # Growth & Economics
    inflation_rate: float
    investment_return: float

    # Accumulation phase contributions
    annual_savings: float
    inflation_adjust_savings: bool = False

    # Income from retire_age through partial_income_until_age, inclusive
    partial_income: float = 0.0
    partial_income_until_age: int = 0
    inflation_adjust_partial_income: bool = False

    # Optional fields
    strategy: str = Strategy.CURRENT_PLAN
    start_year: int = field(default_factory=lambda: datetime.now().year)

    @property
    def years_to_retirement(self) -> int:
        return self.retire_age - self.current_age

    @property
    def years_in_retirement(self) -> int:
        return self.die_age - self.retire_age + 1


@dataclass(frozen=True)
class YearData:
    """Snapshot of the household's position at the end of one year."""
    age: int
    year: int
    assets: float
    expenses: float  # net withdrawal: inflated expense less income, floored at 0
    income: float
    net_worth: float


@dataclass(frozen=True)
class ResultsSummary:
    retirement_assets: float
    retirement_assets_today: float
    final_assets: float
    die_age: int
    exceeds_limits: bool


DEFAULT_INPUTS = CalculatorInputs(
    current_age=25,
    retire_age=60,
    die_age=90,
    current_assets=100000,
    current_expense=50000,
    inflation_rate=4,
    investment_return=8,
    annual_savings=12000,
    inflation_adjust_savings=False,
    partial_income=0,
    partial_income_until_age=0,
    inflation_adjust_partial_income=False,
)

# =============================================================================
# CALCULATION ENGINE
# =============================================================================

def partial_income_for_age(inputs: CalculatorInputs, age: int) -> float:
    if not (inputs.retire_age <= age <= inputs.partial_income_until_age):
        return 0.0
    if inputs.inflation_adjust_partial_income:
        # The income stream's inflation clock starts at retirement
        years_from_retirement = age - inputs.retire_age
        return safe_compound(inputs.partial_income, inputs.inflation_rate / 100, years_from_retirement)
    return inputs.partial_income


def simulate(inputs: CalculatorInputs) -> List[YearData]:
    """
    Project assets year by year from current_age through die_age.

    Before retire_age the portfolio grows and receives annual_savings. From
    retire_age on, the net withdrawal (inflated expense less partial income,
    never below zero) comes out after growth. A balance that is already zero
    or negative does not grow: debt is not charged interest.
    """
    growth = 1 + inputs.investment_return / 100
    inflation = inputs.inflation_rate / 100

    history = []
    assets = inputs.current_assets

    for year in range(inputs.die_age - inputs.current_age + 1):
        age = inputs.current_age + year

        inflated_expense = safe_compound(inputs.current_expense, inflation, year)
        income = partial_income_for_age(inputs, age)

        if age < inputs.retire_age:
            savings = inputs.annual_savings
            if inputs.inflation_adjust_savings:
                savings = safe_compound(inputs.annual_savings, inflation, year)
            assets = assets * growth + savings
        else:
            withdrawal = max(0.0, inflated_expense - income)
            if assets > 0:
                assets = assets * growth - withdrawal
            else:
                assets = assets - withdrawal

        safe_assets = clamp_to_safe(assets)
        if is_finite_number(inflated_expense):
            safe_expenses = max(0.0, inflated_expense - income)
        else:
            safe_expenses = float(MAX_SAFE_INTEGER)
        safe_income = clamp_to_safe(income)

        history.append(YearData(
            age=age,
            year=inputs.start_year + year,
            assets=safe_assets,
            expenses=safe_expenses,
            income=safe_income,
            net_worth=safe_assets,
        ))

    return history


def results_to_dataframe(data: List[YearData]) -> pd.DataFrame:
    columns = ["age", "year", "assets", "expenses", "income", "net_worth"]
    return pd.DataFrame([vars(d) for d in data], columns=columns)


def run_simulation(inputs: CalculatorInputs) -> pd.DataFrame:
    return results_to_dataframe(simulate(inputs))


def has_calculation_limits(data: List[YearData]) -> bool:
    """True if any year hit the MAX_SAFE_INTEGER ceiling."""
    for point in data:
        for value in (point.assets, point.expenses, point.income):
            if not is_finite_number(value) or value >= MAX_SAFE_INTEGER:
                return True
    return False


def depletion_age(data: List[YearData]) -> Optional[int]:
    for point in data:
        if point.assets < 0:
            return point.age
    return None


def summarize_results(inputs: CalculatorInputs, data: List[YearData]) -> ResultsSummary:
    retirement_assets = next((d.assets for d in data if d.age == inputs.retire_age), 0.0)
    final_assets = data[-1].assets if data else 0.0

    # Purchasing power of the retirement balance in today's dollars
    inflation_factor = safe_compound(1, inputs.inflation_rate / 100, inputs.years_to_retirement)
    retirement_assets_today = retirement_assets / inflation_factor if inflation_factor else 0.0

    return ResultsSummary(
        retirement_assets=retirement_assets,
        retirement_assets_today=clamp_to_safe(retirement_assets_today),
        final_assets=final_assets,
        die_age=inputs.die_age,
        exceeds_limits=has_calculation_limits(data),
    )
