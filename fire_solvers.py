import logging
import math
from dataclasses import replace
from typing import Optional

from fire_math import (
    CALC_CONFIG,
    MAX_SAFE_INTEGER,
    is_finite_number,
    round_dollars,
    safe_annuity_factor,
    safe_compound,
    safe_growing_annuity_factor,
)
from fire_simulation import CalculatorInputs, Strategy, simulate

logger = logging.getLogger(__name__)

# =============================================================================
# SOLVER CONFIGURATION
# =============================================================================
SOLVER_CONFIG = {
    # Acceptance band is [0, max(MIN_TOLERANCE, expense / TOLERANCE_DIVISOR)]
    "TOLERANCE_DIVISOR": 10000,
    "MIN_TOLERANCE": 1,

    # Dollar steps tried around the closed-form estimate, in order
    "PROBE_STEPS": (1, 2, 5, 10, 20, 50),
    "NEGATIVE_PROBE_WINDOW": 100,   # x tolerance
    "POSITIVE_PROBE_THRESHOLD": 2,  # x tolerance

    # Fallback bracket around the estimate
    "RANGE_FACTOR_POSITIVE": 0.1,
    "RANGE_FACTOR_NON_POSITIVE": 0.5,
    "BOUND_GROWTH": 1.2,
    "MAX_BOUND_ATTEMPTS": 20,
    "FALLBACK_MULTIPLIER": 5,

    "MAX_SEARCH_ITERATIONS": 50,
    "MIN_BRACKET_WIDTH": 1,
}

# =============================================================================
# SHARED HELPERS
# =============================================================================

def _annual_savings_for_target(inputs: CalculatorInputs, target: float, years: int) -> float:
    """Level (or inflation-growing) yearly contribution that accumulates to target by retirement."""
    investment_rate = inputs.investment_return / 100
    inflation_rate = inputs.inflation_rate / 100

    if inputs.inflation_adjust_savings:
        if abs(investment_rate - inflation_rate) < CALC_CONFIG["SOLVER_RATE_EPSILON"]:
            return target / years
        return target / safe_growing_annuity_factor(investment_rate, inflation_rate, years)

    if investment_rate == 0:
        return target / years
    return target / safe_annuity_factor(investment_rate, years)

# =============================================================================
# FIRE
# =============================================================================

def solve_fire_savings(inputs: CalculatorInputs) -> float:
    """
    Annual savings needed so the real return on assets at retirement covers
    the full inflated expense forever.

    Partial income is deliberately ignored: it stops at partial_income_until_age,
    and financial independence has to hold after it does.
    """
    years_to_retirement = inputs.years_to_retirement
    future_expenses = safe_compound(inputs.current_expense, inputs.inflation_rate / 100, years_to_retirement)

    real_return_rate = (inputs.investment_return - inputs.inflation_rate) / 100
    if real_return_rate <= 0:
        logger.info("Real return %.2f%% is not positive; FIRE cannot be reached", real_return_rate * 100)
        return float(MAX_SAFE_INTEGER)

    required_assets = future_expenses / real_return_rate
    if not is_finite_number(required_assets):
        return float(MAX_SAFE_INTEGER)

    future_current_assets = safe_compound(inputs.current_assets, inputs.investment_return / 100, years_to_retirement)
    if math.isinf(future_current_assets) and future_current_assets > 0:
        # Existing assets alone outgrow any requirement
        return 0.0

    additional_assets_needed = max(0.0, required_assets - future_current_assets)
    if not is_finite_number(additional_assets_needed):
        return float(MAX_SAFE_INTEGER)

    if years_to_retirement <= 0:
        return 0.0

    logger.debug("FIRE target %.0f, shortfall %.0f over %d years",
                 required_assets, additional_assets_needed, years_to_retirement)
    result = _annual_savings_for_target(inputs, additional_assets_needed, years_to_retirement)
    return result if is_finite_number(result) else float(MAX_SAFE_INTEGER)

# =============================================================================
# DIE WITH ZERO
# =============================================================================

def final_assets_for_savings(inputs: CalculatorInputs, annual_savings: float) -> float:
    """Simulate with a candidate savings amount (whole dollars) and return the last year's assets."""
    trial = replace(inputs, annual_savings=round_dollars(annual_savings))
    data = simulate(trial)
    return data[-1].assets if data else 0.0


def calculate_mathematical_die_with_zero_savings(inputs: CalculatorInputs) -> float:
    """
    Closed-form estimate: walk the retirement withdrawals backwards from a zero
    balance at die_age to the assets needed at retire_age, then spread the
    shortfall over the working years.

    Assumes growth every year, so it drifts from simulate() once the balance
    would go negative.
    """
    years_to_retirement = inputs.years_to_retirement
    years_in_retirement = inputs.years_in_retirement
    investment_rate = inputs.investment_return / 100
    inflation_rate = inputs.inflation_rate / 100

    withdrawals = []
    for year in range(years_in_retirement):
        age = inputs.retire_age + year
        expense = safe_compound(inputs.current_expense, inflation_rate, years_to_retirement + year)

        income = 0.0
        if age <= inputs.partial_income_until_age:
            if inputs.inflation_adjust_partial_income:
                income = safe_compound(inputs.partial_income, inflation_rate, year)
            else:
                income = inputs.partial_income

        withdrawals.append(max(0.0, expense - income))

    growth = 1 + investment_rate
    if growth <= 0:
        # A 100%+ loss wipes out any starting balance, so no finite amount funds withdrawals
        if any(withdrawals):
            return float(MAX_SAFE_INTEGER)
        return 0.0

    required_assets = 0.0
    for withdrawal in reversed(withdrawals):
        required_assets = (required_assets + withdrawal) / growth

    future_current_assets = safe_compound(inputs.current_assets, investment_rate, years_to_retirement)
    additional_assets_needed = max(0.0, required_assets - future_current_assets)

    if additional_assets_needed == 0:
        return 0.0
    if not is_finite_number(additional_assets_needed):
        return float(MAX_SAFE_INTEGER)

    result = _annual_savings_for_target(inputs, additional_assets_needed, years_to_retirement)
    if not is_finite_number(result):
        return float(MAX_SAFE_INTEGER)
    return max(0.0, result)


def binary_search_savings(inputs: CalculatorInputs, low_savings: float, high_savings: float,
                          tolerance: float) -> float:
    for _ in range(SOLVER_CONFIG["MAX_SEARCH_ITERATIONS"]):
        mid_savings = round_dollars((low_savings + high_savings) / 2)
        result = final_assets_for_savings(inputs, mid_savings)

        if 0 <= result <= tolerance:
            return mid_savings

        if result < 0:
            low_savings = mid_savings
        else:
            high_savings = mid_savings

        if high_savings - low_savings <= SOLVER_CONFIG["MIN_BRACKET_WIDTH"]:
            break

    return round_dollars(high_savings)


def refine_die_with_zero_savings(inputs: CalculatorInputs, math_savings: float) -> float:
    """
    Correct the closed-form estimate against simulate().

    Probes small dollar steps first since the estimate is usually within a few
    dollars, then falls back to a bracketed binary search.
    """
    tolerance = max(SOLVER_CONFIG["MIN_TOLERANCE"], inputs.current_expense / SOLVER_CONFIG["TOLERANCE_DIVISOR"])
    base_savings = round_dollars(math_savings)
    math_result = final_assets_for_savings(inputs, math_savings)

    # Slightly short: step up
    if -tolerance * SOLVER_CONFIG["NEGATIVE_PROBE_WINDOW"] < math_result < 0:
        for step in SOLVER_CONFIG["PROBE_STEPS"]:
            test_savings = base_savings + step
            test_result = final_assets_for_savings(inputs, test_savings)

            if 0 <= test_result <= tolerance:
                logger.debug("Die-with-zero accepted +%d step: %.0f", step, test_savings)
                return test_savings

            if test_result >= 0:
                return binary_search_savings(inputs, base_savings, test_savings, tolerance)

    # Comfortably over: step down
    if math_result > tolerance * SOLVER_CONFIG["POSITIVE_PROBE_THRESHOLD"]:
        for step in SOLVER_CONFIG["PROBE_STEPS"]:
            test_savings = base_savings - step
            if test_savings < 0:
                continue

            test_result = final_assets_for_savings(inputs, test_savings)

            if 0 <= test_result <= tolerance:
                logger.debug("Die-with-zero accepted -%d step: %.0f", step, test_savings)
                return test_savings

            if test_result < 0:
                return binary_search_savings(inputs, test_savings, base_savings, tolerance)

    range_factor = (SOLVER_CONFIG["RANGE_FACTOR_POSITIVE"] if math_savings > 0
                    else SOLVER_CONFIG["RANGE_FACTOR_NON_POSITIVE"])
    low_savings = max(0.0, round_dollars(math_savings * (1 - range_factor)))
    high_savings = round_dollars(math_savings * (1 + range_factor))

    attempts = 0
    while final_assets_for_savings(inputs, high_savings) < 0 and attempts < SOLVER_CONFIG["MAX_BOUND_ATTEMPTS"]:
        low_savings = high_savings
        high_savings = round_dollars(high_savings * SOLVER_CONFIG["BOUND_GROWTH"])
        attempts += 1

    if final_assets_for_savings(inputs, high_savings) < 0:
        high_savings = round_dollars(math_savings * SOLVER_CONFIG["FALLBACK_MULTIPLIER"])

    logger.debug("Die-with-zero binary search between %.0f and %.0f", low_savings, high_savings)
    return binary_search_savings(inputs, low_savings, high_savings, tolerance)


def solve_die_with_zero_savings(inputs: CalculatorInputs) -> float:
    """Annual savings that leaves assets at (or just above) zero in the die_age year."""
    if inputs.years_to_retirement <= 0 or inputs.years_in_retirement <= 0:
        return 0.0

    math_savings = calculate_mathematical_die_with_zero_savings(inputs)
    if math_savings == 0:
        return 0.0
    if math_savings >= MAX_SAFE_INTEGER:
        # Nothing finite to refine around
        return float(MAX_SAFE_INTEGER)

    rounded_math_savings = max(0.0, round_dollars(math_savings))
    logger.debug("Die-with-zero closed-form estimate: %.0f", rounded_math_savings)
    return refine_die_with_zero_savings(inputs, rounded_math_savings)

# =============================================================================
# STRATEGY DISPATCH
# =============================================================================

def solve_required_savings(inputs: CalculatorInputs, strategy: Optional[str] = None) -> float:
    strategy = strategy or inputs.strategy
    if strategy == Strategy.FIRE:
        return solve_fire_savings(inputs)
    if strategy == Strategy.DIE_WITH_ZERO:
        return solve_die_with_zero_savings(inputs)
    return inputs.annual_savings


def apply_required_savings(inputs: CalculatorInputs, strategy: Optional[str] = None) -> CalculatorInputs:
    """Copy of inputs with annual_savings filled in by the chosen strategy (whole dollars)."""
    required = solve_required_savings(inputs, strategy)
    return replace(inputs, annual_savings=round_dollars(required), strategy=strategy or inputs.strategy)
