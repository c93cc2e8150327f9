import math

# =============================================================================
# GLOBAL CONFIGURATION
# =============================================================================
CALC_CONFIG = {
    # Largest integer a double carries exactly. Used as the overflow ceiling
    # and as the "cannot be satisfied" sentinel.
    "MAX_SAFE_INTEGER": 2 ** 53 - 1,

    # Growing annuity switches to the limit form below this rate gap
    "RATE_EPSILON": 0.0001,

    # Solvers divide by years directly below this rate gap
    "SOLVER_RATE_EPSILON": 0.001,
}

MAX_SAFE_INTEGER = CALC_CONFIG["MAX_SAFE_INTEGER"]
MAX_SAFE_LOG = math.log(MAX_SAFE_INTEGER)

# =============================================================================
# SAFE ARITHMETIC PRIMITIVES
# =============================================================================

is_finite_number = math.isfinite


def clamp_to_safe(value: float) -> float:
    """Replace NaN/Infinity with MAX_SAFE_INTEGER."""
    return value if is_finite_number(value) else float(MAX_SAFE_INTEGER)


def round_dollars(value: float) -> float:
    # Half-up to whole dollars; round() would use banker's rounding
    if not is_finite_number(value):
        return value
    return float(math.floor(value + 0.5))


def safe_compound(principal: float, rate: float, years: float) -> float:
    """
    principal * (1 + rate) ** years, evaluated in log space.

    Returns principal untouched when years or rate is zero. Returns infinity
    (signed like the principal) when the magnitude would pass MAX_SAFE_INTEGER.
    """
    if years == 0:
        return principal
    if rate == 0:
        return principal
    if math.isnan(principal) or math.isnan(rate) or math.isnan(years):
        return math.inf
    if principal == 0:
        return 0.0

    base = 1 + rate
    if base <= 0:
        # Losing 100% or more wipes the balance out
        return 0.0

    sign = -1.0 if principal < 0 else 1.0
    log_result = math.log(abs(principal)) + years * math.log(base)

    if log_result > MAX_SAFE_LOG:
        return sign * math.inf

    result = math.exp(log_result)
    return sign * result if is_finite_number(result) else sign * math.inf


def safe_annuity_factor(rate: float, years: float) -> float:
    """Future value of an ordinary annuity of 1: ((1+r)^n - 1) / r."""
    if rate == 0:
        return years
    if years == 0:
        return 0

    compounded = safe_compound(1, rate, years)
    if not is_finite_number(compounded):
        # Converges to 1/r as n grows
        return 1 / rate

    factor = (compounded - 1) / rate
    return factor if is_finite_number(factor) else 1 / rate


def safe_growing_annuity_factor(investment_rate: float, growth_rate: float, years: float) -> float:
    """
    Future value factor for a payment growing at growth_rate while the
    portfolio compounds at investment_rate:

        ((1+r)^n - (1+g)^n) / (r - g)

    Near-equal rates use the limit n * (1+r)^(n-1).
    """
    if years == 0:
        return 0

    if abs(investment_rate - growth_rate) < CALC_CONFIG["RATE_EPSILON"]:
        return years * safe_compound(1, investment_rate, years - 1)

    rate_gap = investment_rate - growth_rate
    investment_compounded = safe_compound(1, investment_rate, years)
    growth_compounded = safe_compound(1, growth_rate, years)

    if not is_finite_number(investment_compounded) or not is_finite_number(growth_compounded):
        return 1 / rate_gap

    factor = (investment_compounded - growth_compounded) / rate_gap
    return factor if is_finite_number(factor) else 1 / rate_gap
