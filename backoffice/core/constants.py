"""
Back-office domain constants.

Every magic number used by the labor, inventory and finance calculators
lives here so that tests and routers share one definition.
"""

# ---------------------------------------------------------------------------
# Compensation
# ---------------------------------------------------------------------------

# Average calendar days per pay period (365.25 / periods per year)
DAYS_PER_PAY_PERIOD = {
    "weekly": 7,
    "bi-weekly": 14,
    "semi-monthly": 15.22,
    "monthly": 30.44,
}

DAYS_PER_CONTRACTOR_INTERVAL = {
    "weekly": 7,
    "bi-weekly": 14,
    "monthly": 30.44,
    "per-job": 0,
}

# Periods per year, used to annualize salaries and contractor payments
PAY_PERIODS_PER_YEAR = {
    "weekly": 52,
    "bi-weekly": 26,
    "semi-monthly": 24,
    "monthly": 12,
}

CONTRACTOR_INTERVALS_PER_YEAR = {
    "weekly": 52,
    "bi-weekly": 26,
    "monthly": 12,
}

DEFAULT_HOURS_PER_WEEK = 40
WEEKS_PER_YEAR = 52

# Bi-weekly pay periods are counted from this Monday
BIWEEKLY_ANCHOR = (2024, 1, 1)

# ---------------------------------------------------------------------------
# Time punches
# ---------------------------------------------------------------------------
NOISE_WINDOW_SECONDS = 60
BURST_PUNCH_COUNT = 3
MIN_SESSION_MINUTES = 3

# ---------------------------------------------------------------------------
# Scheduling thresholds (minutes)
# ---------------------------------------------------------------------------
DAILY_OT_ERROR_MINUTES = 120
DAILY_OT_WARNING_MINUTES = 60
WEEKLY_OT_ERROR_MINUTES = 240
WEEKLY_OT_WARNING_MINUTES = 120
WEEKLY_OT_APPROACH_MINUTES = 120

# ---------------------------------------------------------------------------
# Inventory unit tables
# ---------------------------------------------------------------------------

# Millilitres per unit
VOLUME_UNITS = {
    "ml": 1.0,
    "l": 1000.0,
    "fl oz": 29.5735,
    "cup": 236.588,
    "tbsp": 14.7868,
    "tsp": 4.92892,
    "gal": 3785.41,
    "qt": 946.353,
    "pint": 473.176,
}

# Grams per unit
WEIGHT_UNITS = {
    "g": 1.0,
    "kg": 1000.0,
    "lb": 453.592,
    "oz": 28.3495,
}

# Grams per cup for ingredients commonly measured by volume in recipes
INGREDIENT_DENSITIES = {
    "rice": 185.0,
    "flour": 120.0,
    "sugar": 200.0,
    "butter": 227.0,
}

CONTAINER_UNITS = ("bag", "box", "case", "package", "container")
INDIVIDUAL_UNITS = ("each", "piece", "unit")

# ---------------------------------------------------------------------------
# Prime-cost benchmarks (percent of net revenue): (good_max, caution_max, label)
# ---------------------------------------------------------------------------
FOOD_COST_BENCHMARK = (32.0, 35.0, "28-32%")
LABOR_COST_BENCHMARK = (30.0, 35.0, "25-30%")
PRIME_COST_BENCHMARK = (60.0, 65.0, "55-60%")

# ---------------------------------------------------------------------------
# Recurring expense detection
# ---------------------------------------------------------------------------
EXPENSE_AMOUNT_TOLERANCE = 0.20
EXPENSE_MIN_MONTHS = 2
EXPENSE_BASE_CONFIDENCE = 0.6
EXPENSE_CONFIDENCE_PER_MONTH = 0.2
EXPENSE_MAX_CV_PENALTY = 0.3
