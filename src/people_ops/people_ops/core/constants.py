"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

# Working-month approximation used to derive daily and hourly pay.
WORKING_DAYS_PER_MONTH = 22
WORKING_HOURS_PER_DAY = 8

DEFAULT_OVERTIME_RATE = 1.5
DEFAULT_ABSENCE_DEDUCTION_RATE = 1.0

PRESENTEEISM_BONUS_RATE = 0.10

# 0.5% of base salary for every full block of LATE_DAYS_PER_PENALTY late days.
LATE_PENALTY_RATE = 0.005
LATE_DAYS_PER_PENALTY = 3

# Employee withholdings: (code, label, rate)
STATUTORY_DEDUCTIONS = (
    ("JUB", "Jubilación (11%)", 0.11),
    ("LEY19032", "Ley 19032 (3%)", 0.03),
    ("OS", "Obra Social (3%)", 0.03),
)

# Employer contributions: (code, label, percentage, rate)
EMPLOYER_CONTRIBUTIONS = (
    ("CONT_JUB", "Contribución Jubilación", 10.17, 0.1017),
    ("CONT_OS", "Contribución Obra Social", 6.0, 0.06),
    ("CONT_PAMI", "Contribución PAMI", 1.5, 0.015),
    ("CONT_ART", "ART (Riesgo de Trabajo)", 3.0, 0.03),
    ("CONT_ASIG", "Asignaciones Familiares", 4.44, 0.0444),
)

DEFAULT_TOP_PERFORMERS_LIMIT = 10
DEFAULT_HISTORY_LIMIT = 10
DEFAULT_TREND_CYCLES = 5
COMPETENCY_HIGHLIGHT_COUNT = 3
NO_DEPARTMENT_LABEL = "Sin Departamento"

DEFAULT_WORKFLOW_PAGE_SIZE = 50

# Failed event deliveries kept for inspection and retry; oldest are dropped first.
MAX_FAILED_DELIVERIES = 500
