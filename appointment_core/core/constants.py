"""Application constants."""

# Appointment field limits
DEFAULT_DURATION_MINUTES = 60
MAX_DURATION_MINUTES = 24 * 60
SERVICE_TYPE_MAX_LENGTH = 100
NOTES_MAX_LENGTH = 1000
TEMPLATE_NAME_MAX_LENGTH = 100
DEFAULT_TEMPLATE_COLOR = "#8b5cf6"

# Recurrence safety cap (runaway end dates)
MAX_RECURRENCE_OCCURRENCES = 365

# Visual slot picker defaults
SLOT_START_HOUR = 7
SLOT_END_HOUR = 21
SLOT_INTERVAL_MINUTES = 30

# Quick reschedule
QUICK_RESCHEDULE_DAYS = 5
QUICK_RESCHEDULE_FIRST_SLOT = "07:00"
QUICK_RESCHEDULE_LAST_SLOT = "20:00"
OPEN_SLOTS_MANY = 10  # more than this -> lightly booked day
OPEN_SLOTS_SOME = 5

# Day load thresholds (total booked minutes)
DAY_LOAD_MEDIUM_MINUTES = 180  # 3+ hours
DAY_LOAD_HIGH_MINUTES = 360  # 6+ hours
