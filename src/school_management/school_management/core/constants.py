"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

from datetime import time

# Check-in strictly after the cutoff of its period is LATE.
DEFAULT_LATE_CUTOFFS = {
    "AM": time(10, 0),
    "PM": time(14, 0),
    "EVENING": time(18, 0),
}
DEFAULT_STAFF_PERIOD = "AM"

DEFAULT_HISTORY_LIMIT = 30
DEFAULT_REPORT_DAYS = 7
EXAM_ELIGIBILITY_THRESHOLD = 75
DROP_RISK_ABSENT_DAYS = 5
RECENT_PAYMENTS_LIMIT = 10
PAYMENT_WRITE_ATTEMPTS = 3
