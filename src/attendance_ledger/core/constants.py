"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

from .enums import LeaveType

# Worked-duration bands for a day (minutes).
FULL_DAY_ABSENCE_BELOW_MINUTES = 270
HALF_DAY_BELOW_MINUTES = 390
EARLY_LEAVE_BELOW_MINUTES = 480

DEFAULT_BUFFER_MINUTES = 30
DEFAULT_WORKING_DAYS = (1, 2, 3, 4, 5)
DEFAULT_TIMEZONE = "Asia/Karachi"
DEFAULT_CHECKOUT_FALLBACK = "19:00"

OPEN_ATTENDANCE_WINDOW_HOURS = 24
ASSUMED_SHIFT_HOURS = 5
SYNTHETIC_SHIFT_HOURS = 8

UPSERT_RETRY_DELAY_SECONDS = 0.1

MAX_LEAVE_BACKDATE_DAYS = 30
REASON_MIN_LENGTH = 10
REASON_MAX_LENGTH = 250

SYSTEM_ACTOR = "System"
AUTO_LEAVE_REASON_PATTERN = r"auto-generated|auto-applied|no check-in|system auto"

REGULARIZATION_MAX_ATTEMPTS = 3
REGULARIZATION_BACKOFF_SECONDS = 30

SUSPICIOUS_NETWORK_ORGS = ("vpn", "proxy", "digitalocean", "ovh", "contabo")

DEFAULT_PERMANENT_ENTITLEMENT = 24
DEFAULT_LEAVE_ALLOWANCES = {
    LeaveType.ANNUAL: 10,
    LeaveType.CASUAL: 7,
    LeaveType.DEMISE: 5,
    LeaveType.HAJJ_UMRAH: 5,
    LeaveType.MARRIAGE: 5,
    LeaveType.MATERNITY: 90,
    LeaveType.PATERNITY: 5,
    LeaveType.PROBATION: 3,
    LeaveType.SICK: 7,
    LeaveType.UNPAID: 10,
}

# Types that never count toward total_taken_leaves.
EXCLUDED_FROM_TOTAL_TAKEN = frozenset(
    {
        LeaveType.UNPAID,
        LeaveType.DEMISE,
        LeaveType.HAJJ_UMRAH,
        LeaveType.MARRIAGE,
        LeaveType.PATERNITY,
        LeaveType.MATERNITY,
    }
)
GENERAL_POOL_TYPES = (LeaveType.ANNUAL, LeaveType.SICK, LeaveType.CASUAL)
SICK_SHARE = 0.3
CASUAL_SHARE = 0.3
