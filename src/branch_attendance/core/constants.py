"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

from datetime import time

DEFAULT_SHIFT_START = time(9, 0)
DEFAULT_SHIFT_END = time(18, 0)
DEFAULT_LATE_GRACE_MINUTES = 0
DEFAULT_NORMAL_WORKING_HOURS = 8.0
DEFAULT_BREAK_LIMIT_MINUTES = 15
DEFAULT_LOCK_TIMEOUT_SECONDS = 10.0
DEFAULT_PENDING_PAGE_SIZE = 100
MAX_HOURS_PER_DAY = 24
NOTES_SEPARATOR = "; "
