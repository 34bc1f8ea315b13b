"""
System constants that should never change.

These are technical/system limits, not user preferences.
User-configurable values should go in config.yaml instead.
"""

# Logging
VERBOSE_LOGGING_THRESHOLD = 2  # -vv switches to debug with logger names

# Size suffix multipliers (binary, as used by ls/du)
SIZE_MULTIPLIERS = {"K": 2**10, "M": 2**20, "G": 2**30}

# Disc packing
DEFAULT_CONTAINERS = {
    "dvd4.5": 4_700_000_000,
    "dvd8.5": 8_500_000_000,
    "bd-r-25": 25_000_000_000,
}
DEFAULT_TOP_N = 10  # Ranked combinations shown by default

# Download queue
QUEUE_FIELD_COUNT = 6  # state, retries, next_attempt, pid, tag, url
DEFAULT_ROUTE = "default"

# Duplicate detection
MIN_FILES_FOR_DUPLICATE_DETECTION = 1  # Target files needed before hashing
HASH_PROGRESS_MIN_FILES = 20  # Below this no progress bar is shown
ERROR_MESSAGE_TRUNCATE_LENGTH = 100  # Maximum length for error message display
