"""Shared application constants.

These values are part of the stored-data contract: the web clients read the
same collections and compare against the same limits.
"""
import enum

# Weekly ceiling on awarded minutes (2 hours)
MAX_FLEX_TIME_PER_WEEK = 120

# Minutes granted by a single award
FLEX_TIME_INCREMENT = 10

# Consecutive maxed-out weeks needed for a streak
WEEKS_FOR_STREAK = 2

# Document store collections
FLEX_TIME_COLLECTION = "flexTime"
WEEKLY_STATS_COLLECTION = "weeklyStats"
DAY_PREFERENCES_COLLECTION = "dayPreferences"
USERS_COLLECTION = "users"


class Participant(str, enum.Enum):
    charlie = "charlie"
    malcolm = "malcolm"
    henry = "henry"


class Day(str, enum.Enum):
    saturday = "saturday"
    sunday = "sunday"


PARTICIPANTS: tuple[str, ...] = tuple(p.value for p in Participant)
DEFAULT_DAY = Day.saturday
