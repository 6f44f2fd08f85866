"""
Constants for the Game Stats Tracker application.

This module contains configuration constants used throughout the application.
"""

# Application metadata
APP_TITLE = "Game Stats Tracker"
RECORD_VERSION = "2.0"
BACKUP_VERSION = "1.0"

# Half timer defaults
DEFAULT_HALF_MINUTES = 30
MIN_HALF_MINUTES = 1
MAX_HALF_MINUTES = 90
COUNTDOWN_SECONDS = 10

# Display refresh cadence; correctness never depends on it
TICK_INTERVAL_SECONDS = 0.1

# Goal tracking
MAX_GOALS_PER_SIDE = 20
GOAL_LOCK_MS = 500

# Game info limits
MAX_NAME_LENGTH = 50
MAX_NOTES_LENGTH = 500
GAME_DATE_TIMEZONE = "America/Los_Angeles"

# Sync / retry
DEFAULT_RETRY_ATTEMPTS = 3
DEFAULT_RETRY_DELAY_SECONDS = 1.0
LOCAL_ID_PREFIX = "local_"
CACHE_FILE_TEMPLATE = "games_{scope}.json"
