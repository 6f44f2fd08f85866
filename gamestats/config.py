import os

from .utils.constants import DEFAULT_HALF_MINUTES, DEFAULT_RETRY_ATTEMPTS, DEFAULT_RETRY_DELAY_SECONDS


class Config:
    # Remote store base URL; empty keeps games in an in-process store
    STORE_URL = os.environ.get('GAMESTATS_STORE_URL', '')
    STORE_TIMEOUT = float(os.environ.get('GAMESTATS_STORE_TIMEOUT', '10'))
    # Local cache directory (one JSON file per user PIN)
    CACHE_DIR = os.environ.get('GAMESTATS_CACHE_DIR') or os.path.join(os.path.expanduser('~'), '.gamestats')
    USER_PIN = os.environ.get('GAMESTATS_USER_PIN', 'default')
    # Bounded retry for transient store failures
    RETRY_ATTEMPTS = int(os.environ.get('GAMESTATS_RETRY_ATTEMPTS', str(DEFAULT_RETRY_ATTEMPTS)))
    RETRY_DELAY = float(os.environ.get('GAMESTATS_RETRY_DELAY', str(DEFAULT_RETRY_DELAY_SECONDS)))
    HALF_MINUTES = int(os.environ.get('GAMESTATS_HALF_MINUTES', str(DEFAULT_HALF_MINUTES)))
    # Web server
    HOST = os.environ.get('GAMESTATS_HOST', '127.0.0.1')
    PORT = int(os.environ.get('GAMESTATS_PORT', '8000'))
    LOG_LEVEL = os.environ.get('GAMESTATS_LOG_LEVEL', 'INFO')
