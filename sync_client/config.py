import os
from dataclasses import dataclass

from dotenv import load_dotenv


def _float_env(name, default):
    value = os.getenv(name)
    return float(value) if value not in (None, '') else default


def _retention_env(name, default):
    """Unset keeps the default; empty or 'none' keeps synced entries forever."""
    value = os.getenv(name)
    if value is None:
        return default
    if value.strip().lower() in ('', 'none'):
        return None
    return float(value)


@dataclass
class ClientConfig:
    """Settings for the API client and the offline edit queue."""

    base_url: str = 'http://localhost:8000'
    token: str = None
    request_timeout: float = 10.0
    upload_timeout: float = 60.0

    # queue pacing, in seconds
    backoff_base: float = 0.75
    backoff_max: float = 5.0
    tick_interval: float = 2.0

    # how long synced entries stay visible before compaction (None keeps them)
    synced_retention: float = 300.0

    @classmethod
    def from_env(cls):
        """Build a config from SHELFGUARD_* environment variables (and .env)."""
        load_dotenv()
        return cls(
            base_url=os.getenv('SHELFGUARD_API_URL', cls.base_url).rstrip('/'),
            token=os.getenv('SHELFGUARD_TOKEN') or None,
            request_timeout=_float_env('SHELFGUARD_REQUEST_TIMEOUT', cls.request_timeout),
            upload_timeout=_float_env('SHELFGUARD_UPLOAD_TIMEOUT', cls.upload_timeout),
            backoff_base=_float_env('SHELFGUARD_BACKOFF_BASE', cls.backoff_base),
            backoff_max=_float_env('SHELFGUARD_BACKOFF_MAX', cls.backoff_max),
            tick_interval=_float_env('SHELFGUARD_TICK_INTERVAL', cls.tick_interval),
            synced_retention=_retention_env('SHELFGUARD_SYNCED_RETENTION', cls.synced_retention),
        )
