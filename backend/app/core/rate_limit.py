"""
Per-IP rate limiting for the upload and analysis endpoints.
"""
from slowapi import Limiter
from slowapi.util import get_remote_address
from app.core.config import get_settings

limiter = Limiter(key_func=get_remote_address)


def per_minute_limit() -> str:
    """Limit string read from settings on each check, e.g. '10/minute'."""
    return f"{get_settings().rate_limit_per_minute}/minute"
