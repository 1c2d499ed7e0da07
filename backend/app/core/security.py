"""
Security headers and the production configuration check.
"""
import os
import logging
from typing import Optional
from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

logger = logging.getLogger(__name__)

# The API only ever returns JSON, so nothing needs to load from it
DEFAULT_CSP = {
    "default-src": "'none'",
    "frame-ancestors": "'none'",
    "base-uri": "'none'",
    "form-action": "'none'",
}

STATIC_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "Referrer-Policy": "strict-origin-when-cross-origin",
    "Permissions-Policy": (
        "accelerometer=(), camera=(), geolocation=(), "
        "gyroscope=(), magnetometer=(), microphone=(), "
        "payment=(), usb=()"
    ),
    "Cache-Control": "no-store",
}


def build_csp_header(csp_dict: dict) -> str:
    """Build CSP header string from dictionary."""
    return "; ".join(f"{key} {value}" for key, value in csp_dict.items())


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Add CSP and the usual hardening headers to every response."""

    def __init__(self, app, csp_overrides: Optional[dict] = None):
        super().__init__(app)
        csp = dict(DEFAULT_CSP)
        if csp_overrides:
            csp.update(csp_overrides)
        self.csp_header = build_csp_header(csp)

    async def dispatch(self, request: Request, call_next) -> Response:
        response = await call_next(request)
        response.headers["Content-Security-Policy"] = self.csp_header
        for name, value in STATIC_HEADERS.items():
            response.headers.setdefault(name, value)
        return response


def is_production() -> bool:
    return os.getenv('ENVIRONMENT', 'development').lower() in ('production', 'prod')


def validate_production_security(allowed_origins: Optional[list] = None):
    """
    Check security-relevant configuration when ENVIRONMENT=production.

    Raises RuntimeError for a wildcard CORS origin; warns about localhost
    origins and missing model credentials.
    """
    if not is_production():
        logger.info(f"Running in {os.getenv('ENVIRONMENT', 'development')} mode - security validation skipped")
        return

    origins = allowed_origins if allowed_origins is not None else os.getenv('ALLOWED_ORIGINS', '').split(',')
    if any(origin.strip() == '*' for origin in origins):
        raise RuntimeError("ALLOWED_ORIGINS must list explicit origins in production, '*' is not allowed.")

    if any('localhost' in origin for origin in origins):
        logger.warning(
            "ALLOWED_ORIGINS contains 'localhost' in production. "
            "Consider removing for security."
        )

    if not os.getenv('GROQ_API_KEY') and not os.getenv('GEMINI_API_KEY'):
        logger.warning("No GROQ_API_KEY or GEMINI_API_KEY set - narrative analysis will return fallback results")

    logger.info("Production security validation passed")
