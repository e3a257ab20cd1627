"""
Rate limiting configuration.

Applies per-blueprint rate limits using Flask-Limiter.
The Limiter instance is created in eventdesk/__init__.py with no default
limits; this module applies granular limits per route category.

Usage:
    from eventdesk.middleware.rate_limiter import init_rate_limits
    init_rate_limits(app, limiter)
"""

import logging

from flask import g, request as flask_request

logger = logging.getLogger(__name__)

WRITE_LIMIT = "60/minute"
READ_LIMIT = "200/minute"
INVITE_LIMIT = "20/minute"


def principal_or_ip_key():
    """Rate limit key: the authenticated principal if any, else remote IP."""
    principal = getattr(g, "principal", None)
    if principal is not None:
        return f"principal:{principal.id}"
    return flask_request.remote_addr or "unknown"


def init_rate_limits(app, limiter):
    """
    Apply rate limits to API blueprints.

    Limits (per principal, falling back to remote IP):
        - Invites:           20/minute  (token guessing / mail volume)
        - Events, stakeholders, notifications: 60/minute
        - Users:             200/minute
        - Health check:      exempt

    Rate limiting is disabled in testing mode or when RATELIMIT_ENABLED is false.
    """

    if app.config.get("TESTING") or not app.config.get("RATELIMIT_ENABLED", True):
        app.logger.info("Rate limiter disabled")
        return

    bp = app.blueprints.get("invites")
    if bp:
        limiter.limit(INVITE_LIMIT, key_func=principal_or_ip_key)(bp)

    for bp_name in ("events", "stakeholders", "notifications"):
        bp = app.blueprints.get(bp_name)
        if bp:
            limiter.limit(WRITE_LIMIT, key_func=principal_or_ip_key)(bp)

    bp = app.blueprints.get("users")
    if bp:
        limiter.limit(READ_LIMIT, key_func=principal_or_ip_key)(bp)

    bp = app.blueprints.get("health")
    if bp:
        limiter.exempt(bp)

    app.logger.info(
        "Rate limiter configured: invites %s, events/stakeholders/notifications %s, users %s",
        INVITE_LIMIT, WRITE_LIMIT, READ_LIMIT,
    )
