"""
Health check blueprint.

Endpoints:
    GET /api/v1/health       — simple 200 for load balancers
    GET /api/v1/health/live  — document store reachability
"""

import logging
import time

from flask import Blueprint, current_app, jsonify

from eventdesk.services.registry import get_services

logger = logging.getLogger(__name__)

health_bp = Blueprint("health", __name__, url_prefix="/api/v1/health")


@health_bp.route("", methods=["GET"])
def ready():
    """Simple readiness probe — always 200 if app is running."""
    return jsonify({"status": "ok", "app": "EventDesk"}), 200


@health_bp.route("/live", methods=["GET"])
def live():
    """Liveness check: one round trip to the document store."""
    store = get_services().store
    try:
        t0 = time.perf_counter()
        store.get_by_id("events", "__health__")
        ms = (time.perf_counter() - t0) * 1000
    except Exception as exc:
        logger.error("Health check — document store failed: %s", exc)
        return jsonify({
            "status": "error",
            "store": {"status": "error", "detail": str(exc)},
        }), 503
    return jsonify({
        "status": "ok",
        "store": {
            "status": "ok",
            "backend": current_app.config.get("DOCUMENT_STORE", "sql"),
            "latency_ms": round(ms, 1),
        },
    }), 200
