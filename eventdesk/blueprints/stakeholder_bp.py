"""
Stakeholder Blueprint.

Routes for the stakeholder directory and participation answers.
All business logic is delegated to StakeholderService.

Endpoints:
  Stakeholder:    GET/POST        /stakeholders
                  GET             /stakeholders/search?q=
                  GET/PUT/DELETE  /stakeholders/<id>
  Participation:  POST            /stakeholders/<id>/participation
  Events:         GET             /stakeholders/<id>/events

All routes require a Bearer token.
"""

import logging

from flask import Blueprint, g, jsonify, request

from eventdesk.middleware.jwt_auth import require_principal
from eventdesk.services.registry import get_services
from eventdesk.utils.errors import E, api_error

logger = logging.getLogger(__name__)

stakeholder_bp = Blueprint("stakeholders", __name__, url_prefix="/api/v1/stakeholders")


# ═════════════════════════════════════════════════════════════════════════════
# Stakeholder CRUD
# ═════════════════════════════════════════════════════════════════════════════


@stakeholder_bp.route("", methods=["GET"])
@require_principal
def list_stakeholders():
    """List stakeholders with optional filters.

    Query params: type?, status?, event_id?, is_active?
    Returns: { "items": [...], "total": int }
    """
    is_active_raw = request.args.get("is_active")
    active_only = is_active_raw is not None and is_active_raw.lower() in ("true", "1", "yes")
    items = get_services().stakeholders.list_stakeholders(
        g.principal,
        type=request.args.get("type"),
        status=request.args.get("status"),
        event_id=request.args.get("event_id"),
        active_only=active_only,
    )
    return jsonify({"items": [s.to_dict() for s in items], "total": len(items)}), 200


@stakeholder_bp.route("", methods=["POST"])
@require_principal
def create_stakeholder():
    """Create a stakeholder.

    Body: { "name": str, "email": str, "type"?, "relationship_type"?, ... }
    Returns: Created stakeholder (201).
    """
    data = request.get_json(silent=True) or {}
    stakeholder = get_services().stakeholders.create_stakeholder(g.principal, data)
    return jsonify(stakeholder.to_dict()), 201


@stakeholder_bp.route("/search", methods=["GET"])
@require_principal
def search_stakeholders():
    items = get_services().stakeholders.search_stakeholders(g.principal, request.args.get("q", ""))
    return jsonify({"items": [s.to_dict() for s in items], "total": len(items)}), 200


@stakeholder_bp.route("/<stakeholder_id>", methods=["GET"])
@require_principal
def get_stakeholder(stakeholder_id: str):
    s = get_services().stakeholders.get_stakeholder(g.principal, stakeholder_id)
    return jsonify(s.to_dict()), 200


@stakeholder_bp.route("/<stakeholder_id>", methods=["PUT"])
@require_principal
def update_stakeholder(stakeholder_id: str):
    data = request.get_json(silent=True) or {}
    s = get_services().stakeholders.update_stakeholder(g.principal, stakeholder_id, data)
    return jsonify(s.to_dict()), 200


@stakeholder_bp.route("/<stakeholder_id>", methods=["DELETE"])
@require_principal
def delete_stakeholder(stakeholder_id: str):
    get_services().stakeholders.delete_stakeholder(g.principal, stakeholder_id)
    return jsonify({"message": "Stakeholder deleted"}), 200


# ═════════════════════════════════════════════════════════════════════════════
# Participation & memberships
# ═════════════════════════════════════════════════════════════════════════════


@stakeholder_bp.route("/<stakeholder_id>/participation", methods=["POST"])
@require_principal
def update_participation(stakeholder_id: str):
    """Record a participation answer.

    Body: { "status": "accepted" | "declined" | ..., "event_id"?: str, "note"?: str }
    """
    data = request.get_json(silent=True) or {}
    if not data.get("status"):
        return api_error(E.VALIDATION_REQUIRED, "status is required")
    s = get_services().stakeholders.update_participation_status(
        g.principal,
        stakeholder_id,
        data["status"],
        event_id=data.get("event_id"),
        note=data.get("note"),
    )
    return jsonify(s.to_dict()), 200


@stakeholder_bp.route("/<stakeholder_id>/events", methods=["GET"])
@require_principal
def list_stakeholder_events(stakeholder_id: str):
    events = get_services().stakeholders.events_for_stakeholder(g.principal, stakeholder_id)
    return jsonify({"items": [e.to_dict() for e in events], "total": len(events)}), 200
