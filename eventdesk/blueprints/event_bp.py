"""
Event Blueprint.

Routes for event CRUD, status changes and stakeholder assignment.
All business logic is delegated to EventService; access is re-checked there.

Endpoints:
  Events:        GET/POST   /events
                 GET        /events/search?q=
                 GET        /events/upcoming?limit=
                 GET        /events/on/<YYYY-MM-DD>
                 GET/PUT/DELETE /events/<id>
  Status:        POST       /events/<id>/status
  Stakeholders:  GET        /events/<id>/stakeholders
                 POST       /events/<id>/stakeholders/<sid>
                 DELETE     /events/<id>/stakeholders/<sid>
  Consistency:   GET        /events/<id>/audit

All routes require a Bearer token.
"""

import logging

from flask import Blueprint, g, jsonify, request

from eventdesk.middleware.jwt_auth import require_principal
from eventdesk.services.access_control import Action, can_perform
from eventdesk.services.registry import get_services
from eventdesk.utils.errors import E, api_error
from eventdesk.utils.helpers import parse_date

logger = logging.getLogger(__name__)

event_bp = Blueprint("events", __name__, url_prefix="/api/v1/events")


# ═════════════════════════════════════════════════════════════════════════════
# Event CRUD
# ═════════════════════════════════════════════════════════════════════════════


@event_bp.route("", methods=["GET"])
@require_principal
def list_events():
    """List events ordered by start time.

    Query params: owner_id?, status?
    Returns: { "items": [...], "total": int }
    """
    events = get_services().events.list_events(
        g.principal,
        owner_id=request.args.get("owner_id"),
        status=request.args.get("status"),
    )
    return jsonify({"items": [e.to_dict() for e in events], "total": len(events)}), 200


@event_bp.route("", methods=["POST"])
@require_principal
def create_event():
    """Create an event owned by the caller.

    Body: { "title", "start_time", "end_time", "description"?, "location"?,
            "priority"?, "status"?, "stakeholder_ids"?, ... }
    Returns: Created event (201).
    """
    data = request.get_json(silent=True) or {}
    event = get_services().events.create_event(g.principal, data)
    return jsonify(event.to_dict()), 201


@event_bp.route("/search", methods=["GET"])
@require_principal
def search_events():
    events = get_services().events.search_events(g.principal, request.args.get("q", ""))
    return jsonify({"items": [e.to_dict() for e in events], "total": len(events)}), 200


@event_bp.route("/upcoming", methods=["GET"])
@require_principal
def upcoming_events():
    limit = request.args.get("limit", 10, type=int)
    events = get_services().events.upcoming_events(g.principal, limit=max(limit, 1))
    return jsonify({"items": [e.to_dict() for e in events], "total": len(events)}), 200


@event_bp.route("/on/<day>", methods=["GET"])
@require_principal
def events_for_date(day: str):
    parsed = parse_date(day)
    if parsed is None:
        return api_error(E.VALIDATION_INVALID, "day must be YYYY-MM-DD")
    events = get_services().events.events_for_date(g.principal, parsed)
    return jsonify({"items": [e.to_dict() for e in events], "total": len(events)}), 200


@event_bp.route("/<event_id>", methods=["GET"])
@require_principal
def get_event(event_id: str):
    """Get a single event plus the caller's capabilities on it."""
    event = get_services().events.get_event(g.principal, event_id)
    body = event.to_dict()
    body["can_edit"] = can_perform(g.principal, Action.EDIT_EVENT, event)
    body["can_delete"] = can_perform(g.principal, Action.DELETE_EVENT, event)
    return jsonify(body), 200


@event_bp.route("/<event_id>", methods=["PUT"])
@require_principal
def update_event(event_id: str):
    """Update event fields (status and stakeholders have their own routes)."""
    data = request.get_json(silent=True) or {}
    event = get_services().events.update_event(g.principal, event_id, data)
    return jsonify(event.to_dict()), 200


@event_bp.route("/<event_id>", methods=["DELETE"])
@require_principal
def delete_event(event_id: str):
    get_services().events.delete_event(g.principal, event_id)
    return jsonify({"message": "Event deleted"}), 200


# ═════════════════════════════════════════════════════════════════════════════
# Status
# ═════════════════════════════════════════════════════════════════════════════


@event_bp.route("/<event_id>/status", methods=["POST"])
@require_principal
def change_status(event_id: str):
    """Move an event to a new status.

    Body: { "status": "scheduled" | "inProgress" | "completed" | ... }
    """
    data = request.get_json(silent=True) or {}
    status = data.get("status")
    if not status:
        return api_error(E.VALIDATION_REQUIRED, "status is required")
    event = get_services().events.change_status(g.principal, event_id, status)
    return jsonify(event.to_dict()), 200


# ═════════════════════════════════════════════════════════════════════════════
# Stakeholder links
# ═════════════════════════════════════════════════════════════════════════════


@event_bp.route("/<event_id>/stakeholders", methods=["GET"])
@require_principal
def list_event_stakeholders(event_id: str):
    stakeholders = get_services().events.stakeholders_for_event(g.principal, event_id)
    return jsonify({
        "items": [s.to_dict() for s in stakeholders],
        "total": len(stakeholders),
    }), 200


@event_bp.route("/<event_id>/stakeholders/<stakeholder_id>", methods=["POST"])
@require_principal
def assign_stakeholder(event_id: str, stakeholder_id: str):
    stakeholder = get_services().events.assign_stakeholder(g.principal, event_id, stakeholder_id)
    return jsonify(stakeholder.to_dict()), 200


@event_bp.route("/<event_id>/stakeholders/<stakeholder_id>", methods=["DELETE"])
@require_principal
def unassign_stakeholder(event_id: str, stakeholder_id: str):
    stakeholder = get_services().events.unassign_stakeholder(g.principal, event_id, stakeholder_id)
    return jsonify(stakeholder.to_dict()), 200


@event_bp.route("/<event_id>/audit", methods=["GET"])
@require_principal
def audit_links(event_id: str):
    """Report stakeholder links of this event that are not symmetric."""
    if not can_perform(g.principal, Action.VIEW_REPORTS):
        return api_error(E.FORBIDDEN, "You do not have permission to perform this action")
    issues = get_services().relationships.audit_event_links(event_id)
    return jsonify({"event_id": event_id, "consistent": not issues, "issues": issues}), 200
