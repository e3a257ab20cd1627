"""
Notification Blueprint — the caller's in-app notices.

Endpoints:
  GET     /notifications                ?unread=true&limit=N
  GET     /notifications/unread-count
  POST    /notifications/<id>/read
  POST    /notifications/read-all
  DELETE  /notifications/<id>
  DELETE  /notifications                clear all
  POST    /notifications/send           { "user_id", "title", "body", "type"?, "event_id"? }
"""

import logging

from flask import Blueprint, g, jsonify, request

from eventdesk.middleware.jwt_auth import require_principal
from eventdesk.models.enums import NotificationType
from eventdesk.services.registry import get_services
from eventdesk.utils.errors import E, api_error

logger = logging.getLogger(__name__)

notification_bp = Blueprint("notifications", __name__, url_prefix="/api/v1/notifications")


@notification_bp.route("", methods=["GET"])
@require_principal
def list_notifications():
    unread_only = (request.args.get("unread") or "").lower() in ("true", "1", "yes")
    limit = request.args.get("limit", type=int)
    service = get_services().notifications
    items = service.list_notifications(
        g.principal, limit=max(limit, 1) if limit else None, unread_only=unread_only
    )
    return jsonify({
        "items": [n.to_dict() for n in items],
        "total": len(items),
        "unread": service.unread_count(g.principal),
    }), 200


@notification_bp.route("/unread-count", methods=["GET"])
@require_principal
def unread_count():
    return jsonify({"unread": get_services().notifications.unread_count(g.principal)}), 200


@notification_bp.route("/<notification_id>/read", methods=["POST"])
@require_principal
def mark_read(notification_id: str):
    notification = get_services().notifications.mark_read(g.principal, notification_id)
    return jsonify(notification.to_dict()), 200


@notification_bp.route("/read-all", methods=["POST"])
@require_principal
def mark_all_read():
    count = get_services().notifications.mark_all_read(g.principal)
    return jsonify({"updated": count}), 200


@notification_bp.route("/<notification_id>", methods=["DELETE"])
@require_principal
def delete_notification(notification_id: str):
    get_services().notifications.delete_notification(g.principal, notification_id)
    return jsonify({"message": "Notification deleted"}), 200


@notification_bp.route("", methods=["DELETE"])
@require_principal
def clear_notifications():
    count = get_services().notifications.clear_all(g.principal)
    return jsonify({"deleted": count}), 200


@notification_bp.route("/send", methods=["POST"])
@require_principal
def send_notification():
    data = request.get_json(silent=True) or {}
    if not data.get("user_id"):
        return api_error(E.VALIDATION_REQUIRED, "user_id is required")
    notification = get_services().notifications.send_notification(
        g.principal,
        data["user_id"],
        data.get("title"),
        data.get("body"),
        type=data.get("type") or NotificationType.GENERAL,
        event_id=data.get("event_id"),
    )
    return jsonify(notification.to_dict()), 201
