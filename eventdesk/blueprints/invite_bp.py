"""
Invite Blueprint — stakeholder invitations.

Endpoints:
  POST  /invites                        { "stakeholder_id", "default_role"? } → token + link
  POST  /invites/resend/<stakeholder_id>
  GET   /invites/<token>                 token validation (no auth required)
  POST  /invites/<token>/accept          link the caller to the stakeholder
"""

import logging

from flask import Blueprint, current_app, g, jsonify, request

from eventdesk.middleware.jwt_auth import require_principal
from eventdesk.models.enums import Role
from eventdesk.services.invite_service import invite_link
from eventdesk.services.registry import get_services
from eventdesk.utils.errors import E, api_error

logger = logging.getLogger(__name__)

invite_bp = Blueprint("invites", __name__, url_prefix="/api/v1/invites")


def _invite_body(invite) -> dict:
    return {
        "token": invite.token,
        "stakeholder_id": invite.stakeholder_id,
        "email": invite.email,
        "default_role": invite.default_role.value,
        "expires_at": invite.expires_at.isoformat(),
        "link": invite_link(invite.token, current_app.config["INVITE_BASE_URL"]),
    }


@invite_bp.route("", methods=["POST"])
@require_principal
def create_invite():
    data = request.get_json(silent=True) or {}
    stakeholder_id = data.get("stakeholder_id")
    if not stakeholder_id:
        return api_error(E.VALIDATION_REQUIRED, "stakeholder_id is required")
    invite = get_services().invites.invite_stakeholder(
        g.principal, stakeholder_id, data.get("default_role") or Role.MEMBER
    )
    return jsonify(_invite_body(invite)), 201


@invite_bp.route("/resend/<stakeholder_id>", methods=["POST"])
@require_principal
def resend_invite(stakeholder_id: str):
    invite = get_services().invites.resend_invite(g.principal, stakeholder_id)
    return jsonify(_invite_body(invite)), 201


@invite_bp.route("/<token>", methods=["GET"])
def validate_invite(token: str):
    result = get_services().invites.validate_invite_token(token)
    return jsonify(result.to_dict()), 200 if result.valid else 404


@invite_bp.route("/<token>/accept", methods=["POST"])
@require_principal
def accept_invite(token: str):
    principal = get_services().invites.accept_invite(g.principal.id, token)
    return jsonify(principal.to_dict()), 200
