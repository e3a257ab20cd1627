"""
User Blueprint — principal administration.

Endpoints:
  GET   /users                    list (manage-users); ?active=true|false
  GET   /users/me                 the caller, with role label and capabilities
  GET   /users/<uid>              single principal (self or manage-users)
  PUT   /users/<uid>/role         { "role", "permissions"? }
  POST  /users/<uid>/deactivate
  POST  /users/<uid>/reactivate
  GET   /users/roles              role catalogue with default permissions

Signup and login are handled by the identity provider, not here.
"""

import logging

from flask import Blueprint, g, jsonify, request

from eventdesk.middleware.jwt_auth import require_principal
from eventdesk.models.enums import Role
from eventdesk.services import access_control
from eventdesk.services.access_control import Action
from eventdesk.services.registry import get_services
from eventdesk.utils.errors import E, api_error

logger = logging.getLogger(__name__)

user_bp = Blueprint("users", __name__, url_prefix="/api/v1/users")


def _principal_body(principal) -> dict:
    body = principal.to_dict()
    body["role_label"] = access_control.role_label(principal.role)
    body["display_role"] = access_control.display_role(principal.permissions)
    return body


@user_bp.route("", methods=["GET"])
@require_principal
def list_users():
    active_raw = request.args.get("active")
    active = None
    if active_raw is not None:
        active = active_raw.lower() in ("true", "1", "yes")
    items = get_services().users.list_principals(g.principal, active=active)
    return jsonify({"items": [_principal_body(p) for p in items], "total": len(items)}), 200


@user_bp.route("/me", methods=["GET"])
@require_principal
def me():
    body = _principal_body(g.principal)
    body["capabilities"] = {
        action.value: access_control.can_perform(g.principal, action) for action in Action
    }
    return jsonify(body), 200


@user_bp.route("/roles", methods=["GET"])
@require_principal
def list_roles():
    roles = [
        {
            "role": role.value,
            "label": access_control.role_label(role),
            "description": access_control.role_description(role),
            "level": role.level,
            "default_permissions": sorted(
                p.value for p in access_control.default_permissions(role)
            ),
        }
        for role in Role
    ]
    return jsonify({"items": roles}), 200


@user_bp.route("/<uid>", methods=["GET"])
@require_principal
def get_user(uid: str):
    if uid != g.principal.id and not access_control.can_perform(g.principal, Action.MANAGE_USERS):
        return api_error(E.FORBIDDEN, "You do not have permission to perform this action")
    return jsonify(_principal_body(get_services().users.get_principal(uid))), 200


@user_bp.route("/<uid>/role", methods=["PUT"])
@require_principal
def update_role(uid: str):
    """Change a principal's role.

    Body: { "role": "manager", "permissions"?: ["createEvent", ...] }
    Omitted permissions default to the role's default set.
    """
    data = request.get_json(silent=True) or {}
    if not data.get("role"):
        return api_error(E.VALIDATION_REQUIRED, "role is required")
    principal = get_services().users.update_role(
        g.principal, uid, data["role"], permissions=data.get("permissions")
    )
    return jsonify(_principal_body(principal)), 200


@user_bp.route("/<uid>/deactivate", methods=["POST"])
@require_principal
def deactivate_user(uid: str):
    principal = get_services().users.deactivate(g.principal, uid)
    return jsonify(_principal_body(principal)), 200


@user_bp.route("/<uid>/reactivate", methods=["POST"])
@require_principal
def reactivate_user(uid: str):
    principal = get_services().users.reactivate(g.principal, uid)
    return jsonify(_principal_body(principal)), 200
