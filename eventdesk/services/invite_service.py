"""
Invite Service — turn a stakeholder into a principal with an account.

Flow:
    invite_stakeholder  → invite record (7-day expiry) + stakeholder "pending"
    validate_invite_token → TokenValidation (unknown / used / expired / ok)
    accept_invite       → one batch: invite used, principal linked with the
                          invite's role + default permissions, stakeholder
                          linkedUserId set and invite "accepted"

Invite records are stored in the ``invites`` collection keyed by token.
"""

import logging
from dataclasses import dataclass
from datetime import timedelta
from urllib.parse import quote

from eventdesk.core.exceptions import NotFoundError, PermissionDenied, ValidationError
from eventdesk.models.entities import INVITES, STAKEHOLDERS, USERS, Invite, Principal, Stakeholder
from eventdesk.models.enums import InviteStatus, Role, parse_enum
from eventdesk.services.access_control import (
    Action,
    can_grant_role,
    can_perform,
    default_permissions,
)
from eventdesk.services.jwt_service import generate_invite_token
from eventdesk.signals import principal_updated, stakeholder_saved
from eventdesk.store.base import SERVER_TIMESTAMP, DocumentStore
from eventdesk.utils.helpers import to_iso, utcnow

logger = logging.getLogger(__name__)

DEFAULT_EXPIRY_DAYS = 7


@dataclass(frozen=True)
class TokenValidation:
    valid: bool
    error_message: str | None = None
    invite: Invite | None = None
    stakeholder: Stakeholder | None = None

    def to_dict(self) -> dict:
        result = {"valid": self.valid, "error_message": self.error_message}
        if self.valid:
            result["email"] = self.invite.email
            result["default_role"] = self.invite.default_role.value
            result["stakeholder"] = self.stakeholder.to_dict() if self.stakeholder else None
        return result


def invite_link(token: str, base_url: str) -> str:
    """Build the acceptance link sent to the invitee."""
    return f"{base_url.rstrip('/')}/invite?token={quote(token)}"


class InviteService:

    def __init__(self, store: DocumentStore, expiry_days: int = DEFAULT_EXPIRY_DAYS):
        self.store = store
        self.expiry_days = expiry_days

    def _stakeholder(self, stakeholder_id: str) -> Stakeholder:
        doc = self.store.get_by_id(STAKEHOLDERS, stakeholder_id)
        if doc is None:
            raise NotFoundError(resource="Stakeholder", resource_id=stakeholder_id)
        return Stakeholder.from_document(doc)

    def invite_stakeholder(
        self,
        caller: Principal,
        stakeholder_id: str,
        default_role=Role.MEMBER,
    ) -> Invite:
        """Create an invite for a stakeholder that has no account yet.

        The invited role may not exceed the caller's own role.

        Raises:
            PermissionDenied: caller lacks invite-stakeholder or over-grants.
            ValidationError: stakeholder already linked or has no email.
            NotFoundError: stakeholder does not exist.
        """
        if not can_perform(caller, Action.INVITE_STAKEHOLDER):
            raise PermissionDenied(caller.id if caller else None, Action.INVITE_STAKEHOLDER.value)
        role = parse_enum(Role, default_role, "default_role")
        if not can_grant_role(caller, role):
            raise PermissionDenied(caller.id, f"invite_as_{role.value}")

        stakeholder = self._stakeholder(stakeholder_id)
        if stakeholder.has_account:
            raise ValidationError("Stakeholder already has an account")
        if not stakeholder.email:
            raise ValidationError("Stakeholder has no email address")

        now = utcnow()
        invite = Invite(
            token=generate_invite_token(),
            stakeholder_id=stakeholder.id,
            email=stakeholder.email,
            default_role=role,
            created_at=now,
            expires_at=now + timedelta(days=self.expiry_days),
        )
        batch = self.store.batch()
        if stakeholder.invite_token:
            batch.delete(INVITES, stakeholder.invite_token)
        batch.set(INVITES, invite.token, invite.to_document())
        batch.update(STAKEHOLDERS, stakeholder.id, {
            "inviteStatus": InviteStatus.PENDING.value,
            "invitedAt": to_iso(now),
            "inviteToken": invite.token,
            "updatedAt": SERVER_TIMESTAMP,
        })
        batch.commit()

        logger.info(
            "Stakeholder invited as %s", role.value,
            extra={"stakeholder_id": stakeholder.id, "principal_id": caller.id},
        )
        stakeholder_saved.send(self, stakeholder=self._stakeholder(stakeholder.id), created=False)
        return invite

    def resend_invite(self, caller: Principal, stakeholder_id: str) -> Invite:
        """Replace a stakeholder's pending invite with a fresh token and expiry."""
        stakeholder = self._stakeholder(stakeholder_id)
        role = Role.MEMBER
        if stakeholder.invite_token:
            doc = self.store.get_by_id(INVITES, stakeholder.invite_token)
            if doc is not None:
                role = Invite.from_document(doc).default_role
        return self.invite_stakeholder(caller, stakeholder_id, role)

    def validate_invite_token(self, token: str) -> TokenValidation:
        doc = self.store.get_by_id(INVITES, token) if token else None
        if doc is None:
            return TokenValidation(False, "Invalid invite link")
        invite = Invite.from_document(doc)
        if invite.used:
            return TokenValidation(False, "This invite has already been used", invite)
        if invite.is_expired():
            return TokenValidation(False, "This invite has expired", invite)
        stakeholder_doc = self.store.get_by_id(STAKEHOLDERS, invite.stakeholder_id)
        if stakeholder_doc is None:
            return TokenValidation(False, "The invited stakeholder no longer exists", invite)
        return TokenValidation(True, None, invite, Stakeholder.from_document(stakeholder_doc))

    def accept_invite(self, user_id: str, token: str) -> Principal:
        """Link principal ``user_id`` to the invited stakeholder.

        Raises:
            ValidationError: token invalid / used / expired, or the account
                email does not match the invited address.
            NotFoundError: principal does not exist.
        """
        check = self.validate_invite_token(token)
        if not check.valid:
            if check.invite is not None and not check.invite.used and check.invite.is_expired():
                self._mark_expired(check.invite)
            raise ValidationError(check.error_message)

        user_doc = self.store.get_by_id(USERS, user_id)
        if user_doc is None:
            raise NotFoundError(resource="Principal", resource_id=user_id)
        principal = Principal.from_document(user_doc)
        if principal.email.lower() != check.invite.email.lower():
            raise ValidationError("This invite was sent to a different email address")

        role = check.invite.default_role
        batch = self.store.batch()
        batch.update(INVITES, token, {"used": True})
        batch.update(USERS, user_id, {
            "role": role.value,
            "permissions": sorted(p.value for p in default_permissions(role)),
            "stakeholderId": check.stakeholder.id,
        })
        batch.update(STAKEHOLDERS, check.stakeholder.id, {
            "linkedUserId": user_id,
            "inviteStatus": InviteStatus.ACCEPTED.value,
            "inviteToken": None,
            "updatedAt": SERVER_TIMESTAMP,
        })
        batch.commit()

        logger.info(
            "Invite accepted",
            extra={"stakeholder_id": check.stakeholder.id, "principal_id": user_id},
        )
        linked = Principal.from_document(self.store.get_by_id(USERS, user_id))
        principal_updated.send(self, principal=linked, created=False)
        return linked

    def _mark_expired(self, invite: Invite) -> None:
        doc = self.store.get_by_id(STAKEHOLDERS, invite.stakeholder_id)
        if doc is None or doc.get("inviteToken") != invite.token:
            return
        self.store.batch().update(STAKEHOLDERS, invite.stakeholder_id, {
            "inviteStatus": InviteStatus.EXPIRED.value,
            "updatedAt": SERVER_TIMESTAMP,
        }).commit()
        logger.info("Invite expired", extra={"stakeholder_id": invite.stakeholder_id})
