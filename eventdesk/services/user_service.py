"""
User Service — principal records, roles and activation.

Principals are never hard-deleted; ``deactivate`` flips ``isActive`` and an
inactive principal fails every access check.

Functions:
    - register_principal:  Signup record (Member + default permissions), linked to
                           the stakeholder with the same email
    - get_principal:       Get single
    - list_principals:     List (manage-users), optional active filter
    - update_role:         Change role/permissions (manage-users, never self)
    - deactivate:          Soft-disable (manage-users, never self)
    - reactivate:          Re-enable (manage-users)
    - record_login:        Stamp lastLoginAt
"""

import logging

from email_validator import EmailNotValidError, validate_email

from eventdesk.core.exceptions import ConflictError, NotFoundError, PermissionDenied, ValidationError
from eventdesk.models.entities import STAKEHOLDERS, USERS, Principal, Stakeholder
from eventdesk.models.enums import SUPER_PERMISSIONS, InviteStatus, Permission, Role, parse_enum, parse_enum_list
from eventdesk.services.access_control import (
    Action,
    can_grant_role,
    can_perform,
    default_permissions,
    is_super_admin,
)
from eventdesk.signals import principal_updated
from eventdesk.store.base import SERVER_TIMESTAMP, DocumentStore
from eventdesk.utils.helpers import utcnow

logger = logging.getLogger(__name__)


class UserService:

    def __init__(self, store: DocumentStore):
        self.store = store

    def _require_manager(self, caller: Principal | None) -> None:
        if not can_perform(caller, Action.MANAGE_USERS):
            raise PermissionDenied(caller.id if caller else None, Action.MANAGE_USERS.value)

    def _save_fields(self, uid: str, fields: dict) -> Principal:
        self.store.batch().update(USERS, uid, fields).commit()
        principal = self.get_principal(uid)
        principal_updated.send(self, principal=principal, created=False)
        return principal

    def register_principal(
        self,
        uid: str,
        email: str,
        display_name: str | None = None,
        photo_url: str | None = None,
    ) -> Principal:
        """Create the principal record for a freshly authenticated account.

        When an unlinked stakeholder carries the same email, the principal and
        that stakeholder are linked in the same batch.

        Raises:
            ValidationError: email is malformed.
            ConflictError: a principal with this id already exists.
        """
        try:
            email = validate_email((email or "").strip(), check_deliverability=False).normalized
        except EmailNotValidError as e:
            raise ValidationError(f"Invalid email: {e}", details={"email": str(e)}) from None
        if self.store.get_by_id(USERS, uid) is not None:
            raise ConflictError(resource="Principal", field="id", value=uid)

        now = utcnow()
        principal = Principal(
            id=uid,
            email=email,
            display_name=(display_name or "").strip() or email.split("@")[0],
            photo_url=photo_url,
            role=Role.MEMBER,
            permissions=default_permissions(Role.MEMBER),
            created_at=now,
            last_login_at=now,
        )
        stakeholder = self._linkable_stakeholder(email)
        if stakeholder is not None:
            principal.stakeholder_id = stakeholder.id

        batch = self.store.batch()
        batch.set(USERS, uid, principal.to_document())
        if stakeholder is not None:
            batch.update(STAKEHOLDERS, stakeholder.id, {
                "linkedUserId": uid,
                "inviteStatus": InviteStatus.ACCEPTED.value,
                "updatedAt": SERVER_TIMESTAMP,
            })
        batch.commit()

        logger.info(
            "Principal registered",
            extra={"principal_id": uid, "stakeholder_id": principal.stakeholder_id},
        )
        principal_updated.send(self, principal=principal, created=True)
        return principal

    def _linkable_stakeholder(self, email: str) -> Stakeholder | None:
        """First unlinked stakeholder with this email and no pending invite.

        A pending invite links through ``InviteService.accept_invite`` so the
        invited role is applied.
        """
        for doc in self.store.query(STAKEHOLDERS, "email", "==", email):
            stakeholder = Stakeholder.from_document(doc)
            if stakeholder.has_account or stakeholder.is_invite_pending:
                continue
            return stakeholder
        return None

    def get_principal(self, uid: str) -> Principal:
        doc = self.store.get_by_id(USERS, uid)
        if doc is None:
            raise NotFoundError(resource="Principal", resource_id=uid)
        return Principal.from_document(doc)

    def list_principals(self, caller: Principal, active: bool | None = None) -> list[Principal]:
        self._require_manager(caller)
        principals = [Principal.from_document(d) for d in self.store.all(USERS)]
        if active is not None:
            principals = [p for p in principals if p.is_active == active]
        return sorted(principals, key=lambda p: (p.display_name or p.email).lower())

    def update_role(
        self,
        caller: Principal,
        uid: str,
        role,
        permissions: list | None = None,
    ) -> Principal:
        """Assign a role and permission set to another principal.

        ``permissions`` defaults to the role's default set. Unknown role or
        permission strings are rejected, never dropped.

        Raises:
            PermissionDenied: caller lacks manage-users, assigns a role above
                its own, or grants admin/root without holding it.
            ValidationError: self-change or unknown role/permission.
            NotFoundError: target principal does not exist.
        """
        self._require_manager(caller)
        if caller.id == uid:
            raise ValidationError("You cannot change your own role")
        new_role = parse_enum(Role, role, "role")
        if permissions is None:
            perms = default_permissions(new_role)
        else:
            perms = frozenset(parse_enum_list(Permission, permissions, "permissions"))
        if not can_grant_role(caller, new_role):
            raise PermissionDenied(caller.id, f"assign_role_{new_role.value}")
        if perms & SUPER_PERMISSIONS and not is_super_admin(caller):
            raise PermissionDenied(caller.id, "grant_admin")
        self.get_principal(uid)

        principal = self._save_fields(uid, {
            "role": new_role.value,
            "permissions": sorted(p.value for p in perms),
        })
        logger.info(
            "Principal role set to %s", new_role.value,
            extra={"principal_id": uid},
        )
        return principal

    def deactivate(self, caller: Principal, uid: str) -> Principal:
        self._require_manager(caller)
        if caller.id == uid:
            raise ValidationError("You cannot deactivate your own account")
        self.get_principal(uid)
        principal = self._save_fields(uid, {"isActive": False})
        logger.info("Principal deactivated", extra={"principal_id": uid})
        return principal

    def reactivate(self, caller: Principal, uid: str) -> Principal:
        self._require_manager(caller)
        self.get_principal(uid)
        principal = self._save_fields(uid, {"isActive": True})
        logger.info("Principal reactivated", extra={"principal_id": uid})
        return principal

    def record_login(self, uid: str) -> Principal:
        self.get_principal(uid)
        return self._save_fields(uid, {"lastLoginAt": SERVER_TIMESTAMP})
