"""
Platform-wide exception hierarchy.

Services raise these types; blueprints register handlers against them once
and get consistent HTTP status codes everywhere.

Business-rule outcomes of the access and lifecycle rules are NOT exceptions:
``access_control`` returns booleans and ``event_lifecycle`` returns
``ValidationResult`` values. The service layer turns a negative answer into
``PermissionDenied`` / ``ValidationError`` when it refuses to mutate data.

Usage:
    from eventdesk.core.exceptions import NotFoundError, ValidationError

    raise NotFoundError(resource="Event", resource_id="evt_1")
    raise ValidationError("Title is required", details={"title": "..."})
"""


class NotFoundError(Exception):
    """Raised when a referenced document does not exist.

    Args:
        resource: Human-readable entity name (e.g. "Event", "Stakeholder").
        resource_id: The id that was looked up. Included in logs.
    """

    def __init__(self, resource: str, resource_id: str | None = None) -> None:
        self.resource = resource
        self.resource_id = resource_id
        msg = f"{resource}"
        if resource_id is not None:
            msg += f" id={resource_id}"
        msg += " not found"
        super().__init__(msg)


class ValidationError(Exception):
    """Raised when input fails business-rule validation in the service layer.

    Maps to HTTP 422 in blueprint error handlers.

    Args:
        message: Human-readable explanation of what failed. Surfaced verbatim
                 to the end user.
        details: Optional field-level breakdown for structured API responses.
    """

    def __init__(self, message: str, details: dict | None = None) -> None:
        self.message = message
        self.details = details or {}
        super().__init__(message)


class ConflictError(Exception):
    """Raised when an operation would duplicate a unique value.

    Maps to HTTP 409.
    """

    def __init__(self, resource: str, field: str, value: str | None = None) -> None:
        self.resource = resource
        self.field = field
        self.value = value
        super().__init__(f"{resource} with {field}={value!r} already exists")


class PermissionDenied(Exception):
    """Raised by the service layer when a principal may not perform an action.

    Maps to HTTP 403 (401 when no principal is present).
    """

    def __init__(self, principal_id: str | None, action: str) -> None:
        self.principal_id = principal_id
        self.action = action
        who = f"Principal {principal_id}" if principal_id else "Anonymous caller"
        super().__init__(f"{who} does not have permission for '{action}'")
