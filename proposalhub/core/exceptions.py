"""
Service-wide exception hierarchy.

Services raise these types; the app factory registers one handler per type
so every blueprint gets the same HTTP status codes and JSON error shape.

Usage:
    from proposalhub.core.exceptions import NotFoundError, ValidationError

    raise NotFoundError(resource="Proposal", resource_id=42, tenant_id=7)
    raise ValidationError("Invalid proposal", details={"title": "required"})
"""


class NotFoundError(Exception):
    """Raised when a requested resource does not exist within the given scope.

    Security note: used for BOTH genuinely missing records AND records owned
    by another tenant. A 403 would confirm the resource exists; a 404 does not.

    Args:
        resource: Human-readable entity name (e.g. "Proposal", "Tracking").
        resource_id: The key that was looked up. Included in logs, not in HTTP response.
        tenant_id: Optional scope that was enforced. For debug logging only.
    """

    def __init__(
        self,
        resource: str,
        resource_id: int | str | None = None,
        tenant_id: int | None = None,
    ) -> None:
        self.resource = resource
        self.resource_id = resource_id
        self.tenant_id = tenant_id
        msg = f"{resource}"
        if resource_id is not None:
            msg += f" id={resource_id}"
        msg += " not found"
        if tenant_id is not None:
            msg += f" (tenant={tenant_id})"
        super().__init__(msg)


class ValidationError(Exception):
    """Raised when a proposal payload fails schema validation.

    Maps to HTTP 400 with a field-level ``details`` breakdown.

    Args:
        message: Human-readable explanation of what failed.
        details: Keys are field names; values are error descriptions.
    """

    def __init__(self, message: str, details: dict | None = None) -> None:
        self.details = details or {}
        super().__init__(message)


class InvalidArgumentError(Exception):
    """Raised for malformed input to tracking and usage operations.

    Rejected rather than clamped so client bugs surface early. Maps to 400.
    """

    def __init__(self, message: str, field: str | None = None) -> None:
        self.field = field
        super().__init__(message)


class UnauthorizedError(Exception):
    """No session, or the bearer token could not be verified. Maps to 401."""

    def __init__(self, message: str = "Unauthorized") -> None:
        super().__init__(message)


class ForbiddenError(Exception):
    """Authenticated but lacking the required role. Maps to 403.

    Not used for ownership checks, which raise NotFoundError.
    """

    def __init__(self, message: str = "Forbidden") -> None:
        super().__init__(message)


class UnavailableError(Exception):
    """Raised when the data store cannot be reached. Maps to 503.

    Usage-gate callers must treat this as "cannot create".
    """

    def __init__(self, message: str = "Data store unavailable") -> None:
        super().__init__(message)


class UsageLimitError(Exception):
    """Raised when the usage gate refuses a new proposal. Maps to 403.

    Args:
        reason: Machine-readable reason code (see usage_gate.REASON_*).
        usage: Optional usage snapshot dict for the response body.
    """

    def __init__(self, reason: str, usage: dict | None = None) -> None:
        self.reason = reason
        self.usage = usage
        super().__init__(f"Proposal creation blocked: {reason}")
