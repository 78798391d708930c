"""Domain-level exception primitives with stable machine-readable codes."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, ClassVar


@dataclass(eq=False)
class DomainError(Exception):
    """Use-case level error with stable code and HTTP mapping."""

    code: str
    http_status: int
    message: str
    details: dict[str, Any] | None = None

    kind: ClassVar[str] = "domain_error"

    def __str__(self) -> str:
        return self.message

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"kind": self.kind, "code": self.code, "message": self.message}
        if self.details is not None:
            payload["details"] = self.details
        return payload


class _TaggedError(DomainError):
    default_code: ClassVar[str] = "DOMAIN_ERROR"
    status: ClassVar[int] = 400

    def __init__(
        self,
        message: str,
        *,
        code: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            code=code or self.default_code,
            http_status=self.status,
            message=message,
            details=details,
        )


class ValidationFailed(_TaggedError):
    """Bad input shape or range (priority, date range, recurrence rule)."""

    kind = "validation_error"
    default_code = "VALIDATION_ERROR"
    status = 422


class NotFound(_TaggedError):
    kind = "not_found"
    default_code = "NOT_FOUND"
    status = 404


class Unauthenticated(_TaggedError):
    kind = "unauthenticated"
    default_code = "UNAUTHENTICATED"
    status = 401


class Forbidden(_TaggedError):
    kind = "forbidden"
    default_code = "FORBIDDEN"
    status = 403


class OrganizationMismatch(_TaggedError):
    kind = "organization_mismatch"
    default_code = "ORGANIZATION_MISMATCH"
    status = 403


class NoOrganization(_TaggedError):
    kind = "no_organization"
    default_code = "NO_ORGANIZATION"
    status = 403


class Conflict(_TaggedError):
    kind = "conflict"
    default_code = "CONFLICT"
    status = 409


class UpstreamFailure(_TaggedError):
    """Store, audit sink or AI oracle unavailable."""

    kind = "upstream_failure"
    default_code = "UPSTREAM_FAILURE"
    status = 502
