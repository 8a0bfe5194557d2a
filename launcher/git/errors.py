from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Literal, Mapping


# Normalized error codes for Git provider interactions
ErrorCode = Literal[
    "invalid_argument",
    "unauthorized",
    "forbidden",
    "not_found",
    "rate_limited",
    "timeout",
    "unavailable",
    "bad_request",
    "conflict",
    "internal",
]


@dataclass(eq=False)
class GitServiceError(Exception):
    code: ErrorCode
    message: str
    retry_after_seconds: float | None = None
    details: Mapping[str, Any] | None = None

    def __str__(self) -> str:
        return self.message

    def to_dict(self) -> dict[str, Any]:
        return {
            "code": self.code,
            "message": self.message,
            "retry_after_seconds": self.retry_after_seconds,
            "details": dict(self.details or {}),
        }


class InvalidArgumentError(GitServiceError, ValueError):
    """Rejected before any remote call is made."""

    def __init__(self, message: str) -> None:
        super().__init__(code="invalid_argument", message=message)


class AuthenticationError(GitServiceError):
    def __init__(self, message: str = "Git provider rejected the identity") -> None:
        super().__init__(code="unauthorized", message=message)


class NoSuchOrganizationError(GitServiceError):
    def __init__(self, organization: str) -> None:
        super().__init__(
            code="not_found",
            message=(
                f"User does not belong to organization '{organization}' "
                "or the organization does not exist"
            ),
            details={"organization": organization},
        )
        self.organization = organization


class NoSuchRepositoryError(GitServiceError):
    def __init__(self, repository: str) -> None:
        super().__init__(
            code="not_found",
            message=f"Repository '{repository}' does not exist",
            details={"repository": repository},
        )
        self.repository = repository


class MalformedResponseError(GitServiceError):
    """A successful provider response lacks a field the client depends on."""

    def __init__(self, message: str) -> None:
        super().__init__(code="internal", message=message)
