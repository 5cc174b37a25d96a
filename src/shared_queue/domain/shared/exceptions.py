"""Base exception classes for domain-level errors.

Every error carries an error kind (``code``), a human-readable message and a
``recovery`` hint telling a client whether to retry, reauthenticate or ask the
session owner for help.
"""

from __future__ import annotations

from enum import Enum
from typing import Any


class Recovery(Enum):
    """What a client should do after receiving an error."""

    RETRY = "retry"
    REAUTHENTICATE = "reauthenticate"
    CONTACT_OWNER = "contact_owner"
    NONE = "none"


class DomainError(Exception):
    """Base exception for all domain-level errors."""

    recovery: Recovery = Recovery.NONE

    def __init__(self, message: str, code: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or self.__class__.__name__
        self.passcode: str | None = None
        self.action: str | None = None

    def with_context(self, *, passcode: str | None = None, action: str | None = None) -> DomainError:
        """Attach session and action context without overwriting what is already set."""
        if self.passcode is None:
            self.passcode = passcode
        if self.action is None:
            self.action = action
        return self

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.code,
            "message": self.message,
            "recovery": self.recovery.value,
            "passcode": self.passcode,
            "action": self.action,
        }


class NotFoundError(DomainError):
    """Raised when a requested entity does not exist."""

    def __init__(self, entity_type: str, identifier: str, message: str | None = None) -> None:
        msg = message or f"{entity_type} with id '{identifier}' not found"
        super().__init__(msg, code="NOT_FOUND")
        self.entity_type = entity_type
        self.identifier = identifier


class SessionNotFoundError(NotFoundError):
    """Raised when no session matches a passcode."""

    recovery = Recovery.CONTACT_OWNER

    def __init__(self, passcode: str) -> None:
        super().__init__("Session", passcode, message=f"No session found with passcode '{passcode}'")
        self.passcode = passcode


class UnauthorizedError(DomainError):
    """Raised when the provider rejects the access token."""

    recovery = Recovery.REAUTHENTICATE

    def __init__(self, message: str = "Provider rejected the access token") -> None:
        super().__init__(message, code="UNAUTHORIZED")


class NotOwnerError(DomainError):
    """Raised when an owner-only action is attempted by someone else."""

    recovery = Recovery.CONTACT_OWNER

    def __init__(self, message: str = "Owner permission required for this action") -> None:
        super().__init__(message, code="NOT_OWNER")


class InactiveSessionError(DomainError):
    """Raised when acting on a session without live provider credentials.

    ``is_owner`` tells the caller whether the requester can reactivate the
    session themselves or has to wait for the owner.
    """

    def __init__(self, passcode: str, is_owner: bool) -> None:
        super().__init__(
            "Session is not active. The owner needs to reactivate it.", code="INACTIVE_SESSION"
        )
        self.passcode = passcode
        self.is_owner = is_owner

    @property
    def recovery(self) -> Recovery:  # type: ignore[override]
        return Recovery.REAUTHENTICATE if self.is_owner else Recovery.CONTACT_OWNER

    def to_dict(self) -> dict[str, Any]:
        payload = super().to_dict()
        payload["is_owner"] = self.is_owner
        return payload


class RefreshFailedError(DomainError):
    """Raised when the provider refuses to refresh expired credentials."""

    recovery = Recovery.REAUTHENTICATE

    def __init__(self, message: str = "Unable to refresh expired access token") -> None:
        super().__init__(message, code="REFRESH_FAILED")


class RemoteUnavailableError(DomainError):
    """Raised on transient provider or storage outages."""

    recovery = Recovery.RETRY

    def __init__(self, message: str = "Remote service unavailable, please try again") -> None:
        super().__init__(message, code="REMOTE_UNAVAILABLE")


class ProviderRejectedError(DomainError):
    """Raised when the provider rejects a request for a reason other than auth."""

    def __init__(self, status_code: int, message: str | None = None) -> None:
        super().__init__(
            message or f"Provider rejected the request (HTTP {status_code})", code="PROVIDER_REJECTED"
        )
        self.status_code = status_code


class PasscodeExhaustedError(DomainError):
    """Raised when no unique passcode could be generated."""

    recovery = Recovery.RETRY

    def __init__(self, attempts: int) -> None:
        super().__init__(
            f"Unable to generate unique passcode after {attempts} attempts. Please try again later",
            code="PASSCODE_EXHAUSTED",
        )
        self.attempts = attempts


class InvalidOperationError(DomainError):
    """Raised when an operation is invalid in the current state."""

    def __init__(self, operation: str, current_state: str, message: str | None = None) -> None:
        msg = message or f"Cannot perform '{operation}' in state '{current_state}'"
        super().__init__(msg, code="INVALID_OPERATION")
        self.operation = operation
        self.current_state = current_state
