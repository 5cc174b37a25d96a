"""
Shared Domain Kernel

Contains types, messages and exceptions shared across the package.
"""

from shared_queue.domain.shared.exceptions import (
    DomainError,
    InactiveSessionError,
    InvalidOperationError,
    NotFoundError,
    NotOwnerError,
    PasscodeExhaustedError,
    ProviderRejectedError,
    Recovery,
    RefreshFailedError,
    RemoteUnavailableError,
    SessionNotFoundError,
    UnauthorizedError,
)

__all__ = [
    "DomainError",
    "Recovery",
    "NotFoundError",
    "SessionNotFoundError",
    "UnauthorizedError",
    "NotOwnerError",
    "InactiveSessionError",
    "RefreshFailedError",
    "RemoteUnavailableError",
    "ProviderRejectedError",
    "PasscodeExhaustedError",
    "InvalidOperationError",
]
