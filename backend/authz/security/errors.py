"""Authorization error taxonomy.

- AuthError surfaces to the caller of login with a user-facing message.
- StoreError degrades permission resolution to the bundled fallback table.
- TokenError rejects a request whose bearer token cannot be trusted.
- PermissionDataError is recovered where it is raised (normalized to empty)
  and never crosses the role store boundary.
"""

from __future__ import annotations

from enum import Enum


class AuthzError(RuntimeError):
    """Base error for the authorization core."""


class AuthFailure(str, Enum):
    INVALID_CREDENTIALS = "invalid_credentials"
    INACTIVE_ACCOUNT = "inactive_account"
    TIMEOUT = "timeout"
    UNAVAILABLE = "unavailable"


_USER_MESSAGES = {
    AuthFailure.INVALID_CREDENTIALS: "Invalid email or password.",
    AuthFailure.INACTIVE_ACCOUNT: "This account is inactive. Contact your administrator.",
    AuthFailure.TIMEOUT: "Login timed out. Please try again.",
    AuthFailure.UNAVAILABLE: "Login is temporarily unavailable. Please try again later.",
}


class AuthError(AuthzError):
    """Login failed; `user_message` is safe to show to the person logging in."""

    def __init__(self, reason: AuthFailure, detail: str | None = None) -> None:
        self.reason = reason
        self.user_message = _USER_MESSAGES[reason]
        super().__init__(detail or self.user_message)


class StoreError(AuthzError):
    """Raised when the backing role store cannot be read or written."""


class PermissionDataError(AuthzError):
    """Raised when a role's permission payload has an unusable shape."""


class TokenError(AuthzError):
    """Raised when a bearer token is malformed, forged or expired."""
