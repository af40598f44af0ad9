"""Gateway error taxonomy.

Every error carries the HTTP status it maps to and a stable ``error`` string
that API routes render as ``{"error": ..., "message": ...}``. Callback
failures never reach the client this way: the dispatcher turns them into an
error redirect instead.
"""

from __future__ import annotations

from typing import Any

REGISTRATION_PATH = "/complete-registration"


class GatewayError(Exception):
    status_code: int = 500
    error: str = "Internal server error"

    def __init__(self, message: str | None = None, **extra: Any) -> None:
        super().__init__(message or self.error)
        self.message = message
        self.extra = extra

    def to_dict(self) -> dict[str, Any]:
        body: dict[str, Any] = {"error": self.error}
        if self.message:
            body["message"] = self.message
        body.update(self.extra)
        return body


# ── Identity provider ────────────────────────────────────────────────────────

class ProviderAuthFailed(GatewayError):
    status_code = 401
    error = "Authentication failed"


class MalformedProfile(ProviderAuthFailed):
    """The provider profile lacks a stable id or a usable email."""


# ── Backend of record ────────────────────────────────────────────────────────

class BackendRelayFailed(GatewayError):
    status_code = 502
    error = "Authentication failed"


# ── User directory ───────────────────────────────────────────────────────────

class UserNotFound(GatewayError):
    status_code = 404
    error = "User not found"


class MissingRequiredField(GatewayError):
    status_code = 400
    error = "Missing required field"

    def __init__(self, field: str) -> None:
        super().__init__(f"{field} is required", field=field)
        self.field = field


class InternalDirectoryError(GatewayError):
    status_code = 500
    error = "Internal server error"


# ── Access gate ──────────────────────────────────────────────────────────────

class Unauthenticated(GatewayError):
    status_code = 401
    error = "Not authenticated"


class RegistrationIncomplete(GatewayError):
    status_code = 403
    error = "Registration incomplete"

    def __init__(self, redirect_to: str = REGISTRATION_PATH) -> None:
        super().__init__(
            "Please complete your registration to access this resource",
            redirectTo=redirect_to,
            requiresRegistration=True,
        )


# ── Sessions ─────────────────────────────────────────────────────────────────

class SessionTeardownFailed(GatewayError):
    status_code = 500
    error = "Session destruction failed"


class ProviderNotConfigured(GatewayError):
    status_code = 503
    error = "OAuth not configured"
