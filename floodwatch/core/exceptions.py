"""
FloodWatch — Custom Exceptions.
Each exception carries: message, error_code, http_status_code, optional detail dict.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

# ─────────────────────────────────────────────────────────────────────────────
# BASE
# ─────────────────────────────────────────────────────────────────────────────


class FloodWatchError(Exception):
    """Root exception for all FloodWatch errors."""

    http_status_code: int = 400
    error_code: str = "FLOODWATCH_ERROR"

    def __init__(self, message: str, detail: Optional[Dict[str, Any]] = None) -> None:
        self.message = message
        self.detail = detail or {}
        super().__init__(message)

    def to_dict(self, include_detail: bool = False) -> Dict[str, Any]:
        body: Dict[str, Any] = {"success": False, "message": self.message}
        if include_detail:
            body["error"] = {"code": self.error_code, **self.detail}
        return body

    @property
    def headers(self) -> Optional[Dict[str, str]]:
        return None


# ─────────────────────────────────────────────────────────────────────────────
# INPUT
# ─────────────────────────────────────────────────────────────────────────────


class ValidationError(FloodWatchError):
    http_status_code = 400
    error_code = "VALIDATION_ERROR"

    def __init__(
        self, errors: List[Dict[str, str]], message: str = "Validation failed"
    ) -> None:
        self.errors = errors
        super().__init__(message=message, detail={"fields": [e["field"] for e in errors]})

    def to_dict(self, include_detail: bool = False) -> Dict[str, Any]:
        body = super().to_dict(include_detail)
        body["errors"] = self.errors
        return body


class DuplicateError(FloodWatchError):
    http_status_code = 400
    error_code = "DUPLICATE"

    def __init__(self, message: str = "User already exists with this email") -> None:
        super().__init__(message=message)


class AccountCreationError(FloodWatchError):
    """Signup failed for a reason the caller should not see in detail."""

    http_status_code = 400
    error_code = "ACCOUNT_CREATION_FAILED"

    def __init__(self, reason: str = "") -> None:
        super().__init__(message="Error creating user", detail={"reason": reason})


# ─────────────────────────────────────────────────────────────────────────────
# AUTHENTICATION / AUTHORIZATION
# ─────────────────────────────────────────────────────────────────────────────


class AuthenticationError(FloodWatchError):
    http_status_code = 401
    error_code = "AUTHENTICATION_ERROR"

    def __init__(self, reason: str = "Not authorized, invalid or missing token") -> None:
        super().__init__(message=reason)

    @property
    def headers(self) -> Optional[Dict[str, str]]:
        return {"WWW-Authenticate": "Bearer"}


class InvalidCredentialsError(AuthenticationError):
    """Unknown email and wrong password are deliberately indistinguishable."""

    error_code = "INVALID_CREDENTIALS"

    def __init__(self) -> None:
        super().__init__(reason="Invalid email or password")


class InvalidTwoFactorCodeError(AuthenticationError):
    error_code = "INVALID_TWO_FACTOR_CODE"

    def __init__(self) -> None:
        super().__init__(reason="Invalid or expired verification code")


class AuthorizationError(FloodWatchError):
    http_status_code = 403
    error_code = "NOT_AUTHORIZED"

    def __init__(
        self,
        message: str = "Not authorized to perform this action",
        role: str = "",
        action: str = "",
    ) -> None:
        self.role = role
        self.action = action
        super().__init__(message=message, detail={"role": role, "action": action})


# ─────────────────────────────────────────────────────────────────────────────
# RESOURCES / INFRASTRUCTURE
# ─────────────────────────────────────────────────────────────────────────────


class NotFoundError(FloodWatchError):
    http_status_code = 404
    error_code = "NOT_FOUND"

    def __init__(self, resource: str, resource_id: str) -> None:
        self.resource = resource
        self.resource_id = resource_id
        super().__init__(
            message=f"{resource} not found",
            detail={"resource": resource, "id": resource_id},
        )


class RateLimitError(FloodWatchError):
    http_status_code = 429
    error_code = "RATE_LIMITED"

    def __init__(self, retry_after: int) -> None:
        self.retry_after = retry_after
        super().__init__(
            message="Too many requests. Please retry shortly.",
            detail={"retry_after": retry_after},
        )

    @property
    def headers(self) -> Optional[Dict[str, str]]:
        return {"Retry-After": str(self.retry_after)}


class StoreError(FloodWatchError):
    http_status_code = 500
    error_code = "STORE_ERROR"

    def __init__(self, reason: str = "") -> None:
        super().__init__(message="Internal server error", detail={"reason": reason})


class EmailDeliveryError(FloodWatchError):
    http_status_code = 503
    error_code = "EMAIL_DELIVERY_FAILED"

    def __init__(self, reason: str = "") -> None:
        super().__init__(
            message="Unable to send verification code", detail={"reason": reason}
        )
