from typing import Any

from fastapi import status


class ApiError(Exception):
    """
    Base for every error a handler is allowed to surface to the client.

    `message` is user-safe; diagnostic detail goes to the server log only.
    """

    status_code: int = status.HTTP_400_BAD_REQUEST
    code: str = "bad_request"
    message: str = "Bad request"

    def __init__(self, message: Any = None, *, status_code: int | None = None):
        if message is not None:
            self.message = message
        if status_code is not None:
            self.status_code = status_code
        super().__init__(str(self.message))


class ValidationError(ApiError):
    code = "validation_error"
    message = "Invalid payload"


class Unauthorized(ApiError):
    status_code = status.HTTP_401_UNAUTHORIZED
    code = "unauthorized"
    message = "Unauthorized"


class Forbidden(ApiError):
    status_code = status.HTTP_403_FORBIDDEN
    code = "forbidden"
    message = "Forbidden"


class NotFound(ApiError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "not_found"
    message = "Not found"


class Conflict(ApiError):
    status_code = status.HTTP_409_CONFLICT
    code = "conflict"
    message = "Resource already exists"


class UpstreamFailure(ApiError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    code = "upstream_failure"
    message = "Upstream service failed"


# ── OTP verification ──────────────────────────────────────────────────
class VerificationError(ApiError):
    code = "verification_failed"
    message = "Verification failed"


class TokenInvalid(VerificationError):
    code = "token_invalid"
    message = "Invalid token"


class TokenNotPending(VerificationError):
    code = "token_not_pending"
    message = "OTP already used or no longer valid"


class TokenExpired(VerificationError):
    code = "token_expired"
    message = "OTP expired"


class AttemptsExceeded(TokenExpired):
    code = "attempts_exceeded"
    message = "OTP attempts exceeded"


class CodeMismatch(VerificationError):
    code = "code_mismatch"
    message = "Incorrect OTP"

    def __init__(self, attempts_left: int):
        self.attempts_left = attempts_left
        if attempts_left <= 0:
            super().__init__("Incorrect OTP, attempts exceeded")
        else:
            super().__init__()
