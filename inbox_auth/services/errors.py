from fastapi import status


class VerificationError(Exception):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Verification failed"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.default_message)


class ValidationError(VerificationError):
    default_message = "Valid email required"


class ForbiddenError(VerificationError):
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Email is not allowed to request admin access"


class ThrottledError(VerificationError):
    status_code = status.HTTP_429_TOO_MANY_REQUESTS

    def __init__(self, retry_after_seconds: int) -> None:
        self.retry_after_seconds = retry_after_seconds
        super().__init__(
            f"Please wait {retry_after_seconds}s before requesting again"
        )


class ChallengeNotFoundError(VerificationError):
    default_message = "No code requested for this email"


class ChallengeExpiredError(VerificationError):
    default_message = "Code expired. Request a new one."


class TooManyAttemptsError(VerificationError):
    status_code = status.HTTP_429_TOO_MANY_REQUESTS
    default_message = "Too many attempts. Request a new code."


class InvalidCodeError(VerificationError):
    default_message = "Invalid code"


class DeliveryError(VerificationError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Failed to send code"


class TokenError(VerificationError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Invalid or expired token"
