"""
Typed failures raised by the account services.

Route handlers never inspect message text: each exception carries the
HTTP status it maps to, and the handlers registered in main.py turn it
into the ``{"success": false, "message": ...}`` envelope.
"""


class AccountError(Exception):
    """Base class for every failure the services raise on purpose."""

    http_status = 400
    message = "Something went wrong"

    def __init__(self, message: str | None = None):
        super().__init__(message or self.message)
        self.message = message or self.message


class NotFound(AccountError):
    message = "Not found"


class UserNotFound(NotFound):
    message = "User not found"


class TokenNotFound(NotFound):
    """Token decodes fine but has no Token Store row (e.g. after logout)."""

    http_status = 401
    message = "Session is no longer valid"


class CredentialError(AccountError):
    # Shared by every password failure so callers cannot enumerate accounts
    message = "Invalid email or password"


class InvalidCredential(CredentialError):
    pass


class UnknownEmail(CredentialError, NotFound):
    message = CredentialError.message


class InvalidAssertion(AccountError):
    message = "Invalid Google credential"


class MissingEmail(InvalidAssertion):
    message = "Google credential carries no email"


class ProviderUnavailable(AccountError):
    http_status = 500
    message = "Google sign-in is temporarily unavailable"


class InvalidToken(AccountError):
    http_status = 401
    message = "Invalid session token"


class PermissionDenied(AccountError):
    http_status = 403
    message = "Not allowed"


class ValidationError(AccountError):
    message = "Invalid request"


class EmailAlreadyRegistered(ValidationError):
    message = "Email already registered"


class PaymentRequired(ValidationError):
    message = "Not a paid user"


class PersistenceError(AccountError):
    http_status = 500
    message = "Database error occurred"
