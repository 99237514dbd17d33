# claims_portal/core/exceptions.py
"""
Domain error taxonomy.

Services and the token layer raise these; routers and the exception
handlers registered in `claims_portal.main` turn them into HTTP responses.
"""


class PortalError(Exception):
    """Base class for every expected failure in the portal."""

    default_message = "Portal error"

    def __init__(self, message: str | None = None):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message


class DuplicateEmail(PortalError):
    default_message = "Email already exists"


class InvalidCredentials(PortalError):
    """Unknown email and wrong password are deliberately the same error."""

    default_message = "Invalid email or password"


class InvalidToken(PortalError):
    """Bad signature, expired, malformed, revoked or wrong issuer/audience."""

    default_message = "Invalid or expired token"


class WrongTokenType(InvalidToken):
    """A refresh token was presented where an access token is expected, or vice versa."""

    default_message = "Invalid token type"


class MalformedHeader(InvalidToken):
    default_message = "Invalid authorization header format. Expected: Bearer <token>"


class NotAuthenticated(PortalError):
    default_message = "Authentication required"


class Forbidden(PortalError):
    default_message = "Admin access required"


class ClaimsServiceError(PortalError):
    """The claims SaaS could not be reached or answered with an error."""

    default_message = "Claims service unavailable"

    def __init__(self, message: str | None = None, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code
