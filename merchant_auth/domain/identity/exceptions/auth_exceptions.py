"""Authentication exceptions.

Failure taxonomy of the auth core. Inside the core the terminal kinds
(InvalidSignature, Expired, Revoked) collapse to "no identity"; only
StoreUnavailable propagates so callers can fail closed.
"""

from merchant_auth.domain.shared.exceptions import AggregateNotFound, DomainException


class AuthError(DomainException):
    """Base class for credential failures. Always terminal, never retried."""

    reason: str = "unauthorized"


class MissingCredential(AuthError):
    """No session cookie or bearer token. Not an error for the resolver."""

    reason = "auth_required"


class InvalidSignature(AuthError):
    """Token or Telegram hash failed the cryptographic check.

    Also raised for tokens that cannot be decoded or carry garbled claims.
    """

    reason = "invalid_signature"


class Expired(AuthError):
    """Token is past its expiry. The client may re-authenticate."""

    reason = "session_expired"


class Revoked(AuthError):
    """Signature and expiry are fine but the security stamp was rotated.

    Distinct from Expired for audit logs; identical for the end user.
    """

    reason = "session_revoked"


class MalformedInput(AuthError):
    """Missing or garbled initData/credential, rejected at the boundary (400)."""

    reason = "malformed_input"


class StoreUnavailable(DomainException):
    """Stamp lookup failed or timed out.

    Transient. Never treated as authenticated: surfaces as 503.
    """

    pass


class UserNotFound(AggregateNotFound):
    """No user with the given id exists in the store."""

    pass
