# storefront/utils/errors.py

"""
Error taxonomy of the payment and admin-session subsystem.

Routes translate these into structured JSON responses; the `reason`
of an AuthenticationFailure is only ever written to the server log.
"""

from typing import Iterable, Optional


class StorefrontError(Exception):
    pass


# ────────────── Configuration ──────────────
class ConfigurationMissing(StorefrontError):
    def __init__(self, names: Iterable[str]):
        self.names = list(names)
        super().__init__(f"Missing required configuration: {', '.join(self.names)}")


# ────────────── Authentication ──────────────
class AuthenticationFailure(StorefrontError):
    reason = "Authentication failed"

    def __init__(self, reason: Optional[str] = None):
        if reason:
            self.reason = reason
        super().__init__(self.reason)


class MissingToken(AuthenticationFailure):
    reason = "No session token found"


class InvalidSignature(AuthenticationFailure):
    reason = "Invalid token signature"


class TokenExpired(AuthenticationFailure):
    reason = "Token expired"


class MalformedToken(AuthenticationFailure):
    reason = "Malformed token"


class WrongSubjectType(AuthenticationFailure):
    reason = "Invalid token type"


# ────────────── Payment gateway ──────────────
class GatewayUnreachable(StorefrontError):
    pass


class GatewayError(StorefrontError):
    def __init__(self, code, message: str = ""):
        self.code = code
        self.message = message
        super().__init__(f"Gateway error {code}: {message}" if message else f"Gateway error {code}")


# ────────────── Orders ──────────────
class OrderNotFound(StorefrontError):
    pass


class EmptyInput(StorefrontError):
    pass


class BulkDeleteFailed(StorefrontError):
    """
    Bulk delete stopped before removing any order rows.

    completed_phase is the last phase that committed (None when nothing did),
    deleted_count is the number of order rows removed (always 0 here).
    """

    def __init__(self, message: str, completed_phase: Optional[str] = None, items_deleted: int = 0):
        self.completed_phase = completed_phase
        self.items_deleted = items_deleted
        self.deleted_count = 0
        super().__init__(message)


class PartialDeleteOrders(BulkDeleteFailed):
    """Order items were removed but the order rows are still present; retrying the delete is safe."""
