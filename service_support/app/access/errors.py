"""
Access gate denial reasons.

Every denial is recoverable and user-facing; callers surface it and abort
before writing anything.
"""

from typing import Any, Dict, Optional

from shared.errors import AuthenticationError, AuthorizationError


class Unauthenticated(AuthenticationError):
    def __init__(self, message: str = "Not authenticated", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details, code="UNAUTHENTICATED")


class UserNotFound(AuthorizationError):
    def __init__(self, message: str = "User not found", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details, code="USER_NOT_FOUND")


class AccountDeactivated(AuthorizationError):
    def __init__(self, message: str = "User account is deactivated", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details, code="ACCOUNT_DEACTIVATED")


class WrongTenant(AuthorizationError):
    def __init__(self, message: str = "Access denied: wrong foundation", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details, code="WRONG_TENANT")


class InsufficientPermissions(AuthorizationError):
    def __init__(self, message: str = "Insufficient permissions", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details, code="INSUFFICIENT_PERMISSIONS")


class AccessDenied(AuthorizationError):
    """Record-level denial after the gate has passed."""

    def __init__(self, message: str = "Access denied", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details, code="ACCESS_DENIED")


class UnknownOperation(KeyError):
    """Operation name missing from the capability table."""
