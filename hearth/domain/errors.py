"""
Application error taxonomy

Use cases raise these; the web layer maps them to HTTP statuses in one place
(see hearth.main). Expected "not yet eligible" quest outcomes are returned as
False instead of raised.
"""


class HearthError(Exception):
    """Base class for all domain/application failures"""
    pass


class ValidationError(HearthError, ValueError):
    """Malformed or over-quota input (e.g. assigned quantity above item quantity)"""
    pass


class NotFoundError(HearthError, LookupError):
    """Referenced receipt, item, member, quest, category or household is absent"""
    pass


class ConflictError(HearthError):
    """State conflict: quest already active / not repeatable, or concurrent writers"""
    pass


class AuthorizationError(HearthError, PermissionError):
    """Raised by the household access check, never by the core itself"""
    pass
