"""
Exceptions raised by the tracker.

InvalidRequestError (and subclasses): the caller's fault. Nothing was mutated, so the same request can be retried once the input is corrected.
NotFoundError: a read-only lookup found nothing.
CollaboratorError: persistence or notification delivery failed. The in-memory state is still correct.
These are reported back in results instead of being raised from the services.

NOTE none of these subclass ValueError, so pydantic validators let them propagate unchanged.
"""

from typing import Optional


class TrackerError(Exception):
    """Top-level exception for anything going wrong in the tracker."""


# --- Validation ---
class InvalidRequestError(TrackerError):
    pass


class UnknownBossError(InvalidRequestError):
    pass


class UnknownLayerError(InvalidRequestError):
    pass


class InvalidLayerError(UnknownLayerError):
    """Human-entered layer number could not be parsed, or is out of range."""


class UnknownTenantError(InvalidRequestError):
    pass


class InvalidStatusError(InvalidRequestError):
    pass


# --- Lookups ---
class NotFoundError(TrackerError):
    pass


class TenantNotFoundError(NotFoundError):
    pass


# --- Collaborators ---
class CollaboratorError(TrackerError):
    """A call into persistence or the chat platform failed."""

    def __init__(
        self, message: str, operation: str, tenant_id: Optional[str] = None
    ) -> None:
        super().__init__(message)
        self.operation = operation
        self.tenant_id = tenant_id


class RepositoryError(CollaboratorError):
    pass


class NotificationError(CollaboratorError):
    pass
