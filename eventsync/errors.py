from __future__ import annotations


class EventSyncError(RuntimeError):
    """Base class for synchronization failures."""


class DecodeError(EventSyncError):
    """A remote payload could not be turned into an event record."""


class SubscriptionError(EventSyncError):
    """The change feed could not be established."""
