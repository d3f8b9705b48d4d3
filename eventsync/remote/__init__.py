from .http_store import HttpRemoteStore  # noqa: F401
from .memory import InMemoryRemoteStore  # noqa: F401
from .types import (  # noqa: F401
    Added,
    ChangeCallback,
    ChangeEvent,
    Changed,
    Payload,
    RemoteStore,
    Removed,
    Snapshot,
    Subscription,
    WriteOutcome,
)
