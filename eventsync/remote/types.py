from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any, Protocol

Payload = Mapping[str, Any]


@dataclass(frozen=True)
class Added:
    key: str
    payload: Payload


@dataclass(frozen=True)
class Changed:
    key: str
    payload: Payload


@dataclass(frozen=True)
class Removed:
    key: str


@dataclass(frozen=True)
class Snapshot:
    entries: tuple[tuple[str, Payload], ...]


ChangeEvent = Added | Changed | Removed | Snapshot
ChangeCallback = Callable[[ChangeEvent], None]


@dataclass(frozen=True)
class WriteOutcome:
    ok: bool
    error: str | None = None

    @classmethod
    def success(cls) -> WriteOutcome:
        return cls(ok=True)

    @classmethod
    def failure(cls, error: str) -> WriteOutcome:
        return cls(ok=False, error=error)


class Subscription(Protocol):
    def cancel(self) -> None: ...


class RemoteStore(Protocol):
    def subscribe(self, collection: str, callback: ChangeCallback) -> Subscription: ...

    def write(self, collection: str, key: str, payload: Payload) -> WriteOutcome: ...

    def patch(self, collection: str, key: str, payload: Payload) -> WriteOutcome: ...

    def delete(self, collection: str, key: str) -> WriteOutcome: ...
