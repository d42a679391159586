from __future__ import annotations

import json
import uuid
from collections.abc import Callable
from dataclasses import asdict, dataclass
from typing import Protocol

CONSENT_STORAGE_KEY = "oct_cookie_consent"
ANONYMOUS_ID_STORAGE_KEY = "oct_anonymous_id"
MS_PER_DAY = 24 * 60 * 60 * 1000


class ConsentStorage(Protocol):
    def get_item(self, key: str) -> str | None: ...

    def set_item(self, key: str, value: str) -> None: ...

    def remove_item(self, key: str) -> None: ...


class InMemoryStorage:
    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._items: dict[str, str] = dict(initial or {})

    def get_item(self, key: str) -> str | None:
        return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._items[key] = value

    def remove_item(self, key: str) -> None:
        self._items.pop(key, None)


@dataclass(frozen=True)
class ConsentPreferences:
    analytics: bool
    marketing: bool
    timestamp: int
    necessary: bool = True

    def to_dict(self) -> dict[str, object]:
        return asdict(self)

    def expires_at(self, expiry_days: int) -> int:
        return self.timestamp + expiry_days * MS_PER_DAY

    def is_valid(self, expiry_days: int, now_ms: int) -> bool:
        return now_ms < self.expires_at(expiry_days)


class ConsentRepository:
    """Typed access to the consent keys held in a ConsentStorage."""

    def __init__(self, storage: ConsentStorage, id_factory: Callable[[], str] | None = None) -> None:
        self.storage = storage
        self._id_factory = id_factory or (lambda: str(uuid.uuid4()))

    def load(self) -> ConsentPreferences | None:
        raw = self.storage.get_item(CONSENT_STORAGE_KEY)
        if not raw:
            return None
        try:
            payload = json.loads(raw)
            return ConsentPreferences(
                necessary=True,
                analytics=bool(payload["analytics"]),
                marketing=bool(payload["marketing"]),
                timestamp=int(payload["timestamp"]),
            )
        except (ValueError, TypeError, KeyError):
            return None

    def save(self, preferences: ConsentPreferences) -> None:
        self.storage.set_item(CONSENT_STORAGE_KEY, json.dumps(preferences.to_dict()))

    def clear(self) -> None:
        self.storage.remove_item(CONSENT_STORAGE_KEY)

    def anonymous_id(self) -> str:
        existing = self.storage.get_item(ANONYMOUS_ID_STORAGE_KEY)
        if existing:
            return existing
        created = self._id_factory()
        self.storage.set_item(ANONYMOUS_ID_STORAGE_KEY, created)
        return created
