# concession/services/wizard_store.py
"""
Keyed scratch storage for delivery-detail wizards, one entry per account.

Entries expire after a TTL and are discarded when the wizard completes.
Nothing here is durable on purpose: a lost entry means the customer starts
the wizard again.
"""
import json
import threading
import time
from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass
from enum import Enum
from typing import Callable, Dict, Tuple

import redis
from redis.exceptions import RedisError

from concession.domain.errors import StoreUnavailable
from concession.utils.logging import get_logger
from concession.utils.retry import redis_retry
from concession.utils.settings import REDIS_URL, WIZARD_BACKEND, WIZARD_TTL_SECONDS

logger = get_logger(__name__)


class WizardStep(str, Enum):
    AWAITING_SIDE = "awaiting_side"
    AWAITING_SECTOR = "awaiting_sector"
    AWAITING_ROW = "awaiting_row"
    AWAITING_SEAT = "awaiting_seat"
    COMPLETE = "complete"


@dataclass
class WizardSession:
    account_id: int
    order_id: int
    step: WizardStep = WizardStep.AWAITING_SIDE
    side: str | None = None
    sector: int | None = None
    row: str | None = None
    seat: str | None = None

    def coordinates(self) -> dict:
        return {"side": self.side, "sector": self.sector, "row": self.row, "seat": self.seat}

    def to_json(self) -> str:
        data = asdict(self)
        data["step"] = self.step.value
        return json.dumps(data)

    @classmethod
    def from_json(cls, raw: str) -> "WizardSession":
        data = json.loads(raw)
        data["step"] = WizardStep(data["step"])
        return cls(**data)


class WizardStore(ABC):
    @abstractmethod
    def get(self, account_id: int) -> WizardSession | None: ...

    @abstractmethod
    def put(self, session: WizardSession) -> None: ...

    @abstractmethod
    def discard(self, account_id: int) -> bool: ...


class MemoryWizardStore(WizardStore):
    def __init__(self, ttl_seconds: int = WIZARD_TTL_SECONDS, clock: Callable[[], float] = time.monotonic):
        self.ttl_seconds = ttl_seconds
        self.clock = clock
        self._sessions: Dict[int, Tuple[float, WizardSession]] = {}
        self._lock = threading.Lock()

    def get(self, account_id: int) -> WizardSession | None:
        with self._lock:
            entry = self._sessions.get(account_id)
            if entry is None:
                return None
            expires_at, session = entry
            if self.clock() >= expires_at:
                del self._sessions[account_id]
                logger.info(f"Wizard for account {account_id} expired")
                return None
            return WizardSession(**asdict(session))

    def put(self, session: WizardSession) -> None:
        with self._lock:
            now = self.clock()
            self._sweep(now)
            self._sessions[session.account_id] = (
                now + self.ttl_seconds,
                WizardSession(**asdict(session)),
            )

    def discard(self, account_id: int) -> bool:
        with self._lock:
            return self._sessions.pop(account_id, None) is not None

    def _sweep(self, now: float) -> None:
        # abandoned wizards are never read again; drop them on the next write
        expired = [account_id for account_id, (expires_at, _) in self._sessions.items() if now >= expires_at]
        for account_id in expired:
            del self._sessions[account_id]
        if expired:
            logger.info(f"Dropped {len(expired)} expired wizard(s)")


class RedisWizardStore(WizardStore):
    """Wizard sessions shared by all service instances; Redis enforces the TTL."""

    def __init__(self, url: str | None = None, ttl_seconds: int = WIZARD_TTL_SECONDS, client=None):
        self.redis = client or redis.Redis.from_url(url or REDIS_URL, decode_responses=True)
        self.ttl_seconds = ttl_seconds

    @staticmethod
    def _key(account_id: int) -> str:
        return f"wizard:{account_id}"

    @redis_retry()
    def _get(self, account_id: int):
        return self.redis.get(self._key(account_id))

    @redis_retry()
    def _set(self, session: WizardSession):
        # every accepted step refreshes the TTL
        return self.redis.set(self._key(session.account_id), session.to_json(), ex=self.ttl_seconds)

    @redis_retry()
    def _delete(self, account_id: int):
        return self.redis.delete(self._key(account_id))

    def get(self, account_id: int) -> WizardSession | None:
        try:
            raw = self._get(account_id)
        except RedisError as e:
            raise StoreUnavailable(f"Wizard store unavailable: {e}") from e
        return WizardSession.from_json(raw) if raw else None

    def put(self, session: WizardSession) -> None:
        try:
            self._set(session)
        except RedisError as e:
            raise StoreUnavailable(f"Wizard store unavailable: {e}") from e

    def discard(self, account_id: int) -> bool:
        try:
            return bool(self._delete(account_id))
        except RedisError as e:
            raise StoreUnavailable(f"Wizard store unavailable: {e}") from e


def build_wizard_store(backend: str = WIZARD_BACKEND) -> WizardStore:
    if backend == "memory":
        return MemoryWizardStore()
    if backend == "redis":
        return RedisWizardStore()
    raise ValueError(f"Unknown wizard backend: {backend!r}")
