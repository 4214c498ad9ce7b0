"""
One time passwords for the password reset flow.

Each email moves through ABSENT -> ISSUED -> (CONSUMED | EXPIRED) -> ABSENT.
Issuing again replaces the pending code, the first successful verification
consumes it and expiry is checked lazily on every read. The read, compare
and evict steps of a verification run under the store lock for the email.
"""

import json, secrets
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from threading import RLock
from typing import Callable, Dict, Iterator, Optional, Protocol

from redis import Redis

from trafficfines.src import exceptions
from trafficfines.src import redis as redisLock
from trafficfines.src.constants import (
    OTP_EXPIRY_TIME,
    OTP_KEY_PREFIX,
    OTP_LENGTH,
    OTP_STORE,
)
from trafficfines.src.functions import normaliseEmail


def utcNow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class OTPEntry:
    code: str
    expires_at: datetime


class Notifier(Protocol):
    def send(self, email: str, code: str) -> bool: ...


# ---------------------------------------------------------------------------
# Stores
# ---------------------------------------------------------------------------
class MemoryOTPStore:
    """Process local store, the default."""

    def __init__(self):
        self._entries: Dict[str, OTPEntry] = {}
        self._lock = RLock()

    @contextmanager
    def locked(self, email: str) -> Iterator[None]:
        with self._lock:
            yield

    def get(self, email: str) -> Optional[OTPEntry]:
        with self._lock:
            return self._entries.get(email)

    def set(self, email: str, entry: OTPEntry, ttl: int) -> None:
        with self._lock:
            self._entries[email] = entry

    def delete(self, email: str) -> None:
        with self._lock:
            self._entries.pop(email, None)

    def removeExpired(self, now: datetime) -> int:
        with self._lock:
            expired = [k for k, v in self._entries.items() if now > v.expires_at]
            for email in expired:
                del self._entries[email]
            return len(expired)

    def __len__(self) -> int:
        return len(self._entries)


class RedisOTPStore:
    """
    Store shared by every server process.

    Entries are JSON documents under `<prefix>:<email>` with a native key
    expiry, the stored `expires_at` is still checked on read. Verifications
    are serialised with the Redis mutex lock of the email.
    """

    def __init__(self, client: Optional[Redis] = None, prefix: str = OTP_KEY_PREFIX):
        self.client = redisLock.redisClient if client is None else client
        self.prefix = prefix

    def key(self, email: str) -> str:
        return f"{self.prefix}:{email}"

    @contextmanager
    def locked(self, email: str) -> Iterator[None]:
        lock = redisLock.acquireLock(self.prefix, email, client=self.client)
        try:
            yield
        finally:
            redisLock.releaseLock(lock)

    def get(self, email: str) -> Optional[OTPEntry]:
        raw = self.client.get(self.key(email))
        if raw is None:
            return None
        data = json.loads(raw)
        return OTPEntry(data["code"], datetime.fromisoformat(data["expires_at"]))

    def set(self, email: str, entry: OTPEntry, ttl: int) -> None:
        data = {"code": entry.code, "expires_at": entry.expires_at.isoformat()}
        self.client.set(self.key(email), json.dumps(data), ex=ttl)

    def delete(self, email: str) -> None:
        self.client.delete(self.key(email))

    def removeExpired(self, now: datetime) -> int:
        removed = 0
        for key in self.client.scan_iter(match=f"{self.prefix}:*"):
            raw = self.client.get(key)
            if raw is None:
                continue
            if now > datetime.fromisoformat(json.loads(raw)["expires_at"]):
                self.client.delete(key)
                removed += 1
        return removed


def createStore(kind: str = OTP_STORE):
    """Build the store named by the OTP_STORE setting (`memory` or `redis`)."""
    if kind == "redis":
        return RedisOTPStore()
    if kind == "memory":
        return MemoryOTPStore()
    raise ValueError(f"Unknown OTP store: {kind}")


# ---------------------------------------------------------------------------
# Password reset codes
# ---------------------------------------------------------------------------
class PasswordResetOTP:
    """
    Issue and verify password reset codes.

    Args:
        store: `MemoryOTPStore` or `RedisOTPStore`.
        notifier: Delivers the code, `send(email, code) -> bool`.
        ttl (int): Validity of a code in seconds.
        clock: Returns the current time, timezone aware.
    """

    def __init__(
        self,
        store,
        notifier: Notifier,
        ttl: int = OTP_EXPIRY_TIME,
        clock: Callable[[], datetime] = utcNow,
    ):
        self.store = store
        self.notifier = notifier
        self.ttl = ttl
        self.clock = clock

    @staticmethod
    def generateCode() -> str:
        return f"{secrets.randbelow(10**OTP_LENGTH):0{OTP_LENGTH}d}"

    def issue(self, email: str) -> str:
        """
        Send a fresh code to the email and remember it until it expires.

        The code is only stored once it has been handed to the notifier, so
        a failed delivery leaves any earlier code of the email untouched.

        Raises:
            exceptions.OTPDispatchFailed: If the notifier could not deliver the code.
        """
        email = normaliseEmail(email)
        code = self.generateCode()
        if not self.notifier.send(email, code):
            raise exceptions.OTPDispatchFailed()
        entry = OTPEntry(code, self.clock() + timedelta(seconds=self.ttl))
        with self.store.locked(email):
            self.store.set(email, entry, self.ttl)
        return code

    def verify(self, email: str, submittedCode: Optional[str]) -> bool:
        """
        Check a submitted code, consuming it on success.

        Returns:
            bool: True exactly once per issued code. Expired codes are evicted,
            mismatches keep the pending code for another attempt.
        """
        if submittedCode is None:
            return False
        email = normaliseEmail(email)
        with self.store.locked(email):
            entry = self.store.get(email)
            if entry is None:
                return False
            if self.clock() > entry.expires_at:
                self.store.delete(email)
                return False
            if entry.code == submittedCode.strip():
                self.store.delete(email)
                return True
            return False

    def sweep(self) -> int:
        """Evict every expired code, returning how many were removed."""
        return self.store.removeExpired(self.clock())
