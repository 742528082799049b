"""
Rate limiting for contact form submissions.

Two fixed-window limiters gate every submission before any other check:
a daily cap per client IP and a short cap per IP + email pair. Counters live
in a pluggable backend: process memory by default, or a shared database table
when several server instances must agree on the counts.
"""

import logging
import math
import time
from threading import Lock
from typing import Callable, Dict, NamedTuple, Optional, Tuple

from fastapi import HTTPException, Request, status
from sqlalchemy.exc import IntegrityError

from src.shared.config.settings import get_rate_limit_backend_name, get_trusted_proxy_hops
from src.shared.contact.database import ContactRateLimit, get_session_factory, init_db

DAILY_WINDOW_SECONDS = 24 * 60 * 60
DAILY_MAX_REQUESTS = 25
EMAIL_WINDOW_SECONDS = 60
EMAIL_MAX_REQUESTS = 1

# How often the in-memory backend drops expired windows
SWEEP_INTERVAL_SECONDS = 60

DAILY_LIMIT_MESSAGE = "Daily limit reached. Please try again tomorrow."
EMAIL_LIMIT_MESSAGE = "Too many requests. Please wait 60 seconds before sending another message."


def get_client_ip(request: Request) -> str:
    """
    Extracts the client IP address used as the rate limit identity.

    X-Forwarded-For is only honoured when TRUST_PROXY names the number of
    proxies in front of the app. Entries left of the ones those proxies
    appended are client-controlled, so the address is read from the right.
    """
    proxy_hops = get_trusted_proxy_hops()
    x_forwarded_for = request.headers.get("X-Forwarded-For")
    if proxy_hops and x_forwarded_for:
        forwarded = [entry.strip() for entry in x_forwarded_for.split(",") if entry.strip()]
        if forwarded:
            return forwarded[-min(proxy_hops, len(forwarded))]
    client = request.client
    if client and client.host:
        return client.host
    return "unknown"


class RateLimitResult(NamedTuple):
    allowed: bool
    count: int
    limit: int
    reset_after: int  # seconds until the window resets


class RateLimitBackend:
    """
    Storage for fixed-window counters.

    Implementations must make increment atomic per key: the count returned
    includes this hit and no concurrent hit on the same key may be lost.
    """

    def increment(self, key: str, window_seconds: int, now: float) -> Tuple[int, float]:
        """Record one hit and return (hits in current window, window expiry)."""
        raise NotImplementedError

    def reset(self) -> None:
        raise NotImplementedError


class InMemoryRateLimitBackend(RateLimitBackend):
    """Process-local counters. Lost on restart and not shared between processes."""

    def __init__(self, sweep_interval_seconds: float = SWEEP_INTERVAL_SECONDS):
        self._store: Dict[str, Tuple[int, float]] = {}
        self._lock = Lock()
        self._sweep_interval_seconds = sweep_interval_seconds
        self._next_sweep_at = 0.0

    def increment(self, key: str, window_seconds: int, now: float) -> Tuple[int, float]:
        with self._lock:
            # Drop expired windows at most once per sweep interval
            if now >= self._next_sweep_at:
                self._sweep(now)

            hits, expires_at = self._store.get(key, (0, now + window_seconds))
            if expires_at <= now:
                hits, expires_at = 0, now + window_seconds
            hits += 1
            self._store[key] = (hits, expires_at)
            return hits, expires_at

    def _sweep(self, now: float) -> None:
        expired = [k for k, (_, expires_at) in self._store.items() if expires_at <= now]
        for k in expired:
            del self._store[k]
        self._next_sweep_at = now + self._sweep_interval_seconds

    def reset(self) -> None:
        with self._lock:
            self._store.clear()
            self._next_sweep_at = 0.0


class DatabaseRateLimitBackend(RateLimitBackend):
    """
    Counters stored in the contact_rate_limits table.
    Works across multiple server instances sharing one database.
    """

    def __init__(self, session_factory=None):
        self._session_factory = session_factory or get_session_factory()
        self._lock = Lock()

    def increment(self, key: str, window_seconds: int, now: float) -> Tuple[int, float]:
        with self._lock:
            try:
                return self._increment(key, window_seconds, now)
            except IntegrityError:
                # Another instance inserted the same key first; its row now exists
                return self._increment(key, window_seconds, now)

    def _increment(self, key: str, window_seconds: int, now: float) -> Tuple[int, float]:
        db = self._session_factory()
        try:
            # Clean up expired windows
            db.query(ContactRateLimit).filter(
                ContactRateLimit.window_expires_at <= now,
                ContactRateLimit.key != key,
            ).delete(synchronize_session=False)

            record = db.query(ContactRateLimit).filter(
                ContactRateLimit.key == key
            ).with_for_update().first()

            if record is None:
                record = ContactRateLimit(key=key, hits=0, window_expires_at=now + window_seconds)
                db.add(record)
            elif record.window_expires_at <= now:
                record.hits = 0
                record.window_expires_at = now + window_seconds

            record.hits += 1
            hits, expires_at = record.hits, record.window_expires_at
            db.commit()
            return hits, expires_at
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    def reset(self) -> None:
        with self._lock:
            db = self._session_factory()
            try:
                db.query(ContactRateLimit).delete()
                db.commit()
            except Exception:
                db.rollback()
                raise
            finally:
                db.close()


class RateLimiter:
    """Fixed-window limiter allowing max_requests hits per key per window."""

    def __init__(
        self,
        name: str,
        window_seconds: int,
        max_requests: int,
        message: str,
        backend: RateLimitBackend,
        clock: Callable[[], float] = time.time,
    ):
        self.name = name
        self.window_seconds = window_seconds
        self.max_requests = max_requests
        self.message = message
        self.backend = backend
        self.clock = clock

    def hit(self, key: str) -> RateLimitResult:
        """Count one request for key. Rejected requests are counted too."""
        now = self.clock()
        try:
            count, expires_at = self.backend.increment(
                f"{self.name}:{key}", self.window_seconds, now
            )
        except Exception as e:
            # Don't fail the request if rate limit recording fails
            logging.error(f"Failed to record {self.name} rate limit: {str(e)}", exc_info=True)
            return RateLimitResult(True, 0, self.max_requests, self.window_seconds)

        reset_after = max(math.ceil(expires_at - now), 1)
        return RateLimitResult(count <= self.max_requests, count, self.max_requests, reset_after)

    def enforce(self, key: str) -> RateLimitResult:
        """Count one request and raise a 400 with the limiter's message when over the limit."""
        result = self.hit(key)
        if not result.allowed:
            logging.warning(f"{self.name} rate limit exceeded for {key}")
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail={"success": False, "error": self.message},
                headers={"Retry-After": str(result.reset_after)},
            )
        return result

    def reset(self) -> None:
        self.backend.reset()


def build_backend(backend_name: Optional[str] = None) -> RateLimitBackend:
    """Backend selected by RATE_LIMIT_BACKEND (memory or database)."""
    backend_name = backend_name or get_rate_limit_backend_name()
    if backend_name == "memory":
        return InMemoryRateLimitBackend()
    if backend_name == "database":
        init_db()
        return DatabaseRateLimitBackend()
    raise ValueError(f"Unknown RATE_LIMIT_BACKEND: {backend_name}")


_backend = build_backend()

daily_limiter = RateLimiter(
    name="daily",
    window_seconds=DAILY_WINDOW_SECONDS,
    max_requests=DAILY_MAX_REQUESTS,
    message=DAILY_LIMIT_MESSAGE,
    backend=_backend,
)

email_limiter = RateLimiter(
    name="email",
    window_seconds=EMAIL_WINDOW_SECONDS,
    max_requests=EMAIL_MAX_REQUESTS,
    message=EMAIL_LIMIT_MESSAGE,
    backend=_backend,
)


def email_limit_key(client_ip: str, email: Optional[str]) -> str:
    return f"{client_ip}-{email or 'unknown'}"
