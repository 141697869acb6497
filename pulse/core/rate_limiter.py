"""Rate limiting for public, abuse-prone endpoints.

Two backends share one interface: an in-memory sliding window guarded by a
lock, and a Redis fixed window for deployments running several workers.
Both increment and check in a single atomic step.
"""

from __future__ import annotations

import math
import time
from collections import defaultdict
from dataclasses import dataclass
from enum import Enum
from threading import Lock
from typing import TYPE_CHECKING, Protocol

from pulse.core.config import settings
from pulse.core.errors import RateLimitedError

if TYPE_CHECKING:
    from fastapi import Request
    from redis import Redis


class RateLimitKind(str, Enum):
    COUPON_ISSUE = "coupon_issue"
    COUPON_CHECK = "coupon_check"
    SURVEY_SUBMIT = "survey_submit"
    EMAIL_SUBMIT = "email_submit"
    EMAIL_OPT_IN = "email_opt_in"


# Wording used in the "Too many ... requests" message
ACTION_LABELS: dict[RateLimitKind, str] = {
    RateLimitKind.COUPON_ISSUE: "coupon",
    RateLimitKind.COUPON_CHECK: "coupon check",
    RateLimitKind.SURVEY_SUBMIT: "survey submission",
    RateLimitKind.EMAIL_SUBMIT: "email",
    RateLimitKind.EMAIL_OPT_IN: "email opt-in",
}


@dataclass
class RateLimitDecision:
    allowed: bool
    remaining: int
    retry_after_seconds: int = 0


class Limiter(Protocol):
    max_requests: int
    window_seconds: int

    def check(self, key: str) -> RateLimitDecision: ...

    def reset(self) -> None: ...


class RateLimiter:
    """In-memory sliding-window rate limiter keyed by an arbitrary string.

    Tracks request timestamps in a rolling window and rejects calls that
    exceed the configured limit.
    """

    def __init__(self, max_requests: int, window_seconds: int = 60):
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._requests: dict[str, list[float]] = defaultdict(list)
        self._lock = Lock()

    def check(self, key: str) -> RateLimitDecision:
        """Record a request for ``key`` and report whether it is allowed."""
        now = time.monotonic()
        cutoff = now - self.window_seconds

        with self._lock:
            # Prune expired entries
            timestamps = [t for t in self._requests[key] if t > cutoff]
            self._requests[key] = timestamps

            if len(timestamps) >= self.max_requests:
                retry_after = math.ceil(timestamps[0] + self.window_seconds - now)
                return RateLimitDecision(
                    allowed=False, remaining=0, retry_after_seconds=max(retry_after, 1)
                )

            timestamps.append(now)
            return RateLimitDecision(
                allowed=True, remaining=self.max_requests - len(timestamps)
            )

    def reset(self) -> None:
        """Clear all tracked state (useful for testing)."""
        with self._lock:
            self._requests.clear()


class RedisRateLimiter:
    """Fixed-window limiter backed by Redis ``INCR``.

    The counter and its expiry are written in one MULTI/EXEC pipeline, so
    concurrent requests from the same caller on different workers can never
    both observe a stale count.
    """

    def __init__(
        self,
        client: Redis,
        max_requests: int,
        window_seconds: int = 60,
        namespace: str = "pulse:ratelimit",
    ):
        self.client = client
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.namespace = namespace

    def _redis_key(self, key: str) -> str:
        return f"{self.namespace}:{key}"

    def check(self, key: str) -> RateLimitDecision:
        redis_key = self._redis_key(key)
        pipe = self.client.pipeline(transaction=True)
        pipe.incr(redis_key)
        pipe.expire(redis_key, self.window_seconds, nx=True)
        pipe.ttl(redis_key)
        count, _, ttl = pipe.execute()

        if count > self.max_requests:
            retry_after = ttl if ttl and ttl > 0 else self.window_seconds
            return RateLimitDecision(allowed=False, remaining=0, retry_after_seconds=retry_after)
        return RateLimitDecision(allowed=True, remaining=self.max_requests - count)

    def reset(self) -> None:
        for redis_key in self.client.scan_iter(match=f"{self.namespace}:*"):
            self.client.delete(redis_key)


def _budget(kind: RateLimitKind) -> tuple[int, int]:
    name = kind.name
    return (
        getattr(settings, f"RATE_LIMIT_{name}_MAX"),
        getattr(settings, f"RATE_LIMIT_{name}_WINDOW"),
    )


class RateLimiterRegistry:
    """Holds one limiter per rate-limit kind."""

    def __init__(self, redis_client: Redis | None = None):
        self._limiters: dict[RateLimitKind, Limiter] = {}
        for kind in RateLimitKind:
            max_requests, window_seconds = _budget(kind)
            if redis_client is not None:
                self._limiters[kind] = RedisRateLimiter(
                    redis_client,
                    max_requests,
                    window_seconds,
                    namespace=f"pulse:ratelimit:{kind.value}",
                )
            else:
                self._limiters[kind] = RateLimiter(max_requests, window_seconds)

    def get(self, kind: RateLimitKind) -> Limiter:
        return self._limiters[kind]

    def enforce(self, kind: RateLimitKind, identifier: str) -> RateLimitDecision:
        """Count a request and raise if the caller is over budget.

        Raises:
            RateLimitedError: With the number of seconds until a retry can succeed.
        """
        decision = self._limiters[kind].check(f"{kind.value}:{identifier}")
        if not decision.allowed:
            raise RateLimitedError(ACTION_LABELS[kind], decision.retry_after_seconds)
        return decision

    def reset(self) -> None:
        for limiter in self._limiters.values():
            limiter.reset()


def _build_registry() -> RateLimiterRegistry:
    if settings.redis_rate_limiting:
        from redis import Redis

        return RateLimiterRegistry(Redis.from_url(settings.REDIS_URL))
    return RateLimiterRegistry()


# Module-level registry used by the request handlers
rate_limiters = _build_registry()


def get_client_identifier(email: str | None = None, request: Request | None = None) -> str:
    """Identify the caller for rate limiting.

    An email, when known, is the most precise key. Otherwise the first
    ``X-Forwarded-For`` hop, then ``X-Real-IP``, then the socket peer.
    """
    if email:
        return f"email:{email.strip().lower()}"

    if request is not None:
        forwarded = request.headers.get("x-forwarded-for")
        if forwarded:
            return f"ip:{forwarded.split(',')[0].strip()}"
        real_ip = request.headers.get("x-real-ip")
        if real_ip:
            return f"ip:{real_ip}"
        if request.client and request.client.host:
            return f"ip:{request.client.host}"

    return "unknown"
