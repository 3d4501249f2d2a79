from __future__ import annotations

import logging
import math
import time
from dataclasses import dataclass, field
from threading import Lock

from flask import Flask, Response, g, jsonify, request

from .config import (
    rate_limit_burst,
    rate_limit_enabled,
    rate_limit_requests_per_minute,
    trust_proxy,
)

logger = logging.getLogger(__name__)

PRUNE_EVERY_REQUESTS = 250
PRUNE_MIN_BUCKETS = 1_000
IDLE_BUCKET_SECONDS = 600.0


@dataclass
class RateLimitConfig:
    enabled: bool
    requests_per_minute: int
    burst: int
    trust_proxy: bool = False
    exempt_paths: frozenset[str] = field(default_factory=lambda: frozenset({"/api/health"}))

    @classmethod
    def from_env(cls) -> RateLimitConfig:
        return cls(
            enabled=rate_limit_enabled(),
            requests_per_minute=rate_limit_requests_per_minute(),
            burst=rate_limit_burst(),
            trust_proxy=trust_proxy(),
        )


class TokenBucket:
    def __init__(self, capacity: int, refill_per_second: float) -> None:
        self.capacity = capacity
        self.refill_per_second = refill_per_second
        self.tokens = float(capacity)
        self.last_refill = time.monotonic()
        self.last_seen = self.last_refill

    def _refill(self, now: float) -> None:
        elapsed = now - self.last_refill
        if elapsed <= 0:
            return
        self.tokens = min(self.capacity, self.tokens + elapsed * self.refill_per_second)
        self.last_refill = now

    def consume(self, now: float) -> bool:
        self._refill(now)
        self.last_seen = now
        if self.tokens >= 1.0:
            self.tokens -= 1.0
            return True
        return False

    def remaining(self, now: float) -> int:
        self._refill(now)
        return max(0, int(self.tokens))

    def retry_after_seconds(self, now: float) -> int:
        """Seconds until one token is available, rounded up so clients never retry early."""
        self._refill(now)
        if self.tokens >= 1.0:
            return 0
        if self.refill_per_second <= 0:
            return 60
        return max(1, int(math.ceil((1.0 - self.tokens) / self.refill_per_second)))


def _strip_port(value: str) -> str | None:
    text = value.strip().strip('"')
    if not text or text.lower() == "unknown":
        return None
    if text.startswith("["):
        end = text.find("]")
        return text[1:end] if end > 1 else None
    if text.count(":") == 1:
        host, port = text.rsplit(":", 1)
        if port.isdigit() and host:
            return host
    return text


def _forwarded_for(header_value: str) -> str | None:
    for entry in header_value.split(","):
        for pair in entry.split(";"):
            key, sep, value = pair.partition("=")
            if sep and key.strip().lower() == "for":
                parsed = _strip_port(value)
                if parsed:
                    return parsed
    return None


def client_key(trust_proxy_headers: bool) -> str:
    """Bucket key for the current request: the peer address, or the proxy-reported client."""
    if trust_proxy_headers:
        forwarded = request.headers.get("Forwarded", "")
        if forwarded and (parsed := _forwarded_for(forwarded)):
            return parsed
        x_forwarded_for = request.headers.get("X-Forwarded-For", "")
        first = next((p.strip() for p in x_forwarded_for.split(",") if p.strip()), "")
        if first and (parsed := _strip_port(first)):
            return parsed
        x_real_ip = request.headers.get("X-Real-IP", "")
        if x_real_ip and (parsed := _strip_port(x_real_ip)):
            return parsed
    return request.remote_addr or "unknown"


class RateLimiter:
    def __init__(self, config: RateLimitConfig) -> None:
        self._config = config
        self._lock = Lock()
        self._buckets: dict[str, TokenBucket] = {}
        self._requests_since_prune = 0

    def _bucket(self, key: str) -> TokenBucket:
        bucket = self._buckets.get(key)
        if bucket is None:
            bucket = TokenBucket(
                capacity=self._config.burst,
                refill_per_second=self._config.requests_per_minute / 60.0,
            )
            self._buckets[key] = bucket
        return bucket

    def _prune(self, now: float) -> None:
        self._requests_since_prune += 1
        if self._requests_since_prune < PRUNE_EVERY_REQUESTS:
            return
        self._requests_since_prune = 0
        if len(self._buckets) < PRUNE_MIN_BUCKETS:
            return
        cutoff = now - IDLE_BUCKET_SECONDS
        self._buckets = {k: b for k, b in self._buckets.items() if b.last_seen >= cutoff}

    def check(self) -> Response | None:
        if not self._config.enabled or request.method == "OPTIONS":
            return None
        if request.path in self._config.exempt_paths:
            return None

        key = client_key(self._config.trust_proxy)
        now = time.monotonic()
        with self._lock:
            self._prune(now)
            bucket = self._bucket(key)
            allowed = bucket.consume(now)
            remaining = bucket.remaining(now)
            retry_after = 0 if allowed else bucket.retry_after_seconds(now)

        g.rate_limit = {
            "limit": self._config.requests_per_minute,
            "remaining": remaining,
            "retry_after": retry_after,
        }
        if allowed:
            return None

        logger.warning("rate limit exceeded for %s on %s %s", key, request.method, request.path)
        response = jsonify({"error": "Rate limit exceeded"})
        response.status_code = 429
        return response


def install_rate_limiter(app: Flask, config: RateLimitConfig) -> None:
    limiter = RateLimiter(config)

    @app.before_request
    def _rate_limit() -> Response | None:
        return limiter.check()

    @app.after_request
    def _rate_limit_headers(response: Response) -> Response:
        meta = getattr(g, "rate_limit", None)
        if isinstance(meta, dict):
            response.headers["X-RateLimit-Limit"] = str(meta["limit"])
            response.headers["X-RateLimit-Remaining"] = str(meta["remaining"])
            if response.status_code == 429 and meta["retry_after"] > 0:
                response.headers["Retry-After"] = str(meta["retry_after"])
        return response
