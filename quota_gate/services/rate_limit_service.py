"""Rate limit decision service.

Composes the quota store, the timestamp log and a window evaluator into one
decision per request:

1. Resolve the configured limit; none means no permission (Denied).
2. Record the request timestamp. Every attempt is recorded, admitted or not.
3. Optionally prune stale entries (storage hygiene only).
4. Read the sequence and let the evaluator decide Admit or Throttled.

Storage errors propagate to the caller untouched. A failed append aborts the
decision instead of evaluating an incomplete history.
"""

from __future__ import annotations

import logging
import math
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable

from quota_gate.adapters.quota.base import AbstractQuotaStore
from quota_gate.adapters.timestamp_log.base import AbstractTimestampLog
from quota_gate.services.window_evaluator import WindowEvaluator
from quota_gate.utils.endpoint import build_key, hash_identity, normalize_endpoint

logger = logging.getLogger(__name__)

NO_PERMISSION = "no_permission"


class DecisionOutcome(str, Enum):
    ADMIT = "admit"
    THROTTLED = "throttled"
    DENIED = "denied"


@dataclass(frozen=True)
class RateLimitDecision:
    """Result of one rate limit decision.

    Attributes:
        outcome: Admit, Throttled or Denied.
        limit: Configured limit (None when denied).
        in_window: Requests counted in the current window, including this one.
        retry_after_ms: Wait before retrying, set only when throttled.
        reason: Machine-readable reason, set only when denied.
    """

    outcome: DecisionOutcome
    limit: int | None = None
    in_window: int = 0
    retry_after_ms: int | None = None
    reason: str | None = None

    @classmethod
    def admit(cls, *, limit: int, in_window: int) -> "RateLimitDecision":
        return cls(outcome=DecisionOutcome.ADMIT, limit=limit, in_window=in_window)

    @classmethod
    def throttled(cls, *, limit: int, in_window: int, retry_after_ms: int) -> "RateLimitDecision":
        return cls(
            outcome=DecisionOutcome.THROTTLED,
            limit=limit,
            in_window=in_window,
            retry_after_ms=retry_after_ms,
        )

    @classmethod
    def denied(cls, *, reason: str) -> "RateLimitDecision":
        return cls(outcome=DecisionOutcome.DENIED, reason=reason)

    @property
    def allowed(self) -> bool:
        return self.outcome is DecisionOutcome.ADMIT

    @property
    def remaining(self) -> int:
        if self.limit is None:
            return 0
        return max(0, self.limit - self.in_window)

    @property
    def retry_after_seconds(self) -> int | None:
        """Retry hint rounded up to whole seconds (HTTP ``Retry-After``)."""
        if self.retry_after_ms is None:
            return None
        return int(math.ceil(self.retry_after_ms / 1000))


class RateLimitDecisionService:
    """Sliding-window rate limiter over an injected log and quota store.

    The evaluator strategy is chosen at construction time; the service has a
    single code path for all strategies.
    """

    def __init__(
        self,
        *,
        log: AbstractTimestampLog,
        quotas: AbstractQuotaStore,
        evaluator: WindowEvaluator,
        window_seconds: int = 60,
        namespace: str = "user-request",
        cleanup: bool = True,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the decision service.

        Args:
            log: Newest-first timestamp log.
            quotas: Configured limit lookup.
            evaluator: Window evaluation strategy.
            window_seconds: Trailing window size shared by all keys.
            namespace: Key prefix for request logs.
            cleanup: Prune stale entries before each evaluation.
            clock: Time source returning UNIX time in seconds.

        Raises:
            ValueError: If window_seconds is invalid.
        """
        if window_seconds < 1:
            raise ValueError("window_seconds must be >= 1")

        self._log = log
        self._quotas = quotas
        self._evaluator = evaluator
        self._window_ms = window_seconds * 1000
        self._namespace = namespace
        self._cleanup = cleanup
        self._clock = clock

    @property
    def window_seconds(self) -> int:
        return self._window_ms // 1000

    @property
    def evaluator_name(self) -> str:
        return self._evaluator.name

    def _now_ms(self) -> int:
        return int(self._clock() * 1000)

    async def decide(
        self,
        endpoint: str,
        identity: str,
        *,
        now_ms: int | None = None,
    ) -> RateLimitDecision:
        """Decide whether a request from ``identity`` to ``endpoint`` may proceed.

        Args:
            endpoint: Raw request path (normalized here).
            identity: Opaque caller identity (bearer token).
            now_ms: Request instant in epoch milliseconds; defaults to the clock.

        Returns:
            RateLimitDecision: Admit, Throttled(retry_after_ms) or Denied(reason).

        Raises:
            ValueError: If identity is empty.
            StorageAppError: If the log or quota store fails.
        """
        if not identity:
            raise ValueError("identity must be a non-empty string")

        endpoint = normalize_endpoint(endpoint)
        identity_hash = hash_identity(identity)

        limit = await self._quotas.get(endpoint, identity)
        if limit is None:
            logger.info(
                "rate_limit.denied",
                extra={
                    "endpoint": endpoint,
                    "identity_hash": identity_hash,
                    "reason": NO_PERMISSION,
                },
            )
            return RateLimitDecision.denied(reason=NO_PERMISSION)

        now = self._now_ms() if now_ms is None else now_ms
        key = build_key(self._namespace, endpoint, identity)

        await self._log.append(key, now)
        if self._cleanup:
            await self._log.prune(key, now - self._window_ms)
        timestamps = await self._log.read_all(key)

        verdict = self._evaluator.evaluate(
            timestamps, now_ms=now, window_ms=self._window_ms, limit=limit
        )

        if verdict.allowed:
            logger.info(
                "rate_limit.allowed",
                extra={
                    "endpoint": endpoint,
                    "identity_hash": identity_hash,
                    "limit": limit,
                    "in_window": verdict.in_window,
                    "window_s": self.window_seconds,
                },
            )
            return RateLimitDecision.admit(limit=limit, in_window=verdict.in_window)

        logger.warning(
            "rate_limit.exceeded",
            extra={
                "endpoint": endpoint,
                "identity_hash": identity_hash,
                "limit": limit,
                "in_window": verdict.in_window,
                "window_s": self.window_seconds,
                "retry_after_ms": verdict.retry_after_ms,
            },
        )
        return RateLimitDecision.throttled(
            limit=limit,
            in_window=verdict.in_window,
            retry_after_ms=verdict.retry_after_ms,
        )
