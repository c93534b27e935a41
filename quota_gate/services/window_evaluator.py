"""Sliding-window evaluation over request timestamp sequences.

All values are integer milliseconds. The window is ``[now - window, now]``:
an entry exactly at the window start is inside it. A subject is throttled
only when its in-window count is strictly greater than its limit, and every
sequence handed to an evaluator already contains the current request.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Sequence

from quota_gate.core.errors import ValidationAppError

# Smallest hint handed to a throttled caller.
MIN_RETRY_AFTER_MS = 1


@dataclass(frozen=True)
class WindowVerdict:
    """Outcome of evaluating one sequence.

    Attributes:
        allowed: Whether the request may proceed now.
        in_window: Entries inside the window (the short-circuit path reports
            the sequence length, which is an upper bound).
        retry_after_ms: Wait before a retry would be admitted (0 when allowed).
    """

    allowed: bool
    in_window: int
    retry_after_ms: int


def count_in_window(timestamps: Sequence[int], *, now_ms: int, window_ms: int) -> int:
    """Count entries with ``timestamp >= now - window``, in any order."""
    window_start = now_ms - window_ms
    return sum(1 for ts in timestamps if ts >= window_start)


def find_window_boundary(timestamps: Sequence[int], *, window_start_ms: int) -> int:
    """Index of the first entry older than the window, scanning newest-first.

    Returns ``len(timestamps)`` when every entry is inside the window, so the
    result is also the in-window count of a newest-first sequence.
    """
    for index, ts in enumerate(timestamps):
        if ts < window_start_ms:
            return index
    return len(timestamps)


def _throttled_delay(limit_th_newest_ms: int, *, now_ms: int, window_ms: int) -> int:
    return max(MIN_RETRY_AFTER_MS, limit_th_newest_ms + window_ms - now_ms)


def compute_retry_after(
    timestamps: Sequence[int],
    *,
    now_ms: int,
    window_ms: int,
    limit: int,
) -> int:
    """Milliseconds until a retry would be admitted, 0 to admit now.

    ``timestamps`` must be newest-first and include the current request.
    Once over quota, the caller waits until the ``limit``-th newest in-window
    entry leaves the window. The delay is 0 exactly when the request is
    admitted: an entry sitting on the window start is still inside it, so a
    throttled caller always waits at least ``MIN_RETRY_AFTER_MS``.

    Args:
        timestamps: Newest-first epoch milliseconds.
        now_ms: Reference instant.
        window_ms: Window size.
        limit: Maximum admitted requests per window (>= 1).

    Returns:
        int: Delay in milliseconds; positive whenever the count exceeds the limit.
    """
    if len(timestamps) <= limit:
        return 0

    in_window = find_window_boundary(timestamps, window_start_ms=now_ms - window_ms)
    if in_window <= limit:
        return 0

    return _throttled_delay(timestamps[limit - 1], now_ms=now_ms, window_ms=window_ms)


class WindowEvaluator(ABC):
    """Strategy deciding admission for one key's sequence."""

    name: str = ""

    @abstractmethod
    def evaluate(
        self,
        timestamps: Sequence[int],
        *,
        now_ms: int,
        window_ms: int,
        limit: int,
    ) -> WindowVerdict:
        raise NotImplementedError


class RetryDelayEvaluator(WindowEvaluator):
    """Newest-first evaluator.

    Compares the raw sequence length against the limit before doing any
    timestamp arithmetic, and scans for the window boundary only when the
    subject is already over its nominal quota.
    """

    name = "retry_delay"

    def evaluate(
        self,
        timestamps: Sequence[int],
        *,
        now_ms: int,
        window_ms: int,
        limit: int,
    ) -> WindowVerdict:
        if len(timestamps) <= limit:
            return WindowVerdict(allowed=True, in_window=len(timestamps), retry_after_ms=0)

        in_window = find_window_boundary(timestamps, window_start_ms=now_ms - window_ms)
        retry_after = compute_retry_after(
            timestamps, now_ms=now_ms, window_ms=window_ms, limit=limit
        )
        return WindowVerdict(
            allowed=in_window <= limit,
            in_window=in_window,
            retry_after_ms=retry_after,
        )


class CountEvaluator(WindowEvaluator):
    """Order-agnostic evaluator.

    Filters the whole sequence on every call, so it stays correct for
    backends that cannot keep insertion order. The retry hint is derived by
    sorting the in-window entries newest-first.
    """

    name = "count"

    def evaluate(
        self,
        timestamps: Sequence[int],
        *,
        now_ms: int,
        window_ms: int,
        limit: int,
    ) -> WindowVerdict:
        window_start = now_ms - window_ms
        recent = sorted((ts for ts in timestamps if ts >= window_start), reverse=True)
        if len(recent) <= limit:
            return WindowVerdict(allowed=True, in_window=len(recent), retry_after_ms=0)

        retry_after = _throttled_delay(recent[limit - 1], now_ms=now_ms, window_ms=window_ms)
        return WindowVerdict(allowed=False, in_window=len(recent), retry_after_ms=retry_after)


_EVALUATORS: dict[str, type[WindowEvaluator]] = {
    RetryDelayEvaluator.name: RetryDelayEvaluator,
    CountEvaluator.name: CountEvaluator,
}


def build_evaluator(name: str) -> WindowEvaluator:
    """Instantiate an evaluator strategy by name.

    Raises:
        ValidationAppError: If the name is unknown.
    """
    evaluator_cls = _EVALUATORS.get(name.lower())
    if evaluator_cls is None:
        raise ValidationAppError(
            code="unknown_evaluator",
            message=(
                f"Unknown rate limit evaluator: '{name}'. "
                f"Supported evaluators: {', '.join(sorted(_EVALUATORS))}"
            ),
        )
    return evaluator_cls()
