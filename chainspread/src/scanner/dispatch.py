"""Deduplicated dispatch of profit and liquidity alerts."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Iterable, Optional

from chainspread.src.scanner.notification_cache import CooldownCache, notification_key
from chainspread.src.scanner.models import TokenEvaluation

logger = logging.getLogger(__name__)


@dataclass
class DispatchSummary:
    forward_alerts: int = 0
    reverse_alerts: int = 0
    liquidity_alerts: int = 0
    suppressed: int = 0
    failures: int = 0

    @property
    def total(self) -> int:
        return self.forward_alerts + self.reverse_alerts + self.liquidity_alerts


class NotificationDispatcher:
    """Sends at most one alert of each kind per (symbol, venue) per cooldown.

    Forward profit, reverse profit and low-liquidity warnings each use their
    own :class:`CooldownCache`, so suppressing one kind never affects the
    others. :meth:`dispatch` walks a tick's batch sequentially and is the only
    code that mutates the caches.
    """

    def __init__(
        self,
        channel: Any,
        *,
        profit_threshold: float,
        profit_cooldown: float,
        liquidity_cooldown: float,
        forward_cache: Optional[CooldownCache] = None,
        reverse_cache: Optional[CooldownCache] = None,
        liquidity_cache: Optional[CooldownCache] = None,
    ) -> None:
        self.channel = channel
        self.profit_threshold = profit_threshold
        self.forward_cache = forward_cache if forward_cache is not None else CooldownCache(profit_cooldown)
        self.reverse_cache = reverse_cache if reverse_cache is not None else CooldownCache(profit_cooldown)
        self.liquidity_cache = (
            liquidity_cache if liquidity_cache is not None else CooldownCache(liquidity_cooldown)
        )

    def _send(self, method: str, evaluation: TokenEvaluation, *args: Any) -> bool:
        try:
            getattr(self.channel, method)(evaluation, *args)
        except Exception as exc:
            logger.error(f"Alert delivery failed for {evaluation.symbol} on {evaluation.venue} ({method}): {exc}")
            return False
        return True

    def _maybe_send_profit(
        self,
        evaluation: TokenEvaluation,
        cache: CooldownCache,
        summary: DispatchSummary,
        direction: str,
    ) -> None:
        key = notification_key(evaluation.symbol, evaluation.venue)
        if cache.contains(key):
            summary.suppressed += 1
            return
        cache.add(key, evaluation)
        if not self._send("send_profit_alert", evaluation, self.profit_threshold):
            summary.failures += 1
            return
        logger.info(f"Sent {direction} profit alert for {evaluation.symbol} on {evaluation.venue}")
        if direction == "forward":
            summary.forward_alerts += 1
        else:
            summary.reverse_alerts += 1

    def dispatch(self, evaluations: Iterable[TokenEvaluation]) -> DispatchSummary:
        summary = DispatchSummary()
        for evaluation in evaluations:
            if evaluation is None:
                continue
            if not evaluation.is_low_liquidity:
                if evaluation.is_forward_candidate:
                    self._maybe_send_profit(evaluation, self.forward_cache, summary, "forward")
                if evaluation.is_reverse_candidate:
                    self._maybe_send_profit(evaluation, self.reverse_cache, summary, "reverse")

            if evaluation.is_low_liquidity:
                key = notification_key(evaluation.symbol, evaluation.venue)
                if self.liquidity_cache.contains(key):
                    summary.suppressed += 1
                    continue
                self.liquidity_cache.add(key, evaluation)
                if self._send("send_liquidity_alert", evaluation):
                    summary.liquidity_alerts += 1
                    logger.info(f"Sent liquidity warning for {evaluation.symbol} on {evaluation.venue}")
                else:
                    summary.failures += 1
        return summary

    def sweep(self) -> int:
        return self.forward_cache.sweep() + self.reverse_cache.sweep() + self.liquidity_cache.sweep()
