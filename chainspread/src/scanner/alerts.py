"""Outbound alert channels for profit and liquidity notifications."""
from __future__ import annotations

import logging
import math
from typing import Any, Dict, Optional

import requests

from chainspread.src.scanner.models import TokenEvaluation

logger = logging.getLogger(__name__)


def _fmt(value: Optional[float], spec: str = ",.6f") -> str:
    if value is None or (isinstance(value, float) and not math.isfinite(value)):
        return "n/a"
    return format(value, spec)


def format_profit_alert(evaluation: TokenEvaluation, threshold: float) -> str:
    lines = [f"**{evaluation.symbol}** on **{evaluation.venue}** ({evaluation.blockchain})"]
    if evaluation.is_forward_candidate:
        lines.append(
            f"Forward: buy on-chain @ {_fmt(evaluation.chain_price)}, sell on {evaluation.venue} "
            f"@ {_fmt(evaluation.best_bid())} -> **{_fmt(evaluation.forward_profit, '.2f')}%**"
        )
    if evaluation.is_reverse_candidate:
        lines.append(
            f"Reverse: buy on {evaluation.venue} @ {_fmt(evaluation.best_ask())}, sell on-chain "
            f"@ {_fmt(evaluation.chain_price)} -> **{_fmt(evaluation.reverse_profit, '.2f')}%**"
        )
    lines.append(f"Threshold: {threshold:.2f}% | Tax: {evaluation.tax:.2f}% | Liquidity: {_fmt(evaluation.chain_liquidity, ',.2f')}")
    return "\n".join(lines)


def format_liquidity_alert(evaluation: TokenEvaluation) -> str:
    return (
        f":warning: Low on-chain liquidity for **{evaluation.symbol}** ({evaluation.blockchain}): "
        f"{_fmt(evaluation.chain_liquidity, ',.2f')} (venue {evaluation.venue})"
    )


class LoggingAlertChannel:
    """Writes alerts to the log; used when no webhook is configured."""

    def send_profit_alert(self, evaluation: TokenEvaluation, threshold: float) -> None:
        logger.info("[ALERT] " + format_profit_alert(evaluation, threshold).replace("\n", " | "))

    def send_liquidity_alert(self, evaluation: TokenEvaluation) -> None:
        logger.warning("[ALERT] " + format_liquidity_alert(evaluation))


class DiscordWebhookAlertChannel:
    """Posts alerts to a Discord channel through an incoming webhook."""

    def __init__(
        self,
        webhook_url: str,
        *,
        username: str = "chainspread",
        timeout: float = 5.0,
        session: Optional[Any] = None,
    ) -> None:
        if not webhook_url:
            raise ValueError("webhook_url is required")
        self.webhook_url = webhook_url
        self.username = username
        self.timeout = timeout
        self._session = session or requests.Session()

    def _post(self, content: str) -> None:
        payload: Dict[str, Any] = {"username": self.username, "content": content[:2000]}
        try:
            response = self._session.post(self.webhook_url, json=payload, timeout=self.timeout)
        except requests.RequestException as exc:
            logger.error(f"[Discord] Request exception: {exc}")
            raise
        if response.status_code >= 400:
            logger.error(f"[Discord] Failed: {response.status_code} - {response.text}")
            raise requests.HTTPError(f"Discord webhook returned {response.status_code}", response=response)

    def send_profit_alert(self, evaluation: TokenEvaluation, threshold: float) -> None:
        self._post(format_profit_alert(evaluation, threshold))

    def send_liquidity_alert(self, evaluation: TokenEvaluation) -> None:
        self._post(format_liquidity_alert(evaluation))

