"""Command line entry point for the chain/venue spread scanner."""
from __future__ import annotations

import argparse
import asyncio
import logging
from dataclasses import replace
from typing import Any, Callable, Dict, Optional, Sequence, Tuple

from chainspread.src.scanner import (
    ChainService,
    ConfigurationError,
    DiscordWebhookAlertChannel,
    LoggingAlertChannel,
    NotificationDispatcher,
    OrderBookFeed,
    OrderBookStore,
    ScanCycle,
    ScannerConfig,
    TablePresenter,
    TokenEvaluator,
    VenueConnection,
    load_config,
)

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Runtime defaults
# ---------------------------------------------------------------------------
# Command-line arguments take precedence over the YAML configuration, which in
# turn takes precedence over the built-in scanner defaults.
CONFIG_PATH_DEFAULT = "chainspread/config/scanner.yaml"
LOG_LEVEL_DEFAULT = "INFO"
WEBSOCKET_TIMEOUT_DEFAULT = 30.0
RECONNECT_DELAY_DEFAULT = 5.0


def build_alert_channel(config: ScannerConfig) -> Optional[Any]:
    """Return the configured alert channel, or ``None`` when alerting is disabled."""

    if not config.alerts.enabled:
        logger.info("Alerts disabled; opportunities will only be printed.")
        return None
    if config.alerts.discord_webhook_url:
        return DiscordWebhookAlertChannel(config.alerts.discord_webhook_url)
    logger.warning("No Discord webhook configured; alerts will be written to the log.")
    return LoggingAlertChannel()


def build_scanner(
    config: ScannerConfig,
    *,
    venue_factory: Callable[..., Any] = VenueConnection,
    chain_factory: Callable[..., Any] = ChainService,
    writer: Callable[[str], None] = print,
    websocket_timeout: Optional[float] = WEBSOCKET_TIMEOUT_DEFAULT,
    reconnect_delay: float = RECONNECT_DELAY_DEFAULT,
) -> Tuple[ScanCycle, OrderBookFeed, Dict[str, Any]]:
    """Wire the scan cycle, order book feed and venue connections for ``config``."""

    settings = config.scanner
    venues: Dict[str, Any] = {}
    for name, venue in config.venues.items():
        venues[name] = venue_factory(
            name,
            quote_currency=settings.quote_currency,
            enable_websocket=venue.streaming,
            options=venue.options,
        )

    store = OrderBookStore()
    streaming = set(config.streaming_venues)
    subscriptions: Dict[str, list] = {name: [] for name in streaming}
    for token in config.tokens:
        for venue in sorted(token.venues & streaming):
            subscriptions[venue].append(token.symbol)

    feed = OrderBookFeed(
        venues,
        store,
        subscriptions,
        depth=settings.order_book_depth,
        websocket_timeout=websocket_timeout,
        reconnect_delay=reconnect_delay,
    )

    channel = build_alert_channel(config)
    dispatcher = None
    if channel is not None:
        dispatcher = NotificationDispatcher(
            channel,
            profit_threshold=settings.profit_threshold,
            profit_cooldown=settings.profit_cooldown,
            liquidity_cooldown=settings.liquidity_cooldown,
        )

    cycle = ScanCycle(
        config.tokens,
        chain_factory(config.chains, config.tokens),
        venues,
        store,
        TokenEvaluator(settings.evaluation_policy()),
        dispatcher=dispatcher,
        presenter=TablePresenter(debug=settings.debug, max_rows=settings.max_rows, writer=writer),
        interval=settings.scan_interval,
        order_book_max_age=settings.order_book_max_age,
        order_book_depth=settings.order_book_depth,
        streaming_venues=streaming,
        debug=settings.debug,
    )
    return cycle, feed, venues


def apply_cli_overrides(config: ScannerConfig, args: argparse.Namespace) -> ScannerConfig:
    config = config.with_overrides(
        scan_interval=args.interval,
        profit_threshold=args.profit_threshold,
        debug=args.debug,
    )
    if args.alerts is not None:
        config = replace(config, alerts=replace(config.alerts, enabled=args.alerts))
    return config


async def run_from_args(args: argparse.Namespace) -> None:
    try:
        config = apply_cli_overrides(load_config(args.config), args)
        cycle, feed, venues = build_scanner(config)
    except (ConfigurationError, ValueError) as exc:
        raise SystemExit(f"Configuration error: {exc}") from exc

    stop_event = asyncio.Event()
    feed_task = asyncio.create_task(feed.run(stop_event), name="order-book-feed")
    try:
        if args.once:
            await cycle.run_once()
        else:
            await cycle.run_forever(stop_event)
    finally:
        stop_event.set()
        feed_task.cancel()
        await asyncio.gather(feed_task, return_exceptions=True)
        for venue in venues.values():
            await venue.aclose()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Scan on-chain token prices against centralized venue order books."
    )
    parser.add_argument(
        "--config",
        default=CONFIG_PATH_DEFAULT,
        help="Path to the scanner YAML configuration.",
    )
    parser.add_argument(
        "--interval",
        type=float,
        default=None,
        help="Seconds to wait between scan ticks (overrides scanner.scan_interval).",
    )
    parser.add_argument(
        "--profit-threshold",
        type=float,
        default=None,
        help="Minimum profit percentage for an opportunity (overrides scanner.profit_threshold).",
    )
    parser.add_argument(
        "--debug",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Show every evaluation in the table instead of only the top profitable ones.",
    )
    parser.add_argument(
        "--alerts",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Enable or disable alert dispatch (overrides alerts.enabled).",
    )
    parser.add_argument(
        "--once",
        action="store_true",
        help="Run a single scan tick and exit.",
    )
    parser.add_argument(
        "--log-level",
        default=LOG_LEVEL_DEFAULT,
        help="Configure the logging level (e.g. DEBUG, INFO).",
    )
    return parser


def main(argv: Optional[Sequence[str]] = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    default_level = getattr(logging, LOG_LEVEL_DEFAULT.upper(), logging.INFO)
    logging.basicConfig(level=getattr(logging, args.log_level.upper(), default_level))
    try:
        asyncio.run(run_from_args(args))
    except KeyboardInterrupt:  # pragma: no cover - outer signal handler
        logger.info("Interrupted by user. Goodbye!")


if __name__ == "__main__":  # pragma: no cover - script entry point
    main()
