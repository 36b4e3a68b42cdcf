"""Export the base tokens a venue quotes in a given currency to CSV."""
from __future__ import annotations

import argparse
import logging
from typing import Any, Dict, List, Optional, Sequence

import ccxt
import pandas as pd

logger = logging.getLogger(__name__)

VENUE_DEFAULT = "lbank"
QUOTE_CURRENCY_DEFAULT = "USDT"
OUTPUT_PATH_DEFAULT = "lbank_usdt_currencies.csv"
LOG_LEVEL_DEFAULT = "INFO"


def quoted_base_tokens(markets: Dict[str, Dict[str, Any]], quote_currency: str) -> List[str]:
    """Sorted unique spot base tokens of ``markets`` quoted in ``quote_currency``."""

    quote_currency = quote_currency.upper()
    tokens = set()
    for metadata in markets.values():
        if not isinstance(metadata, dict):
            continue
        if metadata.get("active") is False or metadata.get("spot") is False:
            continue
        if str(metadata.get("quote") or "").upper() != quote_currency:
            continue
        base = metadata.get("base")
        if base:
            tokens.add(str(base).upper())
    return sorted(tokens)


def export_pairs(exchange: Any, quote_currency: str, output_path: str) -> pd.DataFrame:
    markets = exchange.load_markets()
    frame = pd.DataFrame({"tokenName": quoted_base_tokens(markets, quote_currency)})
    frame.to_csv(output_path, index=False)
    logger.info(f"Wrote {len(frame)} {quote_currency.upper()} pair(s) to {output_path}")
    return frame


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Export venue pairs quoted in a currency to CSV.")
    parser.add_argument("--venue", default=VENUE_DEFAULT, help="ccxt exchange id to query.")
    parser.add_argument("--quote", default=QUOTE_CURRENCY_DEFAULT, help="Quote currency to keep.")
    parser.add_argument("--output", default=OUTPUT_PATH_DEFAULT, help="Destination CSV path.")
    parser.add_argument(
        "--log-level",
        default=LOG_LEVEL_DEFAULT,
        help="Configure the logging level (e.g. DEBUG, INFO).",
    )
    return parser


def main(argv: Optional[Sequence[str]] = None) -> None:
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=getattr(logging, args.log_level.upper(), logging.INFO))
    exchange_class = getattr(ccxt, args.venue.lower(), None)
    if exchange_class is None:
        raise SystemExit(f"ccxt does not support venue {args.venue!r}")
    export_pairs(exchange_class({"enableRateLimit": True}), args.quote, args.output)


if __name__ == "__main__":  # pragma: no cover - script entry point
    main()
