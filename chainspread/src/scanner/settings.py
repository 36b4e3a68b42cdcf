"""YAML configuration loading for the scanner."""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Tuple, Union

import yaml

from chainspread.src.scanner.chain import ChainNetwork
from chainspread.src.scanner.evaluator import EvaluationPolicy
from chainspread.src.scanner.exceptions import ConfigurationError
from chainspread.src.scanner.models import TokenConfiguration

logger = logging.getLogger(__name__)

WEBHOOK_ENV_VAR = "DISCORD_WEBHOOK_URL"
CHAIN_FIELDS = ("rpc_url", "router", "factory", "wrapped_native", "stable")


@dataclass(frozen=True)
class ScannerSettings:
    scan_interval: float = 10.0
    profit_threshold: float = 5.0
    forward_ratio_bound: float = 1.5
    reverse_ratio_bound: float = 1.5
    movable_notional: float = 500.0
    max_slippage_pct: float = 2.0
    low_liquidity_threshold: float = 50.0
    profit_cooldown: float = 3600.0
    liquidity_cooldown: float = 21600.0
    debug: bool = False
    max_rows: Optional[int] = 20
    order_book_depth: int = 20
    order_book_max_age: Optional[float] = None
    quote_currency: str = "USDT"

    def evaluation_policy(self) -> EvaluationPolicy:
        return EvaluationPolicy(
            profit_threshold=self.profit_threshold,
            forward_ratio_bound=self.forward_ratio_bound,
            reverse_ratio_bound=self.reverse_ratio_bound,
            movable_notional=self.movable_notional,
            max_slippage_pct=self.max_slippage_pct,
            low_liquidity_threshold=self.low_liquidity_threshold,
        )


@dataclass(frozen=True)
class VenueSettings:
    name: str
    streaming: bool = True
    options: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class AlertSettings:
    enabled: bool = True
    discord_webhook_url: Optional[str] = None


@dataclass(frozen=True)
class ScannerConfig:
    """Everything needed to assemble a running scanner."""

    scanner: ScannerSettings
    chains: Dict[str, ChainNetwork]
    venues: Dict[str, VenueSettings]
    tokens: Tuple[TokenConfiguration, ...]
    alerts: AlertSettings = field(default_factory=AlertSettings)

    def with_overrides(self, **overrides: Any) -> "ScannerConfig":
        """Return a copy with the non-``None`` scanner fields in ``overrides`` replaced."""

        changes = {key: value for key, value in overrides.items() if value is not None}
        if not changes:
            return self
        return replace(self, scanner=replace(self.scanner, **changes))

    @property
    def streaming_venues(self) -> Tuple[str, ...]:
        return tuple(name for name, venue in self.venues.items() if venue.streaming)


def _section(data: Mapping[str, Any], name: str) -> Mapping[str, Any]:
    section = data.get(name) or {}
    if not isinstance(section, Mapping):
        raise ConfigurationError(f"'{name}' must be a mapping")
    return section


def _scanner_settings(section: Mapping[str, Any]) -> ScannerSettings:
    known = set(ScannerSettings.__dataclass_fields__)
    unknown = sorted(set(section) - known)
    if unknown:
        logger.warning(f"Ignoring unknown scanner option(s): {', '.join(unknown)}")
    values = {key: value for key, value in section.items() if key in known}
    if "quote_currency" in values:
        values["quote_currency"] = str(values["quote_currency"]).upper()
    try:
        settings = ScannerSettings(**values)
    except TypeError as exc:
        raise ConfigurationError(f"Invalid scanner section: {exc}") from exc
    if settings.scan_interval <= 0:
        raise ConfigurationError("scanner.scan_interval must be positive")
    if settings.profit_cooldown < 0 or settings.liquidity_cooldown < 0:
        raise ConfigurationError("scanner cooldowns must be non-negative")
    return settings


def _chains(section: Mapping[str, Any]) -> Dict[str, ChainNetwork]:
    chains: Dict[str, ChainNetwork] = {}
    for name, raw in section.items():
        if not isinstance(raw, Mapping):
            raise ConfigurationError(f"chains.{name} must be a mapping")
        missing = [key for key in CHAIN_FIELDS if not raw.get(key)]
        if missing:
            raise ConfigurationError(f"chains.{name} is missing {', '.join(missing)}")
        chains[str(name)] = ChainNetwork(
            name=str(name),
            request_timeout=float(raw.get("request_timeout", 10.0)),
            **{key: str(raw[key]) for key in CHAIN_FIELDS},
        )
    return chains


def _venues(section: Mapping[str, Any]) -> Dict[str, VenueSettings]:
    venues: Dict[str, VenueSettings] = {}
    for name, raw in section.items():
        raw = raw or {}
        if not isinstance(raw, Mapping):
            raise ConfigurationError(f"venues.{name} must be a mapping")
        venue_name = str(name).lower()
        venues[venue_name] = VenueSettings(
            name=venue_name,
            streaming=bool(raw.get("streaming", True)),
            options=dict(raw.get("options") or {}),
        )
    return venues


def _token(raw: Any, index: int) -> TokenConfiguration:
    if not isinstance(raw, Mapping):
        raise ConfigurationError(f"tokens[{index}] must be a mapping")
    symbol = raw.get("symbol")
    blockchain = raw.get("blockchain")
    if not symbol or not blockchain:
        raise ConfigurationError(f"tokens[{index}] needs a symbol and a blockchain")
    try:
        return TokenConfiguration(
            symbol=str(symbol).upper(),
            blockchain=str(blockchain),
            tax=float(raw.get("tax") or 0.0),
            venues=frozenset(str(venue).lower() for venue in raw.get("venues") or ()),
            disabled_reverse_venues=frozenset(
                str(venue).lower() for venue in raw.get("disabled_reverse_venues") or ()
            ),
            address=raw.get("address"),
        )
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(f"tokens[{index}] ({symbol}): {exc}") from exc


def parse_config(data: Mapping[str, Any], *, environ: Optional[Mapping[str, str]] = None) -> ScannerConfig:
    """Build a :class:`ScannerConfig` from already-parsed YAML ``data``."""

    if not isinstance(data, Mapping):
        raise ConfigurationError("Configuration root must be a mapping")
    environ = os.environ if environ is None else environ

    scanner = _scanner_settings(_section(data, "scanner"))
    chains = _chains(_section(data, "chains"))
    venues = _venues(_section(data, "venues"))

    raw_tokens = data.get("tokens") or []
    if not isinstance(raw_tokens, list) or not raw_tokens:
        raise ConfigurationError("At least one token must be configured")
    tokens = tuple(_token(raw, index) for index, raw in enumerate(raw_tokens))

    for token in tokens:
        if token.blockchain not in chains:
            raise ConfigurationError(f"Token {token.symbol} uses unknown chain {token.blockchain}")
        for venue in token.venues:
            if venue not in venues:
                raise ConfigurationError(f"Token {token.symbol} lists unknown venue {venue}")

    alerts_section = _section(data, "alerts")
    alerts = AlertSettings(
        enabled=bool(alerts_section.get("enabled", True)),
        discord_webhook_url=alerts_section.get("discord_webhook_url") or environ.get(WEBHOOK_ENV_VAR) or None,
    )
    return ScannerConfig(scanner=scanner, chains=chains, venues=venues, tokens=tokens, alerts=alerts)


def load_config(path: Union[str, Path], *, environ: Optional[Mapping[str, str]] = None) -> ScannerConfig:
    config_file = Path(path).expanduser()
    try:
        data = yaml.safe_load(config_file.read_text()) or {}
    except FileNotFoundError as exc:
        raise ConfigurationError(f"Config file {config_file} does not exist") from exc
    except yaml.YAMLError as exc:
        raise ConfigurationError(f"Unable to parse {config_file}: {exc}") from exc
    logger.debug(f"Loaded configuration from {config_file}")
    return parse_config(data, environ=environ)
