"""Chain versus venue spread scanner."""
from chainspread.src.scanner.alerts import DiscordWebhookAlertChannel, LoggingAlertChannel
from chainspread.src.scanner.chain import ChainNetwork, ChainService
from chainspread.src.scanner.dispatch import DispatchSummary, NotificationDispatcher
from chainspread.src.scanner.evaluator import EvaluationPolicy, TokenEvaluator, slippage_pct
from chainspread.src.scanner.exceptions import (
    ChainLookupError,
    ConfigurationError,
    InsufficientLiquidityError,
    VenueFetchError,
)
from chainspread.src.scanner.exchange import VenueConnection
from chainspread.src.scanner.models import (
    CurrencyInfo,
    LiquidityClass,
    OrderBookSnapshot,
    OrderLevel,
    ScanError,
    ScanReport,
    TokenConfiguration,
    TokenEvaluation,
    TradeDirection,
)
from chainspread.src.scanner.notification_cache import CooldownCache, notification_key
from chainspread.src.scanner.order_book_feed import OrderBookFeed
from chainspread.src.scanner.order_book_store import OrderBookStore
from chainspread.src.scanner.ranking import rank_evaluations, select_displayable
from chainspread.src.scanner.scan_cycle import ScanCycle, ScanState
from chainspread.src.scanner.settings import ScannerConfig, ScannerSettings, load_config, parse_config
from chainspread.src.scanner.table import TablePresenter, render_table

__all__ = [
    "ChainLookupError",
    "ChainNetwork",
    "ChainService",
    "ConfigurationError",
    "CooldownCache",
    "CurrencyInfo",
    "DiscordWebhookAlertChannel",
    "DispatchSummary",
    "EvaluationPolicy",
    "InsufficientLiquidityError",
    "LiquidityClass",
    "LoggingAlertChannel",
    "NotificationDispatcher",
    "OrderBookFeed",
    "OrderBookSnapshot",
    "OrderBookStore",
    "OrderLevel",
    "ScanCycle",
    "ScanError",
    "ScanReport",
    "ScanState",
    "ScannerConfig",
    "ScannerSettings",
    "TablePresenter",
    "TokenConfiguration",
    "TokenEvaluation",
    "TokenEvaluator",
    "TradeDirection",
    "VenueConnection",
    "VenueFetchError",
    "load_config",
    "notification_key",
    "parse_config",
    "rank_evaluations",
    "render_table",
    "select_displayable",
    "slippage_pct",
]
