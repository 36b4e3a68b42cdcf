"""Custom exceptions for the chain/venue spread scanner."""


class ChainLookupError(LookupError):
    """Raised when an on-chain price or liquidity lookup fails."""


class VenueFetchError(RuntimeError):
    """Raised when a venue REST or streaming call fails."""


class InsufficientLiquidityError(RuntimeError):
    """Raised when the order book does not provide enough depth for a notional."""


class ConfigurationError(ValueError):
    """Raised when the scanner cannot be started from the supplied configuration."""
