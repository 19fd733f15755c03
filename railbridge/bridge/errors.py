"""Bridge errors."""


class BridgeError(Exception):
    """A bridge step failed after source settlement."""


class BridgeTimeoutError(BridgeError):
    """A bridge step did not finish within its polling bound."""


class LiquidityError(Exception):
    """Liquidity or exchange rate could not be determined."""
