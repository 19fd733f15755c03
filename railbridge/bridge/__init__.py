"""Bridge coordination, providers and the durable bridge queue."""

from .coordinator import BridgeCoordinator, is_same_asset
from .errors import BridgeError, BridgeTimeoutError, LiquidityError
from .hooks import (
    ERR_INSUFFICIENT_BRIDGE_LIQUIDITY,
    ERR_INVALID_EXCHANGE_RATE,
    bridge_liquidity_hook,
)
from .providers import BridgeProvider, HttpBridgeProvider, LiquidityPoolBridgeProvider
from .queue import BridgeQueue
from .store import BridgeJobStore, InMemoryBridgeJobStore, SqlBridgeJobStore
from .types import (
    BridgeConfig,
    BridgeJob,
    BridgeResult,
    BridgeStatus,
    LiquidityQuote,
    RetryPolicy,
    job_id,
)

__all__ = [
    # Coordinator
    "BridgeCoordinator",
    "is_same_asset",
    # Errors
    "BridgeError",
    "BridgeTimeoutError",
    "LiquidityError",
    # Hooks
    "ERR_INSUFFICIENT_BRIDGE_LIQUIDITY",
    "ERR_INVALID_EXCHANGE_RATE",
    "bridge_liquidity_hook",
    # Providers
    "BridgeProvider",
    "HttpBridgeProvider",
    "LiquidityPoolBridgeProvider",
    # Queue
    "BridgeQueue",
    "BridgeJobStore",
    "InMemoryBridgeJobStore",
    "SqlBridgeJobStore",
    # Types
    "BridgeConfig",
    "BridgeJob",
    "BridgeResult",
    "BridgeStatus",
    "LiquidityQuote",
    "RetryPolicy",
    "job_id",
]
