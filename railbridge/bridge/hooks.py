"""Facilitator hooks backed by the bridge coordinator."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable

from ..extensions.cross_chain.types import CROSS_CHAIN, CrossChainInfo
from ..schemas import AbortResult, VerifyContext
from .coordinator import BridgeCoordinator
from .errors import LiquidityError

logger = logging.getLogger(__name__)

ERR_INSUFFICIENT_BRIDGE_LIQUIDITY = "insufficient_bridge_liquidity"
ERR_INVALID_EXCHANGE_RATE = "invalid_exchange_rate"


def bridge_liquidity_hook(
    coordinator: BridgeCoordinator,
    enabled: bool = True,
) -> Callable[[VerifyContext], Awaitable[AbortResult | None]]:
    """Build a ``before_verify`` hook that refuses payments the bridge cannot carry.

    Runs only for payloads with a valid cross-chain extension. The payer is
    refused before any chain write when destination liquidity is short or the
    source-to-destination rate is not positive.

    Args:
        coordinator: Source of liquidity and rate answers.
        enabled: When False (bridging disabled) the hook never aborts.

    Returns:
        Async hook for ``FacilitatorHooks.before_verify``.
    """

    async def check_bridge_liquidity(context: VerifyContext) -> AbortResult | None:
        if not enabled or context.extensions is None:
            return None
        info = context.extensions.get(CROSS_CHAIN)
        if not isinstance(info, CrossChainInfo):
            return None

        requirements = context.requirements
        source_network = requirements.network

        try:
            has_liquidity = await coordinator.check_liquidity(
                source_network,
                info.destination_network,
                info.destination_asset,
                requirements.amount,
            )
        except LiquidityError as e:
            logger.warning("Liquidity check failed: %s", e)
            return AbortResult(reason=ERR_INSUFFICIENT_BRIDGE_LIQUIDITY)
        if not has_liquidity:
            logger.info(
                "Refusing %s -> %s payment of %s: insufficient bridge liquidity",
                source_network,
                info.destination_network,
                requirements.amount,
            )
            return AbortResult(reason=ERR_INSUFFICIENT_BRIDGE_LIQUIDITY)

        try:
            rate = await coordinator.get_exchange_rate(
                source_network,
                info.destination_network,
                requirements.asset,
                info.destination_asset,
            )
        except LiquidityError as e:
            logger.warning("Exchange rate lookup failed: %s", e)
            return AbortResult(reason=ERR_INVALID_EXCHANGE_RATE)
        if rate <= 0:
            return AbortResult(reason=ERR_INVALID_EXCHANGE_RATE)

        return None

    return check_bridge_liquidity
