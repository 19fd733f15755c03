"""Bridge coordination: liquidity and rate gating, then bridge execution."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Mapping

from ..mechanisms.evm.constants import TX_STATUS_SUCCESS
from ..mechanisms.evm.errors import ChainError
from ..mechanisms.evm.types import FacilitatorEvmSigner
from .errors import BridgeError, BridgeTimeoutError, LiquidityError
from .providers import BridgeProvider
from .types import BridgeConfig, BridgeResult, LiquidityQuote, job_id

logger = logging.getLogger(__name__)


def is_same_asset(asset_a: str, asset_b: str) -> bool:
    return asset_a.lower() == asset_b.lower()


class BridgeCoordinator:
    """Checks bridge capacity before payment and moves funds after it.

    Args:
        provider: Backend holding destination liquidity.
        chain_clients: Chain adapter per network, used to watch source transactions.
        config: Polling bounds.
    """

    def __init__(
        self,
        provider: BridgeProvider,
        chain_clients: Mapping[str, FacilitatorEvmSigner],
        config: BridgeConfig | None = None,
    ) -> None:
        self._provider = provider
        self._chain_clients = dict(chain_clients)
        self._config = config or BridgeConfig()

    @property
    def provider(self) -> BridgeProvider:
        return self._provider

    async def quote_liquidity(
        self, source_chain: str, dest_chain: str, asset: str, amount: str | int
    ) -> LiquidityQuote:
        """Destination liquidity for ``asset`` against ``amount``.

        Raises:
            LiquidityError: If the provider cannot report liquidity.
        """
        try:
            available = await self._provider.get_available_liquidity(dest_chain, asset)
        except BridgeError as e:
            raise LiquidityError(f"Liquidity check failed on {dest_chain}: {e}") from e

        return LiquidityQuote(
            has_liquidity=available >= int(amount),
            available_amount=available,
            source_chain=source_chain,
            dest_chain=dest_chain,
            asset=asset,
        )

    async def check_liquidity(
        self, source_chain: str, dest_chain: str, asset: str, amount: str | int
    ) -> bool:
        """Whether the destination can release ``amount`` of ``asset``."""
        quote = await self.quote_liquidity(source_chain, dest_chain, asset, amount)
        logger.debug(
            "Liquidity %s -> %s for %s: available=%d required=%s",
            source_chain,
            dest_chain,
            asset,
            quote.available_amount,
            amount,
        )
        return quote.has_liquidity

    async def get_exchange_rate(
        self, source_chain: str, dest_chain: str, asset_a: str, asset_b: str
    ) -> float:
        """Rate from ``asset_a`` on source to ``asset_b`` on destination.

        Same token identifier (any case) is exactly 1.0.

        Raises:
            LiquidityError: If the provider cannot report a rate.
        """
        if is_same_asset(asset_a, asset_b):
            return 1.0
        try:
            return await self._provider.get_rate(source_chain, dest_chain, asset_a, asset_b)
        except BridgeError as e:
            raise LiquidityError(f"Rate lookup failed: {e}") from e

    async def bridge(
        self,
        source_chain: str,
        source_tx: str,
        dest_chain: str,
        asset: str,
        amount: str | int,
        recipient: str,
        *,
        bridge_tx: str | None = None,
        on_initiated: Callable[[str], Awaitable[None]] | None = None,
    ) -> BridgeResult:
        """Move a settled payment to the destination chain.

        Waits for the source transaction, initiates the transfer, then polls
        until the destination release is observed.

        Args:
            bridge_tx: Transfer already initiated for this payment; skips
                confirmation and initiation and only waits for completion.
            on_initiated: Awaited with the bridge tx id right after initiation.

        Raises:
            BridgeError: A step failed.
            BridgeTimeoutError: A polling bound was exceeded.
        """
        logger.info(
            "Bridging %s %s from %s (tx %s) to %s for %s",
            amount,
            asset,
            source_chain,
            source_tx,
            dest_chain,
            recipient,
        )
        if bridge_tx is None:
            await self.wait_for_source_confirmation(source_chain, source_tx)
            bridge_tx = await self.initiate_bridge(
                source_chain,
                dest_chain,
                asset,
                amount,
                recipient,
                idempotency_key=job_id(source_chain, source_tx),
            )
            if on_initiated is not None:
                await on_initiated(bridge_tx)
        else:
            logger.info("Resuming bridge %s for source tx %s", bridge_tx, source_tx)
        destination_tx = await self.wait_for_bridge_completion(source_chain, dest_chain, bridge_tx)
        return BridgeResult(
            bridge_tx=bridge_tx,
            destination_tx=destination_tx,
            source_chain=source_chain,
            dest_chain=dest_chain,
        )

    async def wait_for_source_confirmation(self, chain: str, tx_hash: str) -> None:
        client = self._chain_clients.get(chain)
        if client is None:
            raise BridgeError(f"No chain client configured for {chain}")

        for attempt in range(self._config.source_confirmation_attempts):
            if attempt > 0:
                await asyncio.sleep(self._config.source_confirmation_interval)
            try:
                receipt = await client.get_transaction_receipt(tx_hash)
            except ChainError as e:
                raise BridgeError(f"Receipt lookup for {tx_hash} on {chain} failed: {e}") from e
            if receipt is None:
                continue
            if receipt.status != TX_STATUS_SUCCESS:
                raise BridgeError(f"Source transaction {tx_hash} reverted on {chain}")
            logger.info("Source transaction %s confirmed in block %d", tx_hash, receipt.block_number)
            return

        raise BridgeTimeoutError(
            f"Source transaction {tx_hash} not confirmed on {chain} after "
            f"{self._config.source_confirmation_attempts} attempts"
        )

    async def initiate_bridge(
        self,
        source_chain: str,
        dest_chain: str,
        asset: str,
        amount: str | int,
        recipient: str,
        *,
        idempotency_key: str | None = None,
    ) -> str:
        bridge_tx = await self._provider.initiate(
            source_chain,
            dest_chain,
            asset,
            int(amount),
            recipient,
            idempotency_key=idempotency_key,
        )
        logger.info("Bridge initiated %s -> %s: %s", source_chain, dest_chain, bridge_tx)
        return bridge_tx

    async def wait_for_bridge_completion(
        self, source_chain: str, dest_chain: str, bridge_tx: str
    ) -> str:
        for attempt in range(self._config.completion_attempts):
            if attempt > 0:
                await asyncio.sleep(self._config.completion_interval)
            destination_tx = await self._provider.get_destination_tx(dest_chain, bridge_tx)
            if destination_tx:
                logger.info("Bridge %s released on %s: %s", bridge_tx, dest_chain, destination_tx)
                return destination_tx

        raise BridgeTimeoutError(
            f"Bridge {bridge_tx} not completed on {dest_chain} after "
            f"{self._config.completion_attempts} attempts"
        )
