"""Wiring: build a ready-to-serve facilitator from settings."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from eth_account import Account

from .bridge import (
    BridgeCoordinator,
    BridgeQueue,
    HttpBridgeProvider,
    InMemoryBridgeJobStore,
    LiquidityPoolBridgeProvider,
    SqlBridgeJobStore,
    bridge_liquidity_hook,
)
from .bridge.providers import BridgeProvider
from .bridge.store import BridgeJobStore
from .config import BRIDGE_PROVIDER_HTTP, FacilitatorSettings
from .extensions.cross_chain import CROSS_CHAIN, CrossChainRouter, CrossChainRouterConfig
from .facilitator import FacilitatorHooks, x402Facilitator
from .mechanisms.evm import FacilitatorWeb3Signer, TransactionSubmitter
from .mechanisms.evm.exact import ExactEvmScheme
from .mechanisms.evm.utils import get_evm_chain_id
from .schemas import (
    SettleContext,
    SettleFailureContext,
    SettleResultContext,
    VerifyContext,
    VerifyFailureContext,
    VerifyResultContext,
)

logger = logging.getLogger(__name__)


# Logging hooks for the facilitator lifecycle
def log_before_verify(ctx: VerifyContext) -> None:
    logger.info(
        "Verify requested: scheme=%s network=%s cross_chain=%s",
        ctx.requirements.scheme,
        ctx.requirements.network,
        bool(ctx.extensions and ctx.extensions.has(CROSS_CHAIN)),
    )


def log_after_verify(ctx: VerifyResultContext) -> None:
    if ctx.result is not None:
        logger.info("Verify passed: payer=%s", ctx.result.payer)


def log_verify_failure(ctx: VerifyFailureContext) -> None:
    logger.warning("Verify failed: %s", ctx.error)


def log_before_settle(ctx: SettleContext) -> None:
    logger.info(
        "Settle requested: scheme=%s network=%s",
        ctx.requirements.scheme,
        ctx.requirements.network,
    )


def log_after_settle(ctx: SettleResultContext) -> None:
    if ctx.result is not None:
        logger.info(
            "Settled on %s: transaction=%s payer=%s",
            ctx.result.network,
            ctx.result.transaction,
            ctx.result.payer,
        )


def log_settle_failure(ctx: SettleFailureContext) -> None:
    logger.warning("Settle failed: %s", ctx.error)


@dataclass
class FacilitatorService:
    """A facilitator together with the bridge machinery it drives."""

    facilitator: x402Facilitator
    settings: FacilitatorSettings
    bridge_queue: BridgeQueue | None = None
    bridge_provider: BridgeProvider | None = None

    async def start(self) -> None:
        if self.bridge_queue is not None:
            await self.bridge_queue.start()

    async def stop(self) -> None:
        if self.bridge_queue is not None:
            await self.bridge_queue.stop()
        if isinstance(self.bridge_provider, HttpBridgeProvider):
            await self.bridge_provider.aclose()


def _build_bridge_provider(
    settings: FacilitatorSettings,
    submitters: dict[str, TransactionSubmitter],
) -> BridgeProvider:
    if settings.bridge_provider == BRIDGE_PROVIDER_HTTP:
        return HttpBridgeProvider(settings.bridge_api_url or "", api_key=settings.bridge_api_key)
    return LiquidityPoolBridgeProvider(submitters)


def _build_job_store(settings: FacilitatorSettings) -> BridgeJobStore:
    if settings.bridge_database_url:
        return SqlBridgeJobStore(settings.bridge_database_url)
    logger.warning("BRIDGE_DATABASE_URL not set; bridge jobs are kept in memory only")
    return InMemoryBridgeJobStore()


def build_facilitator(settings: FacilitatorSettings) -> FacilitatorService:
    """Assemble signers, the exact scheme, the bridge and the router.

    Args:
        settings: Facilitator settings.

    Returns:
        FacilitatorService; call ``start()`` before serving to run the bridge worker.
    """
    account = Account.from_key(settings.evm_private_key)
    signers = {
        network: FacilitatorWeb3Signer(
            account,
            settings.rpc_url_for(network),
            get_evm_chain_id(network),
        )
        for network in settings.networks
    }
    logger.info("Facilitator account: %s on %s", account.address, ", ".join(settings.networks))

    exact_scheme = ExactEvmScheme(signers)
    submitters = {network: TransactionSubmitter(signer) for network, signer in signers.items()}

    provider = _build_bridge_provider(settings, submitters)
    coordinator = BridgeCoordinator(provider, signers)
    queue = BridgeQueue(coordinator, store=_build_job_store(settings))

    router = CrossChainRouter(
        CrossChainRouterConfig(
            is_enabled=settings.cross_chain_enabled,
            bridge_lock_address=settings.bridge_lock_address,
        ),
        bridge_queue=queue,
    ).register(exact_scheme)

    hooks = FacilitatorHooks(
        before_verify=[
            log_before_verify,
            bridge_liquidity_hook(coordinator, enabled=settings.cross_chain_enabled),
        ],
        after_verify=[log_after_verify],
        on_verify_failure=[log_verify_failure],
        before_settle=[log_before_settle],
        after_settle=[log_after_settle],
        on_settle_failure=[log_settle_failure],
    )

    facilitator = x402Facilitator(hooks=hooks, cross_chain_router=router)
    facilitator.register(settings.networks, exact_scheme)
    facilitator.register_extension(CROSS_CHAIN)

    logger.info(
        "Cross-chain bridging %s (provider=%s)",
        "enabled" if settings.cross_chain_enabled else "disabled",
        settings.bridge_provider,
    )

    return FacilitatorService(
        facilitator=facilitator,
        settings=settings,
        bridge_queue=queue,
        bridge_provider=provider,
    )
