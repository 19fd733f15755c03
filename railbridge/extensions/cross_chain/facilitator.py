"""Cross-chain routing for the facilitator.

The router is not a payment scheme of its own. It is selected by the
presence of the ``cross-chain`` extension and wraps whichever base scheme
``requirements.scheme`` names, always handing it source-chain requirements.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from typing_extensions import Self

from ...bridge.types import BridgeJob
from ...interfaces import SchemeNetworkFacilitator
from ...schemas import Network, PaymentPayload, PaymentRequirements, SettleResponse, VerifyResponse
from .types import CROSS_CHAIN, CrossChainInfo
from .validation import extract_cross_chain_info

if TYPE_CHECKING:
    from ...bridge.queue import BridgeQueue

logger = logging.getLogger(__name__)

ERR_MISSING_CROSS_CHAIN_EXTENSION = "missing_cross_chain_extension"
ERR_CROSS_CHAIN_NOT_SUPPORTED_FOR_SCHEME = "cross_chain_not_supported_for_scheme"
ERR_CROSS_CHAIN_SAME_NETWORK = "cross_chain_same_network"
ERR_SOURCE_CHAIN_VERIFICATION_FAILED = "source_chain_verification_failed"


@dataclass
class CrossChainRouterConfig:
    """Router settings.

    Attributes:
        is_enabled: When False, payments settle straight to the merchant's
            source-chain ``pay_to`` and nothing is bridged.
        bridge_lock_address: Source-chain address that receives funds to be
            bridged. Defaults to the route's own ``pay_to``.
    """

    is_enabled: bool = True
    bridge_lock_address: str | None = None


class CrossChainRouter:
    """Routes cross-chain payments through a base scheme on the source chain.

    Example:
        ```python
        router = CrossChainRouter(
            CrossChainRouterConfig(bridge_lock_address="0xLock..."),
            bridge_queue=queue,
        ).register(exact_evm_scheme)

        facilitator = x402Facilitator(cross_chain_router=router)
        ```

    Args:
        config: Router settings.
        bridge_queue: Receives a job after each successful bridged settlement.
    """

    scheme = CROSS_CHAIN
    caip_family = "eip155:*"

    def __init__(
        self,
        config: CrossChainRouterConfig | None = None,
        bridge_queue: BridgeQueue | None = None,
    ) -> None:
        self._config = config or CrossChainRouterConfig()
        self._bridge_queue = bridge_queue
        self._schemes: dict[str, SchemeNetworkFacilitator] = {}

    @property
    def is_enabled(self) -> bool:
        return self._config.is_enabled

    def register(self, facilitator: SchemeNetworkFacilitator) -> Self:
        """Make ``facilitator`` available as a base scheme, keyed by its scheme name."""
        self._schemes[facilitator.scheme] = facilitator
        return self

    def get_extra(self, network: Network) -> dict[str, Any] | None:
        return {"crossChain": True, "bridgingEnabled": self._config.is_enabled}

    def get_signers(self, network: Network) -> list[str]:
        for facilitator in self._schemes.values():
            return facilitator.get_signers(network)
        return []

    def _source_requirements(self, requirements: PaymentRequirements) -> PaymentRequirements:
        if not self._config.is_enabled:
            return requirements
        lock_address = self._config.bridge_lock_address or requirements.pay_to
        return requirements.model_copy(update={"pay_to": lock_address})

    async def verify(
        self, payload: PaymentPayload, requirements: PaymentRequirements
    ) -> VerifyResponse:
        """Verify the payment against source-chain requirements."""
        info = extract_cross_chain_info(payload)
        if info is None:
            return VerifyResponse(is_valid=False, invalid_reason=ERR_MISSING_CROSS_CHAIN_EXTENSION)

        if self._config.is_enabled and info.destination_network == requirements.network:
            return VerifyResponse(is_valid=False, invalid_reason=ERR_CROSS_CHAIN_SAME_NETWORK)

        facilitator = self._schemes.get(requirements.scheme)
        if facilitator is None:
            return VerifyResponse(
                is_valid=False,
                invalid_reason=(
                    f"{ERR_CROSS_CHAIN_NOT_SUPPORTED_FOR_SCHEME}: {requirements.scheme}. "
                    "No facilitator registered for this scheme."
                ),
            )

        try:
            return await facilitator.verify(payload, self._source_requirements(requirements))
        except Exception as e:
            logger.warning("Source chain verification raised: %s", e)
            return VerifyResponse(
                is_valid=False,
                invalid_reason=f"{ERR_SOURCE_CHAIN_VERIFICATION_FAILED}: {e}",
            )

    async def settle(
        self, payload: PaymentPayload, requirements: PaymentRequirements
    ) -> SettleResponse:
        """Settle on the source chain, then queue the bridge.

        The returned result always describes the source-chain transaction.
        """
        verify_result = await self.verify(payload, requirements)
        if not verify_result.is_valid:
            return SettleResponse(
                success=False,
                error_reason=verify_result.invalid_reason,
                transaction="",
                network=requirements.network,
                payer=verify_result.payer,
            )

        # verify succeeded, so both are present
        info = extract_cross_chain_info(payload)
        facilitator = self._schemes[requirements.scheme]

        result = await facilitator.settle(payload, self._source_requirements(requirements))
        if not result.success:
            return result

        result = result.model_copy(update={"network": requirements.network})
        if self._config.is_enabled and info is not None:
            await self._enqueue_bridge(requirements, info, result)
        return result

    async def _enqueue_bridge(
        self,
        requirements: PaymentRequirements,
        info: CrossChainInfo,
        result: SettleResponse,
    ) -> None:
        if self._bridge_queue is None:
            logger.error(
                "Settled %s on %s but no bridge queue is configured; funds need manual bridging",
                result.transaction,
                requirements.network,
            )
            return

        job = BridgeJob(
            source_chain=requirements.network,
            source_tx=result.transaction,
            dest_chain=info.destination_network,
            asset=info.destination_asset,
            amount=requirements.amount,
            recipient=info.destination_pay_to,
        )
        try:
            await self._bridge_queue.enqueue(job)
        except Exception:
            logger.exception(
                "Failed to queue bridge for %s; source settlement stands and needs reconciliation",
                job.id,
            )
