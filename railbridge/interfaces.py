"""Interfaces implemented by payment scheme facilitators."""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

from .schemas import Network, PaymentPayload, PaymentRequirements, SettleResponse, VerifyResponse


@runtime_checkable
class SchemeNetworkFacilitator(Protocol):
    """Verifies and settles payments of one scheme on one network family.

    Implementations are assumed to own the cryptographic checks of their
    scheme. ``verify`` must not write to the chain; ``settle`` submits the
    transfer and reports the chain it was submitted to.
    """

    scheme: str
    caip_family: str

    def get_extra(self, network: Network) -> dict[str, Any] | None:
        """Extra metadata advertised for ``network`` in /supported."""
        ...

    def get_signers(self, network: Network) -> list[str]:
        """Addresses this facilitator signs with on ``network``."""
        ...

    async def verify(
        self, payload: PaymentPayload, requirements: PaymentRequirements
    ) -> VerifyResponse: ...

    async def settle(
        self, payload: PaymentPayload, requirements: PaymentRequirements
    ) -> SettleResponse: ...
