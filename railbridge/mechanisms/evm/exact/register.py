"""Registration helpers for EVM exact payment schemes."""

from collections.abc import Mapping
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ....facilitator import x402Facilitator

from ..types import FacilitatorEvmSigner
from .facilitator import ExactEvmScheme


def register_exact_evm_facilitator(
    facilitator: "x402Facilitator",
    signers: Mapping[str, FacilitatorEvmSigner],
    networks: str | list[str] | None = None,
) -> "x402Facilitator":
    """Register the EVM exact payment scheme to x402Facilitator.

    Args:
        facilitator: x402Facilitator instance.
        signers: Facilitator signer per CAIP-2 network.
        networks: Optional network(s) to register (default: every signer's network).

    Returns:
        Facilitator for chaining.
    """
    scheme = ExactEvmScheme(signers)

    if networks:
        if isinstance(networks, str):
            networks = [networks]
        facilitator.register(networks, scheme)
    else:
        facilitator.register(list(signers), scheme)

    return facilitator
