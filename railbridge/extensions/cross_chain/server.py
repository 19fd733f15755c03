"""Resource server helpers for the Cross-Chain Extension."""

from __future__ import annotations

from typing import Any

from .schema import cross_chain_schema
from .types import CrossChainInfo


def declare_cross_chain_extension(
    destination_network: str,
    destination_asset: str,
    destination_pay_to: str,
) -> dict[str, Any]:
    """Declare a cross-chain extension for a 402 challenge.

    The route's ``network``/``asset`` stay on the source chain and its
    ``payTo`` should be the bridge lock address. This extension names where
    the merchant is paid after bridging.

    Args:
        destination_network: CAIP-2 destination network (e.g. "eip155:137").
        destination_asset: Token contract on the destination chain.
        destination_pay_to: Merchant address on the destination chain.

    Returns:
        Extension dict ready to place under ``extensions["cross-chain"]``.

    Raises:
        pydantic.ValidationError: If any argument is malformed.

    Example:
        ```python
        extensions = {
            CROSS_CHAIN: declare_cross_chain_extension(
                "eip155:11155111",
                "0x1c7D4B196Cb0C7B01d743Fbc6116a902379C7238",
                "0x209693Bc6afc0C5328bA36FaF03C514EF312287C",
            )
        }
        ```
    """
    info = CrossChainInfo(
        destination_network=destination_network,
        destination_asset=destination_asset,
        destination_pay_to=destination_pay_to,
    )
    return {
        "info": info.model_dump(by_alias=True),
        "schema": cross_chain_schema,
    }
