"""Type definitions for the Cross-Chain Extension.

The route's ``network``/``asset``/``payTo`` describe the source chain, where
the payer pays. The extension describes the destination chain, where the
merchant receives after bridging.
"""

from __future__ import annotations

import re
from typing import Any

from pydantic import BaseModel, Field, field_validator

from ...schemas.base import BaseX402Model

# Extension identifier constant for the cross-chain extension
CROSS_CHAIN = "cross-chain"

CAIP2_EVM_PATTERN = re.compile(r"^eip155:\d+$")

EVM_ADDRESS_PATTERN = re.compile(r"^0x[a-fA-F0-9]{40}$")


class CrossChainInfo(BaseX402Model):
    """Destination side of a cross-chain payment.

    Attributes:
        destination_network: CAIP-2 network where the merchant receives.
        destination_asset: Token contract on the destination chain.
        destination_pay_to: Merchant address on the destination chain.
    """

    destination_network: str
    destination_asset: str
    destination_pay_to: str

    model_config = {"frozen": True}

    @field_validator("destination_network")
    @classmethod
    def validate_network(cls, v: str) -> str:
        if not CAIP2_EVM_PATTERN.match(v):
            raise ValueError("destinationNetwork must match ^eip155:\\d+$")
        return v

    @field_validator("destination_asset", "destination_pay_to")
    @classmethod
    def validate_address(cls, v: str) -> str:
        if not EVM_ADDRESS_PATTERN.match(v):
            raise ValueError("must be a 0x-prefixed 20-byte hex address")
        return v


class CrossChainExtension(BaseModel):
    """Cross-chain extension with info and schema.

    Attributes:
        info: The destination chain details.
        schema: JSON Schema validating the info structure.
    """

    info: CrossChainInfo
    schema_: dict[str, Any] = Field(alias="schema")

    model_config = {"extra": "allow", "populate_by_name": True}
