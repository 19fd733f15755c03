"""JSON Schema definitions for the Cross-Chain Extension."""

from typing import Any

# JSON Schema for validating cross-chain info.
# Compliant with JSON Schema Draft 2020-12.
cross_chain_schema: dict[str, Any] = {
    "$schema": "https://json-schema.org/draft/2020-12/schema",
    "type": "object",
    "properties": {
        "destinationNetwork": {
            "type": "string",
            "pattern": "^eip155:\\d+$",
            "description": "Destination network in CAIP-2 format (e.g., eip155:137)",
        },
        "destinationAsset": {
            "type": "string",
            "pattern": "^0x[a-fA-F0-9]{40}$",
            "description": "Token contract address on destination chain",
        },
        "destinationPayTo": {
            "type": "string",
            "pattern": "^0x[a-fA-F0-9]{40}$",
            "description": "Merchant address on destination chain",
        },
    },
    "required": ["destinationNetwork", "destinationAsset", "destinationPayTo"],
    "additionalProperties": False,
}
