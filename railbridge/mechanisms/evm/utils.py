"""EVM utility functions for network, address, and hex handling."""

import os
import time

from .constants import (
    DEFAULT_DECIMALS,
    NETWORK_CONFIGS,
    UNIQUENESS_MARKER_BYTES,
    AssetInfo,
    NetworkConfig,
)


def get_evm_chain_id(network: str) -> int:
    """Extract chain ID from a CAIP-2 network identifier (eip155:CHAIN_ID).

    Args:
        network: Network identifier in CAIP-2 format (e.g., "eip155:8453").

    Returns:
        Numeric chain ID.

    Raises:
        ValueError: If network format is invalid.
    """
    if network.startswith("eip155:"):
        try:
            return int(network.split(":")[1])
        except (IndexError, ValueError) as e:
            raise ValueError(f"Invalid CAIP-2 network format: {network}") from e

    raise ValueError(f"Unsupported network format: {network} (expected eip155:CHAIN_ID)")


def get_network_config(network: str) -> NetworkConfig:
    """Get configuration for a CAIP-2 network identifier.

    Returns a full config for known networks, or a minimal config (chain_id only)
    for any valid but unknown eip155 network.

    Raises:
        ValueError: If the network format is invalid or not an eip155 network.
    """
    if network in NETWORK_CONFIGS:
        return NETWORK_CONFIGS[network]
    return {"chain_id": get_evm_chain_id(network)}


def get_asset_info(network: str, asset_address: str) -> AssetInfo:
    """Get asset info by address.

    Returns the full default asset info if the address matches the network's
    default asset, otherwise a minimal AssetInfo with just the address.
    """
    config = get_network_config(network)
    default = config.get("default_asset")

    if default and default["address"].lower() == asset_address.lower():
        return default

    return {"address": asset_address, "name": "", "version": "", "decimals": DEFAULT_DECIMALS}


def is_valid_network(network: str) -> bool:
    """Check if network is a valid eip155 network identifier."""
    try:
        get_evm_chain_id(network)
    except ValueError:
        return False
    return True


def addresses_equal(a: str, b: str) -> bool:
    """Compare two addresses ignoring checksum case."""
    return a.lower() == b.lower()


def create_uniqueness_marker() -> bytes:
    """Random bytes appended to calldata so retried transactions never collide."""
    return os.urandom(UNIQUENESS_MARKER_BYTES)


def now_seconds() -> int:
    """Current Unix time in whole seconds."""
    return int(time.time())


def hex_to_bytes(hex_str: str) -> bytes:
    """Convert hex string to bytes (handles 0x prefix)."""
    return bytes.fromhex(hex_str.removeprefix("0x"))


def bytes_to_hex(data: bytes) -> str:
    """Convert bytes to hex string with 0x prefix."""
    return "0x" + data.hex()
