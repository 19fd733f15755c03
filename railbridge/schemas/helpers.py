"""Network pattern helpers and wire parsing."""

from __future__ import annotations

import json
from typing import Any

from .base import Network
from .payments import PaymentPayload, PaymentRequirements


def derive_network_pattern(networks: list[Network]) -> Network:
    """Derive a wildcard pattern covering a list of networks.

    Networks sharing one namespace collapse to ``"<namespace>:*"``. A single
    network, or a mix of namespaces, yields the first network unchanged.

    Args:
        networks: CAIP-2 network identifiers.

    Returns:
        Pattern such as ``"eip155:*"``.
    """
    if not networks:
        raise ValueError("At least one network is required")

    namespaces = {n.split(":", 1)[0] for n in networks}
    if len(networks) > 1 and len(namespaces) == 1:
        return f"{namespaces.pop()}:*"
    return networks[0]


def matches_network_pattern(network: Network, pattern: Network) -> bool:
    """Check whether ``network`` matches ``pattern`` (exact or ``ns:*``)."""
    if pattern == network:
        return True
    if pattern.endswith(":*"):
        return network.split(":", 1)[0] == pattern[:-2]
    return False


def parse_payment_payload(data: bytes | str | dict[str, Any]) -> PaymentPayload:
    """Parse a payment payload from JSON bytes, a JSON string or a dict."""
    if isinstance(data, (bytes, str)):
        data = json.loads(data)
    return PaymentPayload.model_validate(data)


def parse_payment_requirements(data: bytes | str | dict[str, Any]) -> PaymentRequirements:
    """Parse payment requirements from JSON bytes, a JSON string or a dict."""
    if isinstance(data, (bytes, str)):
        data = json.loads(data)
    return PaymentRequirements.model_validate(data)
