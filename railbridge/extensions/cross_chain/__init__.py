"""Cross-Chain Extension.

Lets a resource server take payment on one chain (the route's network) and
pay the merchant on another (``destinationNetwork``) through a bridge.

Resource servers declare the destination with
``declare_cross_chain_extension``. Facilitators route payloads carrying the
extension through ``CrossChainRouter``.
"""

from .facilitator import (
    ERR_CROSS_CHAIN_NOT_SUPPORTED_FOR_SCHEME,
    ERR_CROSS_CHAIN_SAME_NETWORK,
    ERR_MISSING_CROSS_CHAIN_EXTENSION,
    ERR_SOURCE_CHAIN_VERIFICATION_FAILED,
    CrossChainRouter,
    CrossChainRouterConfig,
)
from .schema import cross_chain_schema
from .server import declare_cross_chain_extension
from .types import (
    CAIP2_EVM_PATTERN,
    CROSS_CHAIN,
    EVM_ADDRESS_PATTERN,
    CrossChainExtension,
    CrossChainInfo,
)
from .validation import (
    CrossChainValidationResult,
    decode_cross_chain_extension,
    extract_cross_chain_info,
    has_cross_chain_extension,
    validate_cross_chain_extension,
)

__all__ = [
    # Constants
    "CROSS_CHAIN",
    "CAIP2_EVM_PATTERN",
    "EVM_ADDRESS_PATTERN",
    "ERR_MISSING_CROSS_CHAIN_EXTENSION",
    "ERR_CROSS_CHAIN_NOT_SUPPORTED_FOR_SCHEME",
    "ERR_CROSS_CHAIN_SAME_NETWORK",
    "ERR_SOURCE_CHAIN_VERIFICATION_FAILED",
    # Types
    "CrossChainInfo",
    "CrossChainExtension",
    "CrossChainValidationResult",
    # Schema
    "cross_chain_schema",
    # Server
    "declare_cross_chain_extension",
    # Validation
    "decode_cross_chain_extension",
    "validate_cross_chain_extension",
    "extract_cross_chain_info",
    "has_cross_chain_extension",
    # Router
    "CrossChainRouter",
    "CrossChainRouterConfig",
]
