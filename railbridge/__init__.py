"""railbridge - x402 payment facilitator with cross-chain settlement.

Verifies and settles x402 payments, and routes payments made on one chain
to a merchant paid on another through a bridge.

Quick Start:
    ```python
    from railbridge import FacilitatorHooks, x402Facilitator
    from railbridge.extensions.cross_chain import CrossChainRouter
    from railbridge.mechanisms.evm.exact import ExactEvmScheme

    scheme = ExactEvmScheme({"eip155:84532": signer})
    router = CrossChainRouter(bridge_queue=queue).register(scheme)

    facilitator = x402Facilitator(cross_chain_router=router)
    facilitator.register(["eip155:84532"], scheme)
    result = await facilitator.verify(payload, requirements)
    ```
"""

# Core components
from .facilitator import FacilitatorHooks, x402Facilitator

# Interfaces (for implementing custom schemes)
from .interfaces import SchemeNetworkFacilitator

# Types (re-export commonly used types)
from .schemas import (
    # Base
    X402_VERSION,
    Network,
    # Payments
    PaymentPayload,
    PaymentRequirements,
    # Responses
    SettleResponse,
    SupportedKind,
    SupportedResponse,
    VerifyResponse,
    # Hooks
    AbortResult,
    RecoveredSettleResult,
    RecoveredVerifyResult,
    SettleContext,
    SettleFailureContext,
    SettleResultContext,
    VerifyContext,
    VerifyFailureContext,
    VerifyResultContext,
    # Errors
    HookFailureError,
    PaymentError,
    SchemeNotFoundError,
    SettleError,
    VerifyError,
)

__version__ = "0.1.0"

__all__ = [
    "__version__",
    # Core
    "x402Facilitator",
    "FacilitatorHooks",
    "SchemeNetworkFacilitator",
    # Base
    "X402_VERSION",
    "Network",
    # Payments
    "PaymentPayload",
    "PaymentRequirements",
    # Responses
    "SettleResponse",
    "SupportedKind",
    "SupportedResponse",
    "VerifyResponse",
    # Hooks
    "AbortResult",
    "RecoveredSettleResult",
    "RecoveredVerifyResult",
    "SettleContext",
    "SettleFailureContext",
    "SettleResultContext",
    "VerifyContext",
    "VerifyFailureContext",
    "VerifyResultContext",
    # Errors
    "HookFailureError",
    "PaymentError",
    "SchemeNotFoundError",
    "SettleError",
    "VerifyError",
]
