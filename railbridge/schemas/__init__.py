"""Wire models, hook types and errors for the railbridge facilitator."""

from .base import X402_VERSION, BaseX402Model, Network
from .errors import (
    ERR_UNSUPPORTED_SCHEME_OR_NETWORK,
    HookFailureError,
    PaymentError,
    SchemeNotFoundError,
    SettleError,
    VerifyError,
)
from .helpers import (
    derive_network_pattern,
    matches_network_pattern,
    parse_payment_payload,
    parse_payment_requirements,
)
from .hooks import (
    AbortResult,
    RecoveredSettleResult,
    RecoveredVerifyResult,
    SettleContext,
    SettleFailureContext,
    SettleResultContext,
    VerifyContext,
    VerifyFailureContext,
    VerifyResultContext,
)
from .payments import PaymentPayload, PaymentRequirements
from .responses import SettleResponse, SupportedKind, SupportedResponse, VerifyResponse

__all__ = [
    # Base
    "X402_VERSION",
    "BaseX402Model",
    "Network",
    # Payments
    "PaymentPayload",
    "PaymentRequirements",
    # Responses
    "VerifyResponse",
    "SettleResponse",
    "SupportedKind",
    "SupportedResponse",
    # Hooks
    "AbortResult",
    "RecoveredVerifyResult",
    "RecoveredSettleResult",
    "VerifyContext",
    "VerifyResultContext",
    "VerifyFailureContext",
    "SettleContext",
    "SettleResultContext",
    "SettleFailureContext",
    # Errors
    "ERR_UNSUPPORTED_SCHEME_OR_NETWORK",
    "PaymentError",
    "VerifyError",
    "SettleError",
    "SchemeNotFoundError",
    "HookFailureError",
    # Helpers
    "derive_network_pattern",
    "matches_network_pattern",
    "parse_payment_payload",
    "parse_payment_requirements",
]
