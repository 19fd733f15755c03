"""Mock implementations for testing."""

from .bridge import FakeBridgeProvider
from .cash import (
    CashSchemeNetworkFacilitator,
    build_cash_payment_payload,
    build_cash_payment_requirements,
)
from .evm import FACILITATOR_ADDRESS, FakeEvmSigner, MockExactScheme, build_exact_payload

__all__ = [
    "CashSchemeNetworkFacilitator",
    "build_cash_payment_payload",
    "build_cash_payment_requirements",
    "FACILITATOR_ADDRESS",
    "FakeEvmSigner",
    "MockExactScheme",
    "build_exact_payload",
    "FakeBridgeProvider",
]
