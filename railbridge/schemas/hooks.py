"""Hook context and result types for the facilitator lifecycle."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from .payments import PaymentPayload, PaymentRequirements
from .responses import SettleResponse, VerifyResponse

if TYPE_CHECKING:
    from ..extensions.registry import DecodedExtensions


@dataclass
class AbortResult:
    """Returned by a before hook to stop the operation before the scheme runs."""

    reason: str
    abort: bool = True


@dataclass
class RecoveredVerifyResult:
    """Returned by a verify failure hook to replace the result."""

    result: VerifyResponse


@dataclass
class RecoveredSettleResult:
    """Returned by a settle failure hook to replace the result."""

    result: SettleResponse


@dataclass
class VerifyContext:
    payment_payload: PaymentPayload
    requirements: PaymentRequirements
    extensions: DecodedExtensions | None = field(default=None)


@dataclass
class VerifyResultContext(VerifyContext):
    result: VerifyResponse | None = None


@dataclass
class VerifyFailureContext(VerifyContext):
    error: Exception | None = None


@dataclass
class SettleContext:
    payment_payload: PaymentPayload
    requirements: PaymentRequirements
    extensions: DecodedExtensions | None = field(default=None)


@dataclass
class SettleResultContext(SettleContext):
    result: SettleResponse | None = None


@dataclass
class SettleFailureContext(SettleContext):
    error: Exception | None = None
