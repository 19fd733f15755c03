"""Facilitator-level errors and machine-readable reason codes."""

from __future__ import annotations

from .base import Network

ERR_UNSUPPORTED_SCHEME_OR_NETWORK = "unsupported_scheme_or_network"


class PaymentError(Exception):
    """Base class for facilitator payment errors."""


class VerifyError(PaymentError):
    """Verification could not be carried out."""

    def __init__(self, reason: str, payer: str | None = None) -> None:
        super().__init__(reason)
        self.reason = reason
        self.payer = payer


class SettleError(PaymentError):
    """Settlement could not be carried out."""

    def __init__(
        self,
        reason: str,
        transaction: str = "",
        network: Network = "",
        payer: str | None = None,
    ) -> None:
        super().__init__(reason)
        self.reason = reason
        self.transaction = transaction
        self.network = network
        self.payer = payer


class SchemeNotFoundError(PaymentError):
    """No facilitator registered for a (scheme, network) pair."""

    def __init__(self, scheme: str, network: Network) -> None:
        super().__init__(f"No facilitator registered for scheme '{scheme}' on network '{network}'")
        self.scheme = scheme
        self.network = network
        self.reason = ERR_UNSUPPORTED_SCHEME_OR_NETWORK


class HookFailureError(PaymentError):
    """A lifecycle hook raised.

    The original exception is available as ``__cause__`` and ``error``.
    """

    def __init__(self, stage: str, error: Exception) -> None:
        super().__init__(f"{stage} hook failed: {error}")
        self.stage = stage
        self.error = error
