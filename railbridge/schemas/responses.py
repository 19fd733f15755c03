"""Facilitator response models for verify, settle and supported."""

from __future__ import annotations

from typing import Any

from pydantic import Field

from .base import X402_VERSION, BaseX402Model, Network


class VerifyResponse(BaseX402Model):
    """Result of verifying a payment.

    ``payer`` is set when the payment is valid, ``invalid_reason`` when not.
    """

    is_valid: bool
    payer: str | None = None
    invalid_reason: str | None = None


class SettleResponse(BaseX402Model):
    """Result of settling a payment.

    ``network`` is the chain the transaction was submitted to. For a
    cross-chain payment this is always the source chain.
    """

    success: bool
    transaction: str = ""
    network: Network = ""
    payer: str | None = None
    error_reason: str | None = None


class SupportedKind(BaseX402Model):
    """A (scheme, network) pair this facilitator can handle."""

    x402_version: int = X402_VERSION
    scheme: str
    network: Network
    extra: dict[str, Any] | None = None


class SupportedResponse(BaseX402Model):
    """Payload of the /supported endpoint."""

    kinds: list[SupportedKind]
    extensions: list[str] = Field(default_factory=list)
    signers: dict[str, list[str]] = Field(default_factory=dict)
