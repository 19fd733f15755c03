"""Payment requirement and payload models."""

from __future__ import annotations

from typing import Any

from pydantic import ConfigDict, field_validator, model_validator

from .base import X402_VERSION, BaseX402Model, Network


class PaymentRequirements(BaseX402Model):
    """What a resource server asks the payer to pay.

    Immutable once issued. Routing code derives modified copies with
    ``model_copy(update=...)`` instead of mutating.
    """

    scheme: str
    network: Network
    asset: str
    amount: str
    pay_to: str
    max_timeout_seconds: int
    extra: dict[str, Any] | None = None

    model_config = ConfigDict(frozen=True)

    @field_validator("amount")
    @classmethod
    def validate_amount(cls, v: str) -> str:
        try:
            int(v)
        except ValueError:
            raise ValueError("amount must be an integer encoded as a string")
        return v


class PaymentPayload(BaseX402Model):
    """Signed payment produced by a payer.

    ``scheme`` and ``network`` may be omitted by clients that only send
    ``accepted``; they are then taken from the accepted requirements.
    """

    x402_version: int = X402_VERSION
    scheme: str
    network: Network
    payload: dict[str, Any]
    extensions: dict[str, Any] | None = None
    accepted: PaymentRequirements | None = None

    @model_validator(mode="before")
    @classmethod
    def _fill_from_accepted(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        accepted = data.get("accepted")
        if accepted is None:
            return data
        data = dict(data)
        for field in ("scheme", "network"):
            if data.get(field) is None:
                if isinstance(accepted, PaymentRequirements):
                    data[field] = getattr(accepted, field)
                elif isinstance(accepted, dict):
                    data[field] = accepted.get(field)
        return data

    def get_scheme(self) -> str:
        return self.scheme

    def get_network(self) -> Network:
        return self.network

    def get_extension(self, key: str) -> Any:
        """Raw extension data for ``key``, or None."""
        if not self.extensions:
            return None
        return self.extensions.get(key)
