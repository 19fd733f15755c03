"""EVM-specific payload and signer types."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Protocol, runtime_checkable

from pydantic import Field

from ...schemas.base import BaseX402Model


class ExactEIP3009Authorization(BaseX402Model):
    """EIP-3009 TransferWithAuthorization message.

    Numeric fields are decimal strings on the wire.
    """

    from_: str = Field(alias="from")
    to: str
    value: str
    valid_after: str
    valid_before: str
    nonce: str


class ExactEIP3009Payload(BaseX402Model):
    """Exact payment payload for EIP-3009 transfers."""

    signature: str
    authorization: ExactEIP3009Authorization

    def to_dict(self) -> dict[str, Any]:
        """Convert to the dict stored in ``PaymentPayload.payload``."""
        return self.model_dump(by_alias=True)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ExactEIP3009Payload:
        """Parse from ``PaymentPayload.payload``.

        Raises:
            pydantic.ValidationError: If the payload is malformed.
        """
        return cls.model_validate(data)


@dataclass
class TransactionReceipt:
    """Minimal view of a mined transaction."""

    status: int
    block_number: int
    tx_hash: str


@runtime_checkable
class FacilitatorEvmSigner(Protocol):
    """Chain adapter used by the facilitator for one or more EVM networks.

    Implementations own the RPC connection and the facilitator account key.
    Errors raised by ``send_transaction`` must already be classified into
    ``railbridge.mechanisms.evm.errors`` types.
    """

    @property
    def address(self) -> str: ...

    def get_addresses(self) -> list[str]: ...

    async def get_transaction_count(self, address: str) -> int:
        """Next nonce for ``address``, including pending transactions."""
        ...

    async def send_transaction(self, to: str, data: bytes, value: int, nonce: int) -> str:
        """Sign and broadcast; return the transaction hash."""
        ...

    async def wait_for_transaction_receipt(
        self, tx_hash: str, timeout: float | None = None
    ) -> TransactionReceipt: ...

    async def get_transaction_receipt(self, tx_hash: str) -> TransactionReceipt | None: ...

    async def read_contract(
        self, address: str, abi: list[dict[str, Any]], function_name: str, *args: Any
    ) -> Any: ...

    def encode_call(self, abi: list[dict[str, Any]], function_name: str, *args: Any) -> bytes: ...
