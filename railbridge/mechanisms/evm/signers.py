"""EVM chain adapter for the facilitator.

Wraps web3's ``AsyncWeb3`` and an eth_account ``LocalAccount``. Every error
raised while broadcasting is translated once into the typed errors of
``railbridge.mechanisms.evm.errors``.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from eth_utils import to_checksum_address
from web3 import AsyncHTTPProvider, AsyncWeb3
from web3.exceptions import TransactionNotFound

from .constants import DEFAULT_RECEIPT_TIMEOUT
from .errors import ChainError, classify_chain_error
from .types import TransactionReceipt
from .utils import bytes_to_hex

if TYPE_CHECKING:
    from eth_account.signers.local import LocalAccount

logger = logging.getLogger(__name__)

# Multiplier applied to the node's gas estimate
GAS_ESTIMATE_HEADROOM = 1.2


def _to_receipt(raw: Any) -> TransactionReceipt:
    tx_hash = raw["transactionHash"]
    if isinstance(tx_hash, bytes | bytearray):
        tx_hash = bytes_to_hex(bytes(tx_hash))
    return TransactionReceipt(
        status=int(raw["status"]),
        block_number=int(raw["blockNumber"]),
        tx_hash=str(tx_hash),
    )


class FacilitatorWeb3Signer:
    """Facilitator-side EVM signer for a single chain.

    Implements the FacilitatorEvmSigner protocol.

    Example:
        ```python
        from eth_account import Account
        from railbridge.mechanisms.evm.signers import FacilitatorWeb3Signer

        account = Account.from_key("0x...")
        signer = FacilitatorWeb3Signer(account, "https://sepolia.base.org", 84532)
        ```

    Args:
        account: eth_account LocalAccount that pays gas and signs transactions.
        rpc_url: JSON-RPC endpoint of the chain.
        chain_id: EIP-155 chain id used when signing.
        web3: Optional pre-built ``AsyncWeb3`` (overrides ``rpc_url``).
    """

    def __init__(
        self,
        account: LocalAccount,
        rpc_url: str,
        chain_id: int,
        web3: AsyncWeb3 | None = None,
    ) -> None:
        self._account = account
        self._chain_id = chain_id
        self._w3 = web3 or AsyncWeb3(AsyncHTTPProvider(rpc_url))

    @property
    def address(self) -> str:
        """The facilitator account address (checksummed)."""
        return self._account.address

    @property
    def chain_id(self) -> int:
        return self._chain_id

    def get_addresses(self) -> list[str]:
        return [self._account.address]

    async def get_transaction_count(self, address: str) -> int:
        try:
            return await self._w3.eth.get_transaction_count(to_checksum_address(address), "pending")
        except Exception as e:
            raise ChainError(f"Pending nonce lookup for {address} failed: {e}") from e

    async def send_transaction(self, to: str, data: bytes, value: int, nonce: int) -> str:
        """Sign locally and broadcast a transaction with an explicit nonce.

        Raises:
            ChainError: Classified broadcast failure (see ``classify_chain_error``).
        """
        tx: dict[str, Any] = {
            "from": self._account.address,
            "to": to_checksum_address(to),
            "data": data,
            "value": value,
            "nonce": nonce,
            "chainId": self._chain_id,
        }
        try:
            gas = await self._w3.eth.estimate_gas(tx)
            tx["gas"] = int(gas * GAS_ESTIMATE_HEADROOM)
            tx["gasPrice"] = await self._w3.eth.gas_price
            del tx["from"]
            signed = self._account.sign_transaction(tx)
            tx_hash = await self._w3.eth.send_raw_transaction(signed.raw_transaction)
        except ChainError:
            raise
        except Exception as e:
            raise classify_chain_error(e) from e

        return bytes_to_hex(bytes(tx_hash))

    async def wait_for_transaction_receipt(
        self, tx_hash: str, timeout: float | None = None
    ) -> TransactionReceipt:
        try:
            raw = await self._w3.eth.wait_for_transaction_receipt(
                tx_hash, timeout=timeout or DEFAULT_RECEIPT_TIMEOUT
            )
        except Exception as e:
            raise ChainError(f"Failed waiting for receipt of {tx_hash}: {e}") from e
        return _to_receipt(raw)

    async def get_transaction_receipt(self, tx_hash: str) -> TransactionReceipt | None:
        try:
            raw = await self._w3.eth.get_transaction_receipt(tx_hash)
        except TransactionNotFound:
            return None
        except Exception as e:
            raise ChainError(f"Receipt lookup for {tx_hash} failed: {e}") from e
        return _to_receipt(raw)

    async def read_contract(
        self, address: str, abi: list[dict[str, Any]], function_name: str, *args: Any
    ) -> Any:
        contract = self._w3.eth.contract(address=to_checksum_address(address), abi=abi)
        fn = getattr(contract.functions, function_name)
        try:
            return await fn(*args).call()
        except Exception as e:
            raise ChainError(f"{function_name} call on {address} failed: {e}") from e

    def encode_call(self, abi: list[dict[str, Any]], function_name: str, *args: Any) -> bytes:
        contract = self._w3.eth.contract(abi=abi)
        encoded = contract.encode_abi(function_name, args=list(args))
        return bytes.fromhex(encoded.removeprefix("0x"))
