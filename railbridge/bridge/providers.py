"""Bridge providers: where destination liquidity comes from and how it moves."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from ..mechanisms.evm.constants import BALANCE_OF_ABI, ERC20_TRANSFER_ABI, TX_STATUS_SUCCESS
from ..mechanisms.evm.errors import ChainError
from ..mechanisms.evm.submitter import TransactionSubmitter
from .errors import BridgeError

if TYPE_CHECKING:
    import httpx

logger = logging.getLogger(__name__)

# Transfer states reported by the bridge API
TRANSFER_COMPLETED = "completed"
TRANSFER_FAILED = "failed"


@runtime_checkable
class BridgeProvider(Protocol):
    """Backend that holds destination liquidity and releases it."""

    async def get_available_liquidity(self, dest_chain: str, asset: str) -> int:
        """Amount of ``asset`` (smallest unit) releasable on ``dest_chain``."""
        ...

    async def get_rate(
        self, source_chain: str, dest_chain: str, source_asset: str, dest_asset: str
    ) -> float: ...

    async def initiate(
        self,
        source_chain: str,
        dest_chain: str,
        asset: str,
        amount: int,
        recipient: str,
        *,
        idempotency_key: str | None = None,
    ) -> str:
        """Start a transfer; return the bridge transaction id.

        Must return as soon as the transfer is accepted so the id can be
        recorded before any confirmation wait. ``idempotency_key`` is stable
        per source settlement.
        """
        ...

    async def get_destination_tx(self, dest_chain: str, bridge_tx: str) -> str | None:
        """Destination release tx for ``bridge_tx``, or None while in flight."""
        ...


class LiquidityPoolBridgeProvider:
    """Facilitator-operated liquidity pool.

    Funds locked on the source chain are matched by an ERC-20 transfer from
    the pool account on the destination chain. The release happens in the
    initiating transaction, so the bridge tx is also the destination tx.
    ``initiate`` returns once the transfer is broadcast; completion is read
    from its receipt, so a resumed job never sends a second transfer.

    Args:
        submitters: Transaction submitter per destination network; its signer
            is the pool account.
        rates: Exchange rates keyed by (source_asset, dest_asset), compared
            case-insensitively. Unknown pairs rate 0.0.
    """

    def __init__(
        self,
        submitters: Mapping[str, TransactionSubmitter],
        rates: Mapping[tuple[str, str], float] | None = None,
    ) -> None:
        self._submitters = dict(submitters)
        self._rates = {(a.lower(), b.lower()): rate for (a, b), rate in (rates or {}).items()}

    def _submitter(self, chain: str) -> TransactionSubmitter:
        submitter = self._submitters.get(chain)
        if submitter is None:
            raise BridgeError(f"No liquidity pool configured on {chain}")
        return submitter

    async def get_available_liquidity(self, dest_chain: str, asset: str) -> int:
        submitter = self._submitter(dest_chain)
        signer = submitter.signer
        try:
            balance = await signer.read_contract(asset, BALANCE_OF_ABI, "balanceOf", signer.address)
        except ChainError as e:
            raise BridgeError(f"balanceOf failed on {dest_chain}: {e}") from e
        return int(balance)

    async def get_rate(
        self, source_chain: str, dest_chain: str, source_asset: str, dest_asset: str
    ) -> float:
        return self._rates.get((source_asset.lower(), dest_asset.lower()), 0.0)

    async def initiate(
        self,
        source_chain: str,
        dest_chain: str,
        asset: str,
        amount: int,
        recipient: str,
        *,
        idempotency_key: str | None = None,
    ) -> str:
        submitter = self._submitter(dest_chain)
        data = submitter.signer.encode_call(ERC20_TRANSFER_ABI, "transfer", recipient, amount)
        try:
            return await submitter.broadcast(asset, data)
        except ChainError as e:
            raise BridgeError(f"Pool release on {dest_chain} failed: {e}") from e

    async def get_destination_tx(self, dest_chain: str, bridge_tx: str) -> str | None:
        signer = self._submitter(dest_chain).signer
        try:
            receipt = await signer.get_transaction_receipt(bridge_tx)
        except ChainError as e:
            raise BridgeError(f"Receipt lookup for {bridge_tx} on {dest_chain} failed: {e}") from e
        if receipt is None:
            return None
        if receipt.status != TX_STATUS_SUCCESS:
            raise BridgeError(f"Pool release {bridge_tx} reverted on {dest_chain}")
        return bridge_tx


class HttpBridgeProvider:
    """External bridge reached over a REST API.

    Endpoints:
        GET  /liquidity?chain=&asset=          -> {"available": "<int>"}
        GET  /rate?sourceChain=&destChain=&sourceAsset=&destAsset= -> {"rate": <float>}
        POST /transfers (Idempotency-Key header)  -> {"id": "<bridge tx>"}
        GET  /transfers/{id}                     -> {"status": ..., "destinationTx": ...}

    Args:
        base_url: Bridge API root URL.
        api_key: Optional bearer token.
        timeout: Request timeout in seconds.
        http_client: Optional ``httpx.AsyncClient`` (caller owns it).
    """

    def __init__(
        self,
        base_url: str,
        api_key: str | None = None,
        timeout: float = 30.0,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._url = base_url.rstrip("/")
        self._api_key = api_key
        self._timeout = timeout
        self._http_client = http_client
        self._owns_client = http_client is None

    def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._http_client is None:
            import httpx

            self._http_client = httpx.AsyncClient(timeout=self._timeout, follow_redirects=True)
        return self._http_client

    async def aclose(self) -> None:
        """Close HTTP client if we own it."""
        if self._owns_client and self._http_client:
            await self._http_client.aclose()
            self._http_client = None

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self._api_key:
            headers["Authorization"] = f"Bearer {self._api_key}"
        return headers

    async def _request(
        self,
        method: str,
        path: str,
        extra_headers: dict[str, str] | None = None,
        **kwargs: Any,
    ) -> dict[str, Any]:
        import httpx

        headers = self._headers()
        if extra_headers:
            headers.update(extra_headers)
        client = self._get_client()
        try:
            response = await client.request(method, f"{self._url}{path}", headers=headers, **kwargs)
        except httpx.HTTPError as e:
            raise BridgeError(f"Bridge API {method} {path} failed: {e}") from e

        if response.status_code >= 400:
            raise BridgeError(
                f"Bridge API {method} {path} failed ({response.status_code}): {response.text}"
            )

        try:
            return response.json()
        except ValueError as e:
            raise BridgeError(f"Bridge API {method} {path} returned invalid JSON") from e

    async def get_available_liquidity(self, dest_chain: str, asset: str) -> int:
        data = await self._request("GET", "/liquidity", params={"chain": dest_chain, "asset": asset})
        try:
            return int(data["available"])
        except (KeyError, TypeError, ValueError) as e:
            raise BridgeError(f"Malformed liquidity response: {data}") from e

    async def get_rate(
        self, source_chain: str, dest_chain: str, source_asset: str, dest_asset: str
    ) -> float:
        data = await self._request(
            "GET",
            "/rate",
            params={
                "sourceChain": source_chain,
                "destChain": dest_chain,
                "sourceAsset": source_asset,
                "destAsset": dest_asset,
            },
        )
        try:
            return float(data["rate"])
        except (KeyError, TypeError, ValueError) as e:
            raise BridgeError(f"Malformed rate response: {data}") from e

    async def initiate(
        self,
        source_chain: str,
        dest_chain: str,
        asset: str,
        amount: int,
        recipient: str,
        *,
        idempotency_key: str | None = None,
    ) -> str:
        headers = {"Idempotency-Key": idempotency_key} if idempotency_key else None
        data = await self._request(
            "POST",
            "/transfers",
            extra_headers=headers,
            json={
                "sourceChain": source_chain,
                "destChain": dest_chain,
                "asset": asset,
                "amount": str(amount),
                "recipient": recipient,
            },
        )
        transfer_id = data.get("id")
        if not transfer_id:
            raise BridgeError(f"Bridge API returned no transfer id: {data}")
        return str(transfer_id)

    async def get_destination_tx(self, dest_chain: str, bridge_tx: str) -> str | None:
        data = await self._request("GET", f"/transfers/{bridge_tx}")
        status = data.get("status")
        if status == TRANSFER_FAILED:
            raise BridgeError(f"Bridge transfer {bridge_tx} failed: {data.get('error', 'unknown')}")
        if status == TRANSFER_COMPLETED and data.get("destinationTx"):
            return str(data["destinationTx"])
        return None
