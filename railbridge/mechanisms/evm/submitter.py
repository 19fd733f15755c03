"""Transaction submission with nonce-conflict recovery."""

from __future__ import annotations

import logging

from .constants import MAX_SUBMIT_ATTEMPTS, TX_STATUS_SUCCESS
from .errors import MaxRetryAttemptsError, NonceConflictError, TransactionFailedError
from .types import FacilitatorEvmSigner
from .utils import create_uniqueness_marker

logger = logging.getLogger(__name__)


class TransactionSubmitter:
    """Broadcasts transactions from one sender and waits for confirmation.

    Nonces are guessed per call with no lock shared between calls. When two
    submissions race for the same nonce, the loser reads the nonce the node
    expects from the classified error (or bumps its own guess) and resubmits.

    Args:
        signer: Chain adapter for the sender account.
        max_attempts: Submission attempts before giving up.
        receipt_timeout: Seconds to wait for a receipt; None uses the signer default.
    """

    def __init__(
        self,
        signer: FacilitatorEvmSigner,
        max_attempts: int = MAX_SUBMIT_ATTEMPTS,
        receipt_timeout: float | None = None,
    ) -> None:
        self._signer = signer
        self._max_attempts = max_attempts
        self._receipt_timeout = receipt_timeout

    @property
    def signer(self) -> FacilitatorEvmSigner:
        return self._signer

    async def submit(self, to: str, data: bytes = b"", value: int = 0) -> str:
        """Broadcast a transaction and block until it is mined.

        Args:
            to: Target address.
            data: ABI-encoded calldata. A random marker is appended per attempt.
            value: Native value in wei.

        Returns:
            Hash of the mined transaction.

        Raises:
            MaxRetryAttemptsError: Every attempt hit a nonce conflict.
            TransactionFailedError: The transaction was mined but reverted.
            ChainError: Any other broadcast or receipt failure.
        """
        tx_hash = await self.broadcast(to, data, value)
        receipt = await self._signer.wait_for_transaction_receipt(
            tx_hash, timeout=self._receipt_timeout
        )
        if receipt.status != TX_STATUS_SUCCESS:
            raise TransactionFailedError(tx_hash, receipt.status)
        return tx_hash

    async def broadcast(self, to: str, data: bytes = b"", value: int = 0) -> str:
        """Broadcast a transaction without waiting for it to be mined.

        Callers that must not resend a payment record the returned hash and
        follow it with ``get_transaction_receipt``.

        Returns:
            Hash of the accepted transaction.

        Raises:
            MaxRetryAttemptsError: Every attempt hit a nonce conflict.
            ChainError: Any other broadcast failure.
        """
        nonce: int | None = None
        last_error: NonceConflictError | None = None

        for attempt in range(1, self._max_attempts + 1):
            if nonce is None:
                nonce = await self._signer.get_transaction_count(self._signer.address)

            payload = data + create_uniqueness_marker()
            try:
                tx_hash = await self._signer.send_transaction(to, payload, value, nonce)
            except NonceConflictError as e:
                last_error = e
                next_nonce = e.expected_nonce if e.expected_nonce is not None else nonce + 1
                logger.warning(
                    "Nonce conflict on attempt %d/%d (nonce=%d): %s; retrying with nonce %d",
                    attempt,
                    self._max_attempts,
                    nonce,
                    e,
                    next_nonce,
                )
                nonce = next_nonce
                continue

            logger.info("Broadcast %s with nonce %d", tx_hash, nonce)
            return tx_hash

        raise MaxRetryAttemptsError(self._max_attempts, last_error)
