"""Typed chain errors.

All string matching on node error messages happens in
``classify_chain_error``; the rest of the code only sees these types.
"""

from __future__ import annotations

import re

# Order matters: the first matching family wins.
_NONCE_TOO_LOW_PATTERNS = ("nonce too low", "nonce is too low", "invalid nonce")
_REPLACEMENT_UNDERPRICED_PATTERNS = ("replacement transaction underpriced", "replacement underpriced")
_ALREADY_KNOWN_PATTERNS = ("already known", "known transaction", "already imported")

# e.g. "nonce too low: address 0xabc.., tx: 5 state: 7"
#      "nonce too low: next nonce 7, tx nonce 5"
#      "invalid nonce; expected 7, got 5"
_EXPECTED_NONCE_RE = re.compile(r"(?:state|expected|want|next nonce)[:=\s]+(\d+)", re.IGNORECASE)


class ChainError(Exception):
    """A chain RPC rejected a request."""


class NonceConflictError(ChainError):
    """The submitted nonce collided with the account's nonce sequence.

    ``expected_nonce`` is the nonce the node reported it wants, when known.
    """

    def __init__(self, message: str, expected_nonce: int | None = None) -> None:
        super().__init__(message)
        self.expected_nonce = expected_nonce


class NonceTooLowError(NonceConflictError):
    """The nonce was already used by a mined transaction."""


class ReplacementUnderpricedError(NonceConflictError):
    """A pending transaction with this nonce has a higher fee."""


class AlreadyKnownError(NonceConflictError):
    """The node already holds this exact transaction."""


class TransactionFailedError(ChainError):
    """The transaction was mined but its receipt reports failure."""

    def __init__(self, tx_hash: str, status: int | None = None) -> None:
        super().__init__(f"Transaction {tx_hash} failed on-chain (status={status})")
        self.tx_hash = tx_hash
        self.status = status


class MaxRetryAttemptsError(ChainError):
    """Submission gave up after the nonce-conflict retry bound."""

    def __init__(self, attempts: int, last_error: Exception | None = None) -> None:
        super().__init__(f"max retry attempts reached ({attempts})")
        self.attempts = attempts
        self.last_error = last_error


def parse_expected_nonce(message: str) -> int | None:
    """Extract the nonce a node says it expects from an error message."""
    match = _EXPECTED_NONCE_RE.search(message)
    if match is None:
        return None
    return int(match.group(1))


def _error_message(error: BaseException) -> str:
    # web3 wraps RPC errors as ValueError({"code": .., "message": ..})
    if error.args and isinstance(error.args[0], dict):
        message = error.args[0].get("message")
        if isinstance(message, str):
            return message
    return str(error)


def classify_chain_error(error: BaseException) -> ChainError:
    """Translate a raw RPC/library exception into a typed ``ChainError``.

    Args:
        error: Exception raised while broadcasting a transaction.

    Returns:
        ``NonceTooLowError``, ``ReplacementUnderpricedError``,
        ``AlreadyKnownError`` or a plain ``ChainError``.
    """
    if isinstance(error, ChainError):
        return error

    message = _error_message(error)
    lowered = message.lower()

    if any(p in lowered for p in _NONCE_TOO_LOW_PATTERNS):
        return NonceTooLowError(message, parse_expected_nonce(message))
    if any(p in lowered for p in _REPLACEMENT_UNDERPRICED_PATTERNS):
        return ReplacementUnderpricedError(message, parse_expected_nonce(message))
    if any(p in lowered for p in _ALREADY_KNOWN_PATTERNS):
        return AlreadyKnownError(message, parse_expected_nonce(message))
    return ChainError(message)
