"""EVM mechanism: chain adapter, transaction submission and the exact scheme."""

from .constants import MAX_SUBMIT_ATTEMPTS, NETWORK_CONFIGS, SCHEME_EXACT
from .errors import (
    AlreadyKnownError,
    ChainError,
    MaxRetryAttemptsError,
    NonceConflictError,
    NonceTooLowError,
    ReplacementUnderpricedError,
    TransactionFailedError,
    classify_chain_error,
)
from .signers import FacilitatorWeb3Signer
from .submitter import TransactionSubmitter
from .types import (
    ExactEIP3009Authorization,
    ExactEIP3009Payload,
    FacilitatorEvmSigner,
    TransactionReceipt,
)
from .utils import get_evm_chain_id, get_network_config, is_valid_network

__all__ = [
    # Constants
    "MAX_SUBMIT_ATTEMPTS",
    "NETWORK_CONFIGS",
    "SCHEME_EXACT",
    # Errors
    "ChainError",
    "NonceConflictError",
    "NonceTooLowError",
    "ReplacementUnderpricedError",
    "AlreadyKnownError",
    "TransactionFailedError",
    "MaxRetryAttemptsError",
    "classify_chain_error",
    # Chain adapter
    "FacilitatorEvmSigner",
    "FacilitatorWeb3Signer",
    "TransactionReceipt",
    "TransactionSubmitter",
    # Payload types
    "ExactEIP3009Authorization",
    "ExactEIP3009Payload",
    # Utils
    "get_evm_chain_id",
    "get_network_config",
    "is_valid_network",
]
