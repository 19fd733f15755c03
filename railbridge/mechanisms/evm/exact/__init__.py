"""Exact EVM payment scheme (EIP-3009) for the facilitator."""

from .facilitator import ExactEvmScheme, split_signature
from .register import register_exact_evm_facilitator

__all__ = [
    "ExactEvmScheme",
    "split_signature",
    "register_exact_evm_facilitator",
]
