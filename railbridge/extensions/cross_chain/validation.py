"""Validation and extraction utilities for the Cross-Chain Extension."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

import jsonschema
from pydantic import ValidationError

from ..registry import ExtensionDecodeError
from .schema import cross_chain_schema
from .types import CROSS_CHAIN, CrossChainExtension, CrossChainInfo

if TYPE_CHECKING:
    from ...schemas.payments import PaymentPayload


@dataclass
class CrossChainValidationResult:
    """Result of cross-chain extension validation.

    Attributes:
        valid: Whether the extension is valid.
        errors: Error messages if validation failed.
    """

    valid: bool
    errors: list[str] = field(default_factory=list)


def decode_cross_chain_extension(extension: Any) -> CrossChainInfo:
    """Decode raw cross-chain extension data into ``CrossChainInfo``.

    The ``info`` object is checked field by field and against the
    package's own ``cross_chain_schema``. A ``schema`` sent with the payload
    is descriptive only and never evaluated.

    Args:
        extension: Raw extension data (dict or ``CrossChainExtension``).

    Returns:
        The destination chain details.

    Raises:
        ExtensionDecodeError: If the structure or any field is invalid.
    """
    if isinstance(extension, CrossChainExtension):
        return extension.info

    if not isinstance(extension, dict):
        raise ExtensionDecodeError(CROSS_CHAIN, "extension must be an object")

    info = extension.get("info")
    if isinstance(info, CrossChainInfo):
        return info
    if not isinstance(info, dict):
        raise ExtensionDecodeError(CROSS_CHAIN, "extension must have an 'info' object")

    try:
        decoded = CrossChainInfo.model_validate(info)
    except ValidationError as e:
        first = e.errors()[0]
        path = "/".join(str(p) for p in first["loc"]) or "(root)"
        raise ExtensionDecodeError(CROSS_CHAIN, f"{path}: {first['msg']}") from e

    try:
        jsonschema.validate(instance=info, schema=cross_chain_schema)
    except jsonschema.ValidationError as e:
        path = "/".join(str(p) for p in e.absolute_path) if e.absolute_path else "(root)"
        raise ExtensionDecodeError(CROSS_CHAIN, f"{path}: {e.message}") from e
    except Exception as e:
        raise ExtensionDecodeError(CROSS_CHAIN, f"schema validation failed: {e!s}") from e

    return decoded


def validate_cross_chain_extension(extension: Any) -> CrossChainValidationResult:
    """Validate a cross-chain extension object.

    Args:
        extension: The extension object to validate.

    Returns:
        Validation result with errors if invalid.
    """
    try:
        decode_cross_chain_extension(extension)
    except ExtensionDecodeError as e:
        return CrossChainValidationResult(valid=False, errors=[e.message])
    return CrossChainValidationResult(valid=True)


def extract_cross_chain_info(payment_payload: PaymentPayload) -> CrossChainInfo | None:
    """Extract the destination chain details from a PaymentPayload.

    Args:
        payment_payload: The payment payload to extract from.

    Returns:
        ``CrossChainInfo`` if the extension is present and valid, else None.
    """
    extension = payment_payload.get_extension(CROSS_CHAIN)
    if extension is None:
        return None
    try:
        return decode_cross_chain_extension(extension)
    except ExtensionDecodeError:
        return None


def has_cross_chain_extension(payment_payload: PaymentPayload) -> bool:
    """Whether the payload carries a cross-chain key, valid or not."""
    return bool(payment_payload.extensions) and CROSS_CHAIN in payment_payload.extensions
