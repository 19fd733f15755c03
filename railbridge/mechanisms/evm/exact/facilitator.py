"""Exact scheme facilitator implementation for EVM (EIP-3009)."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from eth_account import Account
from eth_account.messages import encode_typed_data
from pydantic import ValidationError

from ....schemas import (
    Network,
    PaymentPayload,
    PaymentRequirements,
    SettleResponse,
    VerifyError,
    VerifyResponse,
)
from ..constants import (
    AUTHORIZATION_STATE_ABI,
    ERR_AUTHORIZATION_STATE_UNAVAILABLE,
    ERR_AMOUNT_MISMATCH,
    ERR_INVALID_PAYLOAD,
    ERR_INVALID_SIGNATURE,
    ERR_MISSING_EIP712_DOMAIN,
    ERR_NETWORK_MISMATCH,
    ERR_NONCE_ALREADY_USED,
    ERR_RECIPIENT_MISMATCH,
    ERR_SETTLEMENT_FAILED,
    ERR_TRANSACTION_FAILED,
    ERR_UNSUPPORTED_NETWORK,
    ERR_UNSUPPORTED_SCHEME,
    ERR_VALID_AFTER_FUTURE,
    ERR_VALID_BEFORE_EXPIRED,
    FUNCTION_AUTHORIZATION_STATE,
    FUNCTION_TRANSFER_WITH_AUTHORIZATION,
    SCHEME_EXACT,
    TRANSFER_WITH_AUTHORIZATION_TYPES,
    TRANSFER_WITH_AUTHORIZATION_VRS_ABI,
    VALID_BEFORE_GRACE_SECONDS,
)
from ..errors import ChainError, TransactionFailedError
from ..submitter import TransactionSubmitter
from ..types import ExactEIP3009Payload, FacilitatorEvmSigner
from ..utils import addresses_equal, get_asset_info, get_evm_chain_id, hex_to_bytes, now_seconds

logger = logging.getLogger(__name__)


def split_signature(signature: bytes) -> tuple[int, bytes, bytes]:
    """Split a 65-byte ECDSA signature into (v, r, s), normalising v to 27/28."""
    if len(signature) != 65:
        raise ValueError(f"signature must be 65 bytes, got {len(signature)}")
    v = signature[64]
    if v < 27:
        v += 27
    return v, signature[:32], signature[32:64]


class ExactEvmScheme:
    """Facilitator for EIP-3009 ``transferWithAuthorization`` payments.

    One signer per supported network pays gas and submits settlements.

    Args:
        signers: Mapping of CAIP-2 network to the facilitator signer on that chain.
    """

    def __init__(self, signers: Mapping[Network, FacilitatorEvmSigner]) -> None:
        self.scheme = SCHEME_EXACT
        self.caip_family = "eip155:*"
        self._signers = dict(signers)
        self._submitters = {
            network: TransactionSubmitter(signer) for network, signer in self._signers.items()
        }

    def get_extra(self, network: Network) -> dict[str, Any] | None:
        """No extra data for EVM exact."""
        return None

    def get_signers(self, network: Network) -> list[str]:
        signer = self._signers.get(network)
        return signer.get_addresses() if signer else []

    def _eip712_domain(self, requirements: PaymentRequirements) -> dict[str, Any] | None:
        extra = requirements.extra or {}
        name = extra.get("name")
        version = extra.get("version")
        if not name or not version:
            asset_info = get_asset_info(requirements.network, requirements.asset)
            name = name or asset_info["name"]
            version = version or asset_info["version"]
        if not name or not version:
            return None
        return {
            "name": name,
            "version": version,
            "chainId": get_evm_chain_id(requirements.network),
            "verifyingContract": requirements.asset,
        }

    async def verify(
        self, payload: PaymentPayload, requirements: PaymentRequirements
    ) -> VerifyResponse:
        """Verify an EIP-3009 authorization against the requirements.

        Checks, in order: scheme and network, recipient, value, validity
        window, signature, and that the authorization nonce is unused on chain.
        """
        if payload.get_scheme() != SCHEME_EXACT or requirements.scheme != SCHEME_EXACT:
            return VerifyResponse(is_valid=False, invalid_reason=ERR_UNSUPPORTED_SCHEME)

        if payload.get_network() != requirements.network:
            return VerifyResponse(is_valid=False, invalid_reason=ERR_NETWORK_MISMATCH)

        signer = self._signers.get(requirements.network)
        if signer is None:
            return VerifyResponse(
                is_valid=False,
                invalid_reason=f"{ERR_UNSUPPORTED_NETWORK}: {requirements.network}",
            )

        try:
            evm_payload = ExactEIP3009Payload.from_dict(payload.payload)
            auth = evm_payload.authorization
            value = int(auth.value)
            valid_after = int(auth.valid_after)
            valid_before = int(auth.valid_before)
            signature = hex_to_bytes(evm_payload.signature)
            nonce = hex_to_bytes(auth.nonce)
        except (ValidationError, ValueError) as e:
            return VerifyResponse(is_valid=False, invalid_reason=f"{ERR_INVALID_PAYLOAD}: {e}")

        payer = auth.from_

        if not addresses_equal(auth.to, requirements.pay_to):
            return VerifyResponse(is_valid=False, invalid_reason=ERR_RECIPIENT_MISMATCH, payer=payer)

        if value != int(requirements.amount):
            return VerifyResponse(is_valid=False, invalid_reason=ERR_AMOUNT_MISMATCH, payer=payer)

        now = now_seconds()
        if valid_before < now + VALID_BEFORE_GRACE_SECONDS:
            return VerifyResponse(is_valid=False, invalid_reason=ERR_VALID_BEFORE_EXPIRED, payer=payer)
        if valid_after > now:
            return VerifyResponse(is_valid=False, invalid_reason=ERR_VALID_AFTER_FUTURE, payer=payer)

        domain = self._eip712_domain(requirements)
        if domain is None:
            return VerifyResponse(is_valid=False, invalid_reason=ERR_MISSING_EIP712_DOMAIN, payer=payer)

        message = {
            "from": auth.from_,
            "to": auth.to,
            "value": value,
            "validAfter": valid_after,
            "validBefore": valid_before,
            "nonce": nonce,
        }
        try:
            signable = encode_typed_data(
                domain_data=domain,
                message_types=TRANSFER_WITH_AUTHORIZATION_TYPES,
                message_data=message,
            )
            recovered = Account.recover_message(signable, signature=signature)
        except Exception as e:
            logger.debug("Signature recovery failed: %s", e)
            return VerifyResponse(is_valid=False, invalid_reason=ERR_INVALID_SIGNATURE, payer=payer)

        if not addresses_equal(recovered, payer):
            return VerifyResponse(is_valid=False, invalid_reason=ERR_INVALID_SIGNATURE, payer=payer)

        try:
            used = await signer.read_contract(
                requirements.asset,
                AUTHORIZATION_STATE_ABI,
                FUNCTION_AUTHORIZATION_STATE,
                payer,
                nonce,
            )
        except ChainError as e:
            raise VerifyError(f"{ERR_AUTHORIZATION_STATE_UNAVAILABLE}: {e}", payer) from e
        if used:
            return VerifyResponse(is_valid=False, invalid_reason=ERR_NONCE_ALREADY_USED, payer=payer)

        return VerifyResponse(is_valid=True, payer=payer)

    async def settle(
        self, payload: PaymentPayload, requirements: PaymentRequirements
    ) -> SettleResponse:
        """Submit ``transferWithAuthorization`` on the asset contract.

        Returns:
            SettleResponse with the mined transaction hash.
        """
        network = requirements.network

        try:
            verify_result = await self.verify(payload, requirements)
        except VerifyError as e:
            verify_result = VerifyResponse(is_valid=False, invalid_reason=e.reason, payer=e.payer)
        if not verify_result.is_valid:
            return SettleResponse(
                success=False,
                error_reason=verify_result.invalid_reason or ERR_INVALID_PAYLOAD,
                transaction="",
                network=network,
                payer=verify_result.payer,
            )

        evm_payload = ExactEIP3009Payload.from_dict(payload.payload)
        auth = evm_payload.authorization
        payer = auth.from_
        signer = self._signers[network]
        submitter = self._submitters[network]

        v, r, s = split_signature(hex_to_bytes(evm_payload.signature))
        data = signer.encode_call(
            TRANSFER_WITH_AUTHORIZATION_VRS_ABI,
            FUNCTION_TRANSFER_WITH_AUTHORIZATION,
            auth.from_,
            auth.to,
            int(auth.value),
            int(auth.valid_after),
            int(auth.valid_before),
            hex_to_bytes(auth.nonce),
            v,
            r,
            s,
        )

        try:
            tx_hash = await submitter.submit(requirements.asset, data)
        except TransactionFailedError as e:
            logger.warning("Settlement transaction %s reverted on %s", e.tx_hash, network)
            return SettleResponse(
                success=False,
                error_reason=ERR_TRANSACTION_FAILED,
                transaction="",
                network=network,
                payer=payer,
            )
        except ChainError as e:
            logger.warning("Settlement failed on %s: %s", network, e)
            return SettleResponse(
                success=False,
                error_reason=f"{ERR_SETTLEMENT_FAILED}: {e}",
                transaction="",
                network=network,
                payer=payer,
            )

        return SettleResponse(success=True, transaction=tx_hash, network=network, payer=payer)
