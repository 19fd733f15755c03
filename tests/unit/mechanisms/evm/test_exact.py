"""Tests for the exact EVM scheme facilitator (EIP-3009)."""

import time

import pytest
from eth_account import Account

from railbridge import PaymentPayload, PaymentRequirements, VerifyError, x402Facilitator
from railbridge.mechanisms.evm.constants import (
    ERR_AMOUNT_MISMATCH,
    ERR_INVALID_SIGNATURE,
    ERR_NETWORK_MISMATCH,
    ERR_NONCE_ALREADY_USED,
    ERR_RECIPIENT_MISMATCH,
    ERR_TRANSACTION_FAILED,
    ERR_UNSUPPORTED_NETWORK,
    ERR_VALID_BEFORE_EXPIRED,
    FUNCTION_AUTHORIZATION_STATE,
    FUNCTION_TRANSFER_WITH_AUTHORIZATION,
)
from railbridge.mechanisms.evm.errors import ChainError
from railbridge.mechanisms.evm.exact import (
    ExactEvmScheme,
    register_exact_evm_facilitator,
    split_signature,
)

from ....mocks import FakeEvmSigner, build_exact_payload

PAYER = Account.from_key("0x4c0883a69102937d6231471b5dbb6204fe5129617082792ae468d01a3f362318")
OTHER = Account.from_key("0x" + "11" * 32)

NETWORK = "eip155:84532"
USDC = "0x036CbD53842c5426634e7929541eC2318f3dCF7e"
MERCHANT = "0x209693Bc6afc0C5328bA36FaF03C514EF312287C"


def make_requirements(**overrides) -> PaymentRequirements:
    data = {
        "scheme": "exact",
        "network": NETWORK,
        "asset": USDC,
        "amount": "10000",
        "pay_to": MERCHANT,
        "max_timeout_seconds": 300,
        "extra": {"name": "USDC", "version": "2"},
    }
    data.update(overrides)
    return PaymentRequirements(**data)


def make_payload(requirements, account=PAYER, **kwargs) -> PaymentPayload:
    return build_exact_payload(requirements, account, from_address=PAYER.address, **kwargs)


class TestSplitSignature:
    def test_normalises_v(self):
        v, r, s = split_signature(b"\x01" * 32 + b"\x02" * 32 + b"\x00")
        assert v == 27
        assert r == b"\x01" * 32
        assert s == b"\x02" * 32

    def test_rejects_wrong_length(self):
        with pytest.raises(ValueError, match="65 bytes"):
            split_signature(b"\x00" * 64)


class TestExactEvmSchemeVerify:
    def setup_method(self):
        self.signer = FakeEvmSigner(read_result=False)
        self.scheme = ExactEvmScheme({NETWORK: self.signer})
        self.requirements = make_requirements()

    @pytest.mark.asyncio
    async def test_valid_authorization(self):
        payload = make_payload(self.requirements)

        result = await self.scheme.verify(payload, self.requirements)

        assert result.is_valid is True
        assert result.payer == PAYER.address
        args = self.signer.read_contract.await_args.args
        assert args[0] == USDC
        assert args[2] == FUNCTION_AUTHORIZATION_STATE
        assert args[3] == PAYER.address

    @pytest.mark.asyncio
    async def test_verify_never_writes(self):
        await self.scheme.verify(make_payload(self.requirements), self.requirements)
        self.signer.send_transaction.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_recipient_mismatch(self):
        payload = make_payload(self.requirements, to="0x" + "12" * 20)

        result = await self.scheme.verify(payload, self.requirements)

        assert result.is_valid is False
        assert result.invalid_reason == ERR_RECIPIENT_MISMATCH

    @pytest.mark.asyncio
    async def test_amount_mismatch(self):
        payload = make_payload(self.requirements, value="9999")

        result = await self.scheme.verify(payload, self.requirements)

        assert result.invalid_reason == ERR_AMOUNT_MISMATCH

    @pytest.mark.asyncio
    async def test_expired_authorization(self):
        payload = make_payload(self.requirements, valid_before=int(time.time()) + 2)

        result = await self.scheme.verify(payload, self.requirements)

        assert result.invalid_reason == ERR_VALID_BEFORE_EXPIRED

    @pytest.mark.asyncio
    async def test_signature_from_other_key(self):
        payload = make_payload(self.requirements, account=OTHER)

        result = await self.scheme.verify(payload, self.requirements)

        assert result.is_valid is False
        assert result.invalid_reason == ERR_INVALID_SIGNATURE

    @pytest.mark.asyncio
    async def test_used_nonce(self):
        self.signer.read_contract.return_value = True

        result = await self.scheme.verify(make_payload(self.requirements), self.requirements)

        assert result.invalid_reason == ERR_NONCE_ALREADY_USED

    @pytest.mark.asyncio
    async def test_authorization_state_unreadable_raises(self):
        self.signer.read_contract.side_effect = ChainError("rpc down")

        with pytest.raises(VerifyError, match="authorization_state_unavailable") as exc_info:
            await self.scheme.verify(make_payload(self.requirements), self.requirements)

        assert exc_info.value.payer == PAYER.address

    @pytest.mark.asyncio
    async def test_network_mismatch(self):
        payload = make_payload(self.requirements)
        other = make_requirements(network="eip155:8453")

        result = await self.scheme.verify(payload, other)

        assert result.invalid_reason == ERR_NETWORK_MISMATCH

    @pytest.mark.asyncio
    async def test_network_without_signer(self):
        requirements = make_requirements(network="eip155:137")
        payload = make_payload(requirements)

        result = await self.scheme.verify(payload, requirements)

        assert result.invalid_reason == f"{ERR_UNSUPPORTED_NETWORK}: eip155:137"

    @pytest.mark.asyncio
    async def test_malformed_payload(self):
        payload = PaymentPayload(scheme="exact", network=NETWORK, payload={"signature": "0x00"})

        result = await self.scheme.verify(payload, self.requirements)

        assert result.is_valid is False
        assert result.invalid_reason.startswith("invalid_exact_evm_payload")


class TestExactEvmSchemeSettle:
    def setup_method(self):
        self.signer = FakeEvmSigner(read_result=False)
        self.scheme = ExactEvmScheme({NETWORK: self.signer})
        self.requirements = make_requirements()

    @pytest.mark.asyncio
    async def test_submits_transfer_with_authorization(self):
        payload = make_payload(self.requirements)

        result = await self.scheme.settle(payload, self.requirements)

        assert result.success is True
        assert result.network == NETWORK
        assert result.payer == PAYER.address
        assert result.transaction == f"0x{1:064x}"

        encode_args = self.signer.encode_call.call_args.args
        assert encode_args[1] == FUNCTION_TRANSFER_WITH_AUTHORIZATION
        assert encode_args[2] == PAYER.address
        assert encode_args[3] == MERCHANT
        assert encode_args[4] == 10000
        assert encode_args[8] in (27, 28)
        assert self.signer.sent[0]["to"] == USDC

    @pytest.mark.asyncio
    async def test_invalid_payment_is_never_submitted(self):
        payload = make_payload(self.requirements, account=OTHER)

        result = await self.scheme.settle(payload, self.requirements)

        assert result.success is False
        assert result.error_reason == ERR_INVALID_SIGNATURE
        assert result.transaction == ""
        self.signer.send_transaction.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_reverted_settlement(self):
        signer = FakeEvmSigner(read_result=False, receipt_status=0)
        scheme = ExactEvmScheme({NETWORK: signer})

        result = await scheme.settle(make_payload(self.requirements), self.requirements)

        assert result.success is False
        assert result.error_reason == ERR_TRANSACTION_FAILED
        assert result.network == NETWORK

    @pytest.mark.asyncio
    async def test_unreadable_state_fails_settlement(self):
        self.signer.read_contract.side_effect = ChainError("rpc down")

        result = await self.scheme.settle(make_payload(self.requirements), self.requirements)

        assert result.success is False
        assert result.error_reason.startswith("authorization_state_unavailable")
        self.signer.send_transaction.assert_not_awaited()


class TestExactEvmSchemeSupported:
    def test_signers_per_network(self):
        signer = FakeEvmSigner()
        scheme = ExactEvmScheme({NETWORK: signer})

        assert scheme.get_signers(NETWORK) == [signer.address]
        assert scheme.get_signers("eip155:1") == []
        assert scheme.get_extra(NETWORK) is None


class TestRegisterExactEvmFacilitator:
    def test_registers_every_signer_network(self):
        facilitator = register_exact_evm_facilitator(
            x402Facilitator(),
            {NETWORK: FakeEvmSigner(), "eip155:8453": FakeEvmSigner()},
        )

        networks = [kind.network for kind in facilitator.get_supported().kinds]

        assert sorted(networks) == ["eip155:8453", NETWORK]

    def test_registers_selected_network(self):
        facilitator = register_exact_evm_facilitator(
            x402Facilitator(),
            {NETWORK: FakeEvmSigner(), "eip155:8453": FakeEvmSigner()},
            networks=NETWORK,
        )

        kinds = facilitator.get_supported().kinds

        assert [(k.scheme, k.network) for k in kinds] == [("exact", NETWORK)]


class TestExactEvmSchemeSettleNonceLookup:
    @pytest.mark.asyncio
    async def test_nonce_lookup_failure_is_a_failed_settlement(self):
        signer = FakeEvmSigner(read_result=False)
        signer.get_transaction_count.side_effect = ChainError("Pending nonce lookup failed")
        scheme = ExactEvmScheme({NETWORK: signer})
        requirements = make_requirements()

        result = await scheme.settle(make_payload(requirements), requirements)

        assert result.success is False
        assert result.error_reason.startswith("settlement_failed: Pending nonce lookup failed")
        assert result.network == NETWORK
        signer.send_transaction.assert_not_awaited()
