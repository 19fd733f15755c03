"""End-to-end payment flows through the facilitator.

The exact EVM scheme runs for real against fake chain adapters; bridging goes
through the liquidity-pool provider and the bridge queue.
"""

import pytest
from eth_account import Account

from railbridge import FacilitatorHooks, PaymentRequirements, x402Facilitator
from railbridge.bridge import (
    BridgeConfig,
    BridgeCoordinator,
    BridgeQueue,
    BridgeStatus,
    LiquidityPoolBridgeProvider,
    RetryPolicy,
    bridge_liquidity_hook,
)
from railbridge.extensions.cross_chain import (
    CROSS_CHAIN,
    CrossChainRouter,
    CrossChainRouterConfig,
    declare_cross_chain_extension,
)
from railbridge.mechanisms.evm import TransactionSubmitter, classify_chain_error
from railbridge.mechanisms.evm.exact import ExactEvmScheme

from ..mocks import FakeEvmSigner, build_exact_payload

PAYER = Account.from_key("0x4c0883a69102937d6231471b5dbb6204fe5129617082792ae468d01a3f362318")

SOURCE = "eip155:84532"
DEST = "eip155:11155111"
SOURCE_USDC = "0x036CbD53842c5426634e7929541eC2318f3dCF7e"
DEST_USDC = "0x1c7D4B196Cb0C7B01d743Fbc6116a902379C7238"
MERCHANT = "0x209693Bc6afc0C5328bA36FaF03C514EF312287C"
LOCK = "0x" + "b1" * 20


class RecordingCoordinator(BridgeCoordinator):
    """Coordinator that records every ``bridge`` call."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.bridge_calls = []

    async def bridge(self, *args, **kwargs):
        self.bridge_calls.append(args)
        return await super().bridge(*args, **kwargs)


def make_requirements(pay_to=MERCHANT, amount="10000") -> PaymentRequirements:
    return PaymentRequirements(
        scheme="exact",
        network=SOURCE,
        asset=SOURCE_USDC,
        amount=amount,
        pay_to=pay_to,
        max_timeout_seconds=300,
    )


def cross_chain_extension():
    return {CROSS_CHAIN: declare_cross_chain_extension(DEST, DEST_USDC, MERCHANT)}


class Stack:
    """Facilitator wired the way the service wires it."""

    def __init__(self, enabled=True, pool_balance=10**12, lock_address=LOCK):
        self.source_signer = FakeEvmSigner(read_result=False)
        self.dest_signer = FakeEvmSigner(read_result=pool_balance)
        signers = {SOURCE: self.source_signer, DEST: self.dest_signer}

        self.scheme = ExactEvmScheme(signers)
        self.provider = LiquidityPoolBridgeProvider(
            {network: TransactionSubmitter(signer) for network, signer in signers.items()},
            rates={(SOURCE_USDC, DEST_USDC): 1.0},
        )
        self.coordinator = RecordingCoordinator(
            self.provider,
            signers,
            BridgeConfig(source_confirmation_interval=0, completion_interval=0),
        )
        self.queue = BridgeQueue(
            self.coordinator, retry_policy=RetryPolicy(max_attempts=3, base_delay=0)
        )
        router = CrossChainRouter(
            CrossChainRouterConfig(is_enabled=enabled, bridge_lock_address=lock_address),
            bridge_queue=self.queue,
        ).register(self.scheme)

        self.facilitator = x402Facilitator(
            hooks=FacilitatorHooks(
                before_verify=[bridge_liquidity_hook(self.coordinator, enabled=enabled)]
            ),
            cross_chain_router=router,
        )
        self.facilitator.register([SOURCE, DEST], self.scheme)
        self.facilitator.register_extension(CROSS_CHAIN)


class TestSameChain:
    @pytest.mark.asyncio
    async def test_verify_signed_payment(self):
        stack = Stack()
        requirements = make_requirements()
        payload = build_exact_payload(requirements, PAYER)

        result = await stack.facilitator.verify(payload, requirements)

        assert result.is_valid is True
        assert result.payer == PAYER.address

    @pytest.mark.asyncio
    async def test_settle_pays_merchant_without_bridging(self):
        stack = Stack()
        requirements = make_requirements()
        payload = build_exact_payload(requirements, PAYER)

        result = await stack.facilitator.settle(payload, requirements)

        assert result.success is True
        assert result.network == SOURCE
        assert stack.source_signer.encode_call.call_args.args[3] == MERCHANT
        assert await stack.queue.run_once() == 0


class TestCrossChainSuccess:
    @pytest.mark.asyncio
    async def test_settles_on_source_then_bridges(self):
        stack = Stack()
        requirements = make_requirements()
        payload = build_exact_payload(
            requirements, PAYER, to=LOCK, extensions=cross_chain_extension()
        )

        result = await stack.facilitator.settle(payload, requirements)

        assert result.success is True
        assert result.network == SOURCE
        assert result.payer == PAYER.address
        source_tx = result.transaction
        assert source_tx
        assert stack.source_signer.sent[0]["to"] == SOURCE_USDC
        assert stack.coordinator.bridge_calls == []

        await stack.queue.run_once()

        assert stack.coordinator.bridge_calls == [
            (SOURCE, source_tx, DEST, DEST_USDC, "10000", MERCHANT)
        ]
        job = await stack.queue.store.get(f"{SOURCE}:{source_tx}")
        assert job.status == BridgeStatus.COMPLETED
        release = stack.dest_signer.encode_call.call_args.args
        assert release[1:] == ("transfer", MERCHANT, 10000)
        assert stack.dest_signer.sent[0]["to"] == DEST_USDC

    @pytest.mark.asyncio
    async def test_payer_must_pay_the_lock_address(self):
        stack = Stack()
        requirements = make_requirements()
        payload = build_exact_payload(requirements, PAYER, extensions=cross_chain_extension())

        result = await stack.facilitator.verify(payload, requirements)

        assert result.is_valid is False
        assert result.invalid_reason == "invalid_exact_evm_payload_recipient_mismatch"


class TestLiquidityGate:
    @pytest.mark.asyncio
    async def test_short_liquidity_refuses_before_scheme(self):
        stack = Stack(pool_balance=9999)
        requirements = make_requirements()
        payload = build_exact_payload(
            requirements, PAYER, to=LOCK, extensions=cross_chain_extension()
        )

        verify_result = await stack.facilitator.verify(payload, requirements)
        settle_result = await stack.facilitator.settle(payload, requirements)

        assert verify_result.is_valid is False
        assert verify_result.invalid_reason == "insufficient_bridge_liquidity"
        assert settle_result.success is False
        assert settle_result.error_reason == "insufficient_bridge_liquidity"
        stack.source_signer.read_contract.assert_not_awaited()
        stack.source_signer.send_transaction.assert_not_awaited()


class TestNonceRace:
    @pytest.mark.asyncio
    async def test_settlement_recovers_from_lost_nonce_race(self):
        stack = Stack()
        stack.source_signer.get_transaction_count.return_value = 5
        stack.source_signer.send_transaction.side_effect = [
            classify_chain_error(ValueError("nonce too low: address 0xfa, tx: 5 state: 7")),
            "0xsettled",
        ]
        requirements = make_requirements()
        payload = build_exact_payload(requirements, PAYER)

        result = await stack.facilitator.settle(payload, requirements)

        assert result.success is True
        assert result.transaction == "0xsettled"
        nonces = [call.args[3] for call in stack.source_signer.send_transaction.await_args_list]
        assert nonces == [5, 7]

    @pytest.mark.asyncio
    async def test_settlement_fails_after_retry_bound(self):
        stack = Stack()
        stack.source_signer.send_transaction.side_effect = classify_chain_error(
            ValueError("nonce too low")
        )
        requirements = make_requirements()
        payload = build_exact_payload(requirements, PAYER)

        result = await stack.facilitator.settle(payload, requirements)

        assert result.success is False
        assert "max retry attempts reached (5)" in result.error_reason
        assert stack.source_signer.send_transaction.await_count == 5


class TestBridgingDisabled:
    @pytest.mark.asyncio
    async def test_pays_merchant_on_source_and_never_bridges(self):
        stack = Stack(enabled=False, pool_balance=0)
        requirements = make_requirements()
        payload = build_exact_payload(requirements, PAYER, extensions=cross_chain_extension())

        result = await stack.facilitator.settle(payload, requirements)
        await stack.queue.run_once()

        assert result.success is True
        assert result.network == SOURCE
        assert stack.source_signer.encode_call.call_args.args[3] == MERCHANT
        assert stack.coordinator.bridge_calls == []
        stack.dest_signer.send_transaction.assert_not_awaited()


class TestProperties:
    @pytest.mark.asyncio
    async def test_invalid_payload_rejected_identically_on_replay(self):
        stack = Stack()
        requirements = make_requirements()
        payload = build_exact_payload(requirements, PAYER, value="1")

        reasons = {(await stack.facilitator.verify(payload, requirements)).invalid_reason for _ in range(3)}

        assert reasons == {"invalid_exact_evm_payload_authorization_value"}

    @pytest.mark.asyncio
    async def test_missing_extension_gate(self):
        stack = Stack()
        requirements = make_requirements()
        payload = build_exact_payload(
            requirements, PAYER, to=LOCK, extensions={CROSS_CHAIN: {"schema": {}}}
        )

        result = await stack.facilitator.verify(payload, requirements)

        assert result.to_wire() == {
            "isValid": False,
            "invalidReason": "missing_cross_chain_extension",
        }

    @pytest.mark.asyncio
    async def test_payload_schema_reference_is_not_followed(self):
        stack = Stack()
        requirements = make_requirements()
        extension = declare_cross_chain_extension(DEST, DEST_USDC, MERCHANT)
        extension["schema"] = {"$ref": "https://example.invalid/schema.json"}
        payload = build_exact_payload(
            requirements, PAYER, to=LOCK, extensions={CROSS_CHAIN: extension}
        )

        result = await stack.facilitator.verify(payload, requirements)

        assert result.is_valid is True
        assert result.payer == PAYER.address

    @pytest.mark.asyncio
    async def test_settle_implies_verify(self):
        stack = Stack()
        requirements = make_requirements()
        payload = build_exact_payload(requirements, PAYER, to="0x" + "12" * 20)

        verify_result = await stack.facilitator.verify(payload, requirements)
        settle_result = await stack.facilitator.settle(payload, requirements)

        assert verify_result.is_valid is False
        assert settle_result.success is False
        assert settle_result.error_reason == verify_result.invalid_reason
        stack.source_signer.send_transaction.assert_not_awaited()
