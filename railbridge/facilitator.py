"""x402Facilitator - Payment verification and settlement component.

Runs as a service, manages scheme mechanisms, routes cross-chain payloads
and runs the lifecycle hook pipeline around verify/settle.
"""

from __future__ import annotations

import inspect
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar, Union

from typing_extensions import Self

from .extensions.cross_chain.validation import has_cross_chain_extension
from .extensions.registry import DecodedExtensions, ExtensionRegistry, default_extension_registry
from .interfaces import SchemeNetworkFacilitator
from .schemas import (
    AbortResult,
    HookFailureError,
    Network,
    PaymentPayload,
    PaymentRequirements,
    RecoveredSettleResult,
    RecoveredVerifyResult,
    SchemeNotFoundError,
    SettleContext,
    SettleError,
    SettleFailureContext,
    SettleResponse,
    SettleResultContext,
    SupportedKind,
    SupportedResponse,
    VerifyContext,
    VerifyError,
    VerifyFailureContext,
    VerifyResponse,
    VerifyResultContext,
    derive_network_pattern,
    matches_network_pattern,
)

logger = logging.getLogger(__name__)

# ============================================================================
# Type Aliases
# ============================================================================

T = TypeVar("T")
R = TypeVar("R")

_MaybeAwaitable = Union[R, Awaitable[R]]

BeforeVerifyHook = Callable[[VerifyContext], _MaybeAwaitable[AbortResult | None]]
AfterVerifyHook = Callable[[VerifyResultContext], _MaybeAwaitable[None]]
OnVerifyFailureHook = Callable[[VerifyFailureContext], _MaybeAwaitable[RecoveredVerifyResult | None]]

BeforeSettleHook = Callable[[SettleContext], _MaybeAwaitable[AbortResult | None]]
AfterSettleHook = Callable[[SettleResultContext], _MaybeAwaitable[None]]
OnSettleFailureHook = Callable[[SettleFailureContext], _MaybeAwaitable[RecoveredSettleResult | None]]


async def _maybe_await(value: Any) -> Any:
    if inspect.isawaitable(value):
        return await value
    return value


# ============================================================================
# Internal Types
# ============================================================================


@dataclass
class _SchemeData(Generic[T]):
    """Internal storage for registered schemes."""

    facilitator: T
    networks: set[Network]
    pattern: Network  # Wildcard like "eip155:*"


@dataclass
class FacilitatorHooks:
    """Lifecycle hooks, run in list order.

    Hooks may be plain functions or coroutines. A ``before_*`` hook returning
    ``AbortResult`` stops the call before the scheme runs. A failure hook
    returning ``RecoveredVerifyResult``/``RecoveredSettleResult`` replaces
    the result.
    """

    before_verify: list[BeforeVerifyHook] = field(default_factory=list)
    after_verify: list[AfterVerifyHook] = field(default_factory=list)
    on_verify_failure: list[OnVerifyFailureHook] = field(default_factory=list)
    before_settle: list[BeforeSettleHook] = field(default_factory=list)
    after_settle: list[AfterSettleHook] = field(default_factory=list)
    on_settle_failure: list[OnSettleFailureHook] = field(default_factory=list)


# ============================================================================
# x402Facilitator
# ============================================================================


class x402Facilitator:
    """Payment verification and settlement component.

    Example:
        ```python
        from railbridge import FacilitatorHooks, x402Facilitator
        from railbridge.bridge import bridge_liquidity_hook
        from railbridge.mechanisms.evm.exact import ExactEvmScheme

        facilitator = x402Facilitator(
            hooks=FacilitatorHooks(before_verify=[bridge_liquidity_hook(coordinator)]),
            cross_chain_router=router,
        )
        facilitator.register(["eip155:84532"], ExactEvmScheme(signers))
        facilitator.register_extension("cross-chain")

        result = await facilitator.verify(payload, requirements)
        ```

    Args:
        hooks: Lifecycle hooks.
        cross_chain_router: Handles every payload carrying the cross-chain
            extension. Without it such payloads go to the regular registry.
        extension_registry: Decoders for known extension keys.
    """

    def __init__(
        self,
        hooks: FacilitatorHooks | None = None,
        cross_chain_router: SchemeNetworkFacilitator | None = None,
        extension_registry: ExtensionRegistry | None = None,
    ) -> None:
        self._schemes: list[_SchemeData[SchemeNetworkFacilitator]] = []
        self._extensions: list[str] = []
        self._hooks = hooks or FacilitatorHooks()
        self._router = cross_chain_router
        self._extension_registry = extension_registry or default_extension_registry()

    # ========================================================================
    # Registration
    # ========================================================================

    def register(
        self,
        networks: list[Network],
        facilitator: SchemeNetworkFacilitator,
    ) -> Self:
        """Register a facilitator for one or more networks.

        Args:
            networks: List of networks to register for.
            facilitator: Scheme facilitator implementation.

        Returns:
            Self for chaining.
        """
        pattern = derive_network_pattern(networks)
        self._schemes.append(
            _SchemeData(
                facilitator=facilitator,
                networks=set(networks),
                pattern=pattern,
            )
        )
        return self

    def register_extension(self, extension: str) -> Self:
        """Register an extension name advertised in /supported.

        Args:
            extension: Extension key (e.g., "cross-chain").

        Returns:
            Self for chaining.
        """
        if extension not in self._extensions:
            self._extensions.append(extension)
        return self

    @property
    def hooks(self) -> FacilitatorHooks:
        return self._hooks

    # ========================================================================
    # Verify
    # ========================================================================

    async def verify(
        self,
        payload: PaymentPayload,
        requirements: PaymentRequirements,
    ) -> VerifyResponse:
        """Verify a payment.

        Args:
            payload: Payment payload to verify.
            requirements: Requirements to verify against.

        Returns:
            VerifyResponse with is_valid=True or is_valid=False.

        Raises:
            HookFailureError: If a hook raises.
        """
        context = VerifyContext(
            payment_payload=payload,
            requirements=requirements,
            extensions=self._decode_extensions(payload),
        )

        # Execute before hooks
        for hook in self._hooks.before_verify:
            try:
                outcome = await _maybe_await(hook(context))
            except Exception as e:
                await self._run_verify_failure_hooks(context, e)
                raise HookFailureError("before_verify", e) from e
            if isinstance(outcome, AbortResult) and outcome.abort:
                logger.info("Verification aborted by hook: %s", outcome.reason)
                return VerifyResponse(is_valid=False, invalid_reason=outcome.reason)

        handler = self._resolve(payload, requirements)
        if handler is None:
            error = SchemeNotFoundError(requirements.scheme, requirements.network)
            return await self._verify_failed(
                context, VerifyResponse(is_valid=False, invalid_reason=error.reason), error
            )

        try:
            verify_result = await handler.verify(payload, requirements)
        except VerifyError as e:
            return await self._verify_failed(
                context,
                VerifyResponse(is_valid=False, invalid_reason=e.reason, payer=e.payer),
                e,
            )
        except Exception as e:
            recovered = await self._run_verify_failure_hooks(context, e)
            if recovered is not None:
                await self._run_after_verify_hooks(context, recovered.result)
                return recovered.result
            raise

        if not verify_result.is_valid:
            error = VerifyError(verify_result.invalid_reason or "verification_failed", verify_result.payer)
            return await self._verify_failed(context, verify_result, error)

        await self._run_after_verify_hooks(context, verify_result)
        return verify_result

    async def _verify_failed(
        self,
        context: VerifyContext,
        verify_result: VerifyResponse,
        error: Exception,
    ) -> VerifyResponse:
        recovered = await self._run_verify_failure_hooks(context, error)
        if recovered is not None:
            # Execute after hooks with recovered result
            await self._run_after_verify_hooks(context, recovered.result)
            return recovered.result
        return verify_result

    async def _run_verify_failure_hooks(
        self, context: VerifyContext, error: Exception
    ) -> RecoveredVerifyResult | None:
        failure_context = VerifyFailureContext(
            payment_payload=context.payment_payload,
            requirements=context.requirements,
            extensions=context.extensions,
            error=error,
        )
        for hook in self._hooks.on_verify_failure:
            try:
                outcome = await _maybe_await(hook(failure_context))
            except Exception as e:
                raise HookFailureError("on_verify_failure", e) from e
            if isinstance(outcome, RecoveredVerifyResult):
                return outcome
        return None

    async def _run_after_verify_hooks(
        self, context: VerifyContext, verify_result: VerifyResponse
    ) -> None:
        result_context = VerifyResultContext(
            payment_payload=context.payment_payload,
            requirements=context.requirements,
            extensions=context.extensions,
            result=verify_result,
        )
        for hook in self._hooks.after_verify:
            try:
                await _maybe_await(hook(result_context))
            except Exception as e:
                await self._run_verify_failure_hooks(context, e)
                raise HookFailureError("after_verify", e) from e

    # ========================================================================
    # Settle
    # ========================================================================

    async def settle(
        self,
        payload: PaymentPayload,
        requirements: PaymentRequirements,
    ) -> SettleResponse:
        """Settle a payment.

        Always verifies first; an invalid payment is never sent to the chain.

        Args:
            payload: Payment payload to settle.
            requirements: Requirements for settlement.

        Returns:
            SettleResponse with success=True or success=False.

        Raises:
            HookFailureError: If a hook raises.
        """
        verify_result = await self.verify(payload, requirements)
        if not verify_result.is_valid:
            return SettleResponse(
                success=False,
                error_reason=verify_result.invalid_reason,
                transaction="",
                network=requirements.network,
                payer=verify_result.payer,
            )

        context = SettleContext(
            payment_payload=payload,
            requirements=requirements,
            extensions=self._decode_extensions(payload),
        )

        # Execute before hooks
        for hook in self._hooks.before_settle:
            try:
                outcome = await _maybe_await(hook(context))
            except Exception as e:
                await self._run_settle_failure_hooks(context, e)
                raise HookFailureError("before_settle", e) from e
            if isinstance(outcome, AbortResult) and outcome.abort:
                logger.info("Settlement aborted by hook: %s", outcome.reason)
                return SettleResponse(
                    success=False,
                    error_reason=outcome.reason,
                    transaction="",
                    network=requirements.network,
                    payer=verify_result.payer,
                )

        handler = self._resolve(payload, requirements)
        if handler is None:
            error = SchemeNotFoundError(requirements.scheme, requirements.network)
            return await self._settle_failed(
                context,
                SettleResponse(
                    success=False,
                    error_reason=error.reason,
                    transaction="",
                    network=requirements.network,
                ),
                error,
            )

        try:
            settle_result = await handler.settle(payload, requirements)
        except SettleError as e:
            return await self._settle_failed(
                context,
                SettleResponse(
                    success=False,
                    error_reason=e.reason,
                    transaction=e.transaction,
                    network=e.network or requirements.network,
                    payer=e.payer,
                ),
                e,
            )
        except Exception as e:
            recovered = await self._run_settle_failure_hooks(context, e)
            if recovered is not None:
                await self._run_after_settle_hooks(context, recovered.result)
                return recovered.result
            raise

        if not settle_result.success:
            error = SettleError(
                settle_result.error_reason or "settlement_failed",
                transaction=settle_result.transaction,
                network=settle_result.network,
                payer=settle_result.payer,
            )
            return await self._settle_failed(context, settle_result, error)

        await self._run_after_settle_hooks(context, settle_result)
        return settle_result

    async def _settle_failed(
        self,
        context: SettleContext,
        settle_result: SettleResponse,
        error: Exception,
    ) -> SettleResponse:
        recovered = await self._run_settle_failure_hooks(context, error)
        if recovered is not None:
            # Execute after hooks with recovered result
            await self._run_after_settle_hooks(context, recovered.result)
            return recovered.result
        return settle_result

    async def _run_settle_failure_hooks(
        self, context: SettleContext, error: Exception
    ) -> RecoveredSettleResult | None:
        failure_context = SettleFailureContext(
            payment_payload=context.payment_payload,
            requirements=context.requirements,
            extensions=context.extensions,
            error=error,
        )
        for hook in self._hooks.on_settle_failure:
            try:
                outcome = await _maybe_await(hook(failure_context))
            except Exception as e:
                raise HookFailureError("on_settle_failure", e) from e
            if isinstance(outcome, RecoveredSettleResult):
                return outcome
        return None

    async def _run_after_settle_hooks(
        self, context: SettleContext, settle_result: SettleResponse
    ) -> None:
        result_context = SettleResultContext(
            payment_payload=context.payment_payload,
            requirements=context.requirements,
            extensions=context.extensions,
            result=settle_result,
        )
        for hook in self._hooks.after_settle:
            try:
                await _maybe_await(hook(result_context))
            except Exception as e:
                await self._run_settle_failure_hooks(context, e)
                raise HookFailureError("after_settle", e) from e

    # ========================================================================
    # Supported
    # ========================================================================

    def get_supported(self) -> SupportedResponse:
        """Get supported payment kinds and extensions.

        Returns:
            SupportedResponse with kinds, extensions, and signers.
        """
        kinds: list[SupportedKind] = []
        signers: dict[str, list[str]] = {}

        for scheme_data in self._schemes:
            facilitator = scheme_data.facilitator

            for network in sorted(scheme_data.networks):
                kinds.append(
                    SupportedKind(
                        scheme=facilitator.scheme,
                        network=network,
                        extra=facilitator.get_extra(network),
                    )
                )

                # Collect signers by CAIP family
                family_signers = signers.setdefault(facilitator.caip_family, [])
                for signer in facilitator.get_signers(network):
                    if signer not in family_signers:
                        family_signers.append(signer)

        return SupportedResponse(
            kinds=kinds,
            extensions=self.get_extensions(),
            signers=signers,
        )

    def get_extensions(self) -> list[str]:
        """Get registered extension names.

        Returns:
            List of extension keys.
        """
        return list(self._extensions)

    # ========================================================================
    # Internal Helpers
    # ========================================================================

    def _decode_extensions(self, payload: PaymentPayload) -> DecodedExtensions:
        decoded = self._extension_registry.decode(payload.extensions)
        for key, message in decoded.errors.items():
            logger.debug("Extension %s failed to decode: %s", key, message)
        return decoded

    def _resolve(
        self,
        payload: PaymentPayload,
        requirements: PaymentRequirements,
    ) -> SchemeNetworkFacilitator | None:
        """Pick the handler for a call: the router for cross-chain payloads, else the registry."""
        if self._router is not None and has_cross_chain_extension(payload):
            return self._router
        return self._find_facilitator(requirements.scheme, requirements.network)

    def _find_facilitator(
        self,
        scheme: str,
        network: Network,
    ) -> SchemeNetworkFacilitator | None:
        """Find facilitator for scheme/network."""
        for scheme_data in self._schemes:
            if scheme_data.facilitator.scheme != scheme:
                continue

            # Check if network matches
            if network in scheme_data.networks:
                return scheme_data.facilitator

            # Check wildcard pattern
            if matches_network_pattern(network, scheme_data.pattern):
                return scheme_data.facilitator

        return None
