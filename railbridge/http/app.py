"""FastAPI application exposing the facilitator over HTTP."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ValidationError

from ..schemas import HookFailureError, PaymentRequirements, parse_payment_payload

if TYPE_CHECKING:
    from ..facilitator import x402Facilitator
    from ..service import FacilitatorService

logger = logging.getLogger(__name__)


# Pydantic models for request bodies
class VerifyRequest(BaseModel):
    """Verify endpoint request body."""

    paymentPayload: dict[str, Any]
    paymentRequirements: dict[str, Any]


class SettleRequest(BaseModel):
    """Settle endpoint request body."""

    paymentPayload: dict[str, Any]
    paymentRequirements: dict[str, Any]


def _parse(body: VerifyRequest | SettleRequest) -> tuple[Any, PaymentRequirements]:
    try:
        payload = parse_payment_payload(body.paymentPayload)
        requirements = PaymentRequirements.model_validate(body.paymentRequirements)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=f"Invalid request: {e}") from e
    return payload, requirements


def create_app(
    facilitator: x402Facilitator,
    service: FacilitatorService | None = None,
) -> FastAPI:
    """Create the facilitator HTTP app.

    Args:
        facilitator: Facilitator handling verify/settle.
        service: Optional service whose bridge worker runs for the app's lifetime.

    Returns:
        FastAPI application.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        if service is not None:
            await service.start()
        try:
            yield
        finally:
            if service is not None:
                await service.stop()

    app = FastAPI(
        title="RailBridge Facilitator",
        description="Verifies and settles x402 payments, bridging cross-chain payouts",
        version="0.1.0",
        lifespan=lifespan,
    )

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        return JSONResponse(status_code=400, content={"error": "Invalid request", "details": exc.errors()})

    @app.exception_handler(HookFailureError)
    async def hook_failure_handler(request: Request, exc: HookFailureError) -> JSONResponse:
        logger.error("Hook failure on %s: %s", request.url.path, exc)
        return JSONResponse(status_code=500, content={"error": str(exc)})

    @app.post("/verify")
    async def verify(body: VerifyRequest) -> dict[str, Any]:
        """Verify a payment against requirements.

        Returns:
            VerifyResponse with isValid and payer (if valid) or invalidReason.
        """
        payload, requirements = _parse(body)
        response = await facilitator.verify(payload, requirements)
        return response.to_wire()

    @app.post("/settle")
    async def settle(body: SettleRequest) -> dict[str, Any]:
        """Settle a payment on-chain.

        Returns:
            SettleResponse with success, transaction, network, and payer.
        """
        payload, requirements = _parse(body)
        response = await facilitator.settle(payload, requirements)
        return response.to_wire()

    @app.get("/supported")
    async def supported() -> dict[str, Any]:
        """Get supported payment kinds and extensions."""
        return facilitator.get_supported().model_dump(by_alias=True)

    @app.get("/bridge/jobs/{job_id}")
    async def bridge_job(job_id: str) -> dict[str, Any]:
        """Status of the bridge owed for one source settlement (``<network>:<tx>``)."""
        queue = service.bridge_queue if service is not None else None
        if queue is None:
            raise HTTPException(status_code=404, detail="Bridging is not configured")
        job = await queue.store.get(job_id)
        if job is None:
            raise HTTPException(status_code=404, detail=f"No bridge job {job_id}")
        return {
            "id": job.id,
            "status": job.status.value,
            "sourceChain": job.source_chain,
            "sourceTx": job.source_tx,
            "destChain": job.dest_chain,
            "bridgeTx": job.bridge_tx,
            "destinationTx": job.dest_tx,
            "attempts": job.attempts,
            "lastError": job.last_error,
        }

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Health check endpoint."""
        return {"status": "healthy", "timestamp": datetime.now(timezone.utc).isoformat()}

    return app
