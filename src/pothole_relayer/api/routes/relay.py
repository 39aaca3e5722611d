"""Meta-transaction relay endpoints."""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from pothole_relayer.relay.models import NonceResponse, RelayerStatus, RelayRequestBody
from pothole_relayer.relay.service import RelayerService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/relay")


def get_relayer_service(request: Request) -> RelayerService:
    """Relayer service attached to the app at startup."""
    return request.app.state.relayer_service


@router.post("")
async def relay_meta_tx(
    body: RelayRequestBody,
    service: RelayerService = Depends(get_relayer_service),
):
    """Relay a signed forward request.

    Returns 200 with the transaction hash once mined, 400 when the request
    is rejected, 500 on unexpected errors.
    """
    logger.info("Received relay request")

    if body.request is None:
        return JSONResponse(
            status_code=400,
            content={"success": False, "error": "Missing request"},
        )

    payload = body.request
    if not payload.signature and body.signature:
        payload = payload.model_copy(update={"signature": body.signature})

    try:
        result = await service.process_meta_tx(payload)
    except Exception:
        logger.exception("Relay API error")
        return JSONResponse(
            status_code=500,
            content={"success": False, "error": "Internal server error"},
        )

    return JSONResponse(
        status_code=200 if result.success else 400,
        content=result.to_dict(),
    )


@router.get("/nonce", response_model=NonceResponse)
async def get_nonce(
    address: Optional[str] = None,
    service: RelayerService = Depends(get_relayer_service),
):
    """Current forwarder nonce for a signer."""
    if not address:
        return JSONResponse(status_code=400, content={"error": "Missing address parameter"})

    try:
        nonce = await service.get_nonce(address)
    except Exception as e:
        logger.error(f"Nonce lookup failed for {address}: {e}")
        return JSONResponse(status_code=500, content={"error": "Failed to get nonce"})

    return NonceResponse(nonce=str(nonce))


@router.get("/status", response_model=RelayerStatus)
async def get_status(service: RelayerService = Depends(get_relayer_service)):
    """Relayer wallet and configuration status."""
    try:
        status = await service.get_status()
    except Exception as e:
        logger.error(f"Status error: {e}")
        return JSONResponse(status_code=500, content={"error": "Failed to get status"})

    return RelayerStatus(**status)
