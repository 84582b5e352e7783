"""Generation route.

This module handles the single generation endpoint used by the editor
extension, for classroom students, static-token holders and open mode alike.
"""

import logging

from fastapi import APIRouter, HTTPException
from fastapi.concurrency import run_in_threadpool

from core.dependencies import AuthorizerDep, BearerTokenDep, GenerationServiceDep
from core.exceptions import VibbitError
from schemas.generation import GenerateRequest, GenerateResponse
from utils.generation_service import validate_payload

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Generate"])


@router.post("/vibbit/generate", response_model=GenerateResponse, summary="Generate code")
async def generate(
    req: GenerateRequest,
    token: BearerTokenDep,
    authorizer: AuthorizerDep,
    generation_service: GenerationServiceDep,
) -> GenerateResponse:
    """Generate MakeCode for a request.

    The payload is validated first so a malformed request never costs quota.
    Admission then charges student quota before the provider is called; a
    request that later times out or fails upstream is not refunded.

    Args:
        req: Generation request body.
        token: Raw bearer token ("" if absent).
        authorizer: Injected admission engine.
        generation_service: Injected generation pipeline.

    Returns:
        GenerateResponse with non-empty code and feedback lines.

    Raises:
        HTTPException: With the status carried by the VibbitError raised.
    """
    try:
        payload = validate_payload(req.target, req.request, req.current_code)
        # Store access is blocking; keep it off the event loop
        principal = await run_in_threadpool(authorizer.authorize, token or None)
        result = await generation_service.generate(payload)
    except VibbitError as exc:
        if exc.status_code >= 500:
            logger.error("Generation failed: %s", exc)
        raise HTTPException(status_code=exc.status_code, detail=str(exc))

    logger.debug("Served generation for %s principal", principal.kind)
    return GenerateResponse(code=result.code, feedback=result.feedback)
