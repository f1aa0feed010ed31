"""
Image generation router.

Endpoints:
- POST /api/generate - Run one studio generation end to end
"""

import logging

from fastapi import APIRouter, Depends, Request

from api.dependencies import get_orchestrator
from api.schemas.common import ErrorResponse
from api.schemas.generate import GenerateRequest, GenerateResponse
from core.auth import VerifiedIdentity, require_identity
from services import GenerationOrchestrator, GenerationRequest

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/generate", tags=["generation"])


@router.post(
    "",
    response_model=GenerateResponse,
    responses={
        400: {"model": ErrorResponse},
        401: {"model": ErrorResponse},
        403: {"model": ErrorResponse},
        429: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
        504: {"model": ErrorResponse},
    },
)
async def generate(
    http_request: Request,
    body: GenerateRequest,
    identity: VerifiedIdentity = Depends(require_identity),
    orchestrator: GenerationOrchestrator = Depends(get_orchestrator),
):
    """
    Generate a professional photo from the uploaded one.

    The caller's identity always comes from the bearer credential; the
    request runs rate limit, moderation, quota, submission, polling and
    recording in that order and stops at the first failure.
    """
    logger.info(f"Generating [{body.type}] for user [{identity.user_id}]")

    request = GenerationRequest(
        style_kind=body.type,
        image_data=body.image,
        image_url=body.image_url,
        instructions=body.prompt,
        constraints=body.constraints,
        gender_mode=body.gender_mode,
    )
    return await orchestrator.run(
        identity,
        request,
        is_cancelled=http_request.is_disconnected,
    )
