import structlog
from fastapi import APIRouter, Depends, Request
from fastapi.responses import PlainTextResponse

from agent_claim.config import settings
from agent_claim.middleware.rate_limit import limiter
from agent_claim.schemas.claim import ClaimResponse
from agent_claim.services.claim_params import (
    ClaimRequest,
    InvalidClaimParameters,
    parse_claim_query,
)
from agent_claim.services.claim_service import ClaimService, InvalidClaimKey

router = APIRouter()
logger = structlog.get_logger()


def get_claim_service(request: Request) -> ClaimService:
    """Dependency returning the ClaimService built at startup."""
    return request.app.state.claim_service


@limiter.limit(settings.rate_limit_claims)
async def _attempt_claim(request: Request, service: ClaimService, claim_request: ClaimRequest):
    """Run a key-bearing request; these alone count against the rate limit."""
    return await service.handle(claim_request)


@router.get(
    "/claim",
    response_model=ClaimResponse,
    response_model_exclude_none=True,
    responses={
        400: {"description": "invalid parameters"},
        403: {"description": "invalid key"},
        429: {"description": "too many claim attempts"},
    },
)
async def claim(
    request: Request,
    service: ClaimService = Depends(get_claim_service),
):
    """
    Report claim status, or claim the agent when ``key`` is supplied.

    Query parameters: ``key`` (contents of the challenge file), ``token``,
    ``rooms`` (comma separated, optional) and ``url`` (cloud base URL).
    """
    claim_request = parse_claim_query(request.url.query)

    try:
        if claim_request.key:
            return await _attempt_claim(
                request=request, service=service, claim_request=claim_request
            )
        return await service.handle(claim_request)
    except InvalidClaimKey:
        return PlainTextResponse("invalid key", status_code=403)
    except InvalidClaimParameters as e:
        logger.info("claim_rejected", field=e.field, reason=e.reason)
        return PlainTextResponse("invalid parameters", status_code=400)
