from slowapi import Limiter
from starlette.requests import Request

from agent_claim.config import settings


def get_client_address(request: Request) -> str:
    """Rate limit key for claim attempts.

    The agent normally listens directly, so the socket peer is used. When it
    is published through a local reverse proxy, ``TRUST_FORWARDED_FOR`` makes
    the first X-Forwarded-For hop the key instead.
    """
    if settings.trust_forwarded_for:
        forwarded = request.headers.get("X-Forwarded-For")
        if forwarded:
            return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


limiter = Limiter(key_func=get_client_address)
