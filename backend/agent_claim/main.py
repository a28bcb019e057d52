from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from agent_claim.config import Settings, settings
from agent_claim.logging_config import get_logger, setup_logging
from agent_claim.middleware.logging import LoggingMiddleware
from agent_claim.middleware.rate_limit import limiter
from agent_claim.routers import claim
from agent_claim.services.challenge_service import ChallengeStore
from agent_claim.services.claim_executor import CloudClaimExecutor
from agent_claim.services.claim_service import ClaimService
from agent_claim.services.cloud_status import CloudStatusTracker
from agent_claim.services.node_identity import load_node_identity

logger = get_logger(__name__)


def build_claim_service(config: Settings) -> ClaimService:
    """Wire the challenge store, cloud state and cloud client together."""
    identity = load_node_identity(config)

    tracker = CloudStatusTracker(claimed_id_path=config.claimed_id_path)
    tracker.load_claimed_id()

    store = ChallengeStore(config.challenge_path)
    store.generate()

    return ClaimService(
        store=store,
        tracker=tracker,
        executor=CloudClaimExecutor(config, identity, tracker),
        identity=identity,
        settings=config,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build the claim service unless a test already installed one."""
    if getattr(app.state, "claim_service", None) is None:
        setup_logging()
        app.state.claim_service = build_claim_service(settings)
        logger.info(
            "agent_started",
            challenge_file=str(settings.challenge_path),
            cloud_status=app.state.claim_service.tracker.status().value,
        )
    yield


app = FastAPI(
    title="agent-claim",
    description="Local proof-of-possession handshake for claiming an agent",
    version="0.1.0",
    lifespan=lifespan,
)

# Rate limiting
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

app.add_middleware(LoggingMiddleware)

# CORS (the cloud UI calls the claim endpoint from the browser)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET"],
    allow_headers=["*"],
)

app.include_router(claim.router, prefix="/api/v2", tags=["claim"])


@app.get("/health")
async def health_check():
    return {"status": "healthy"}
