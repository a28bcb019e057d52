import pytest
from fastapi.testclient import TestClient

from agent_claim.config import Settings
from agent_claim.main import app
from agent_claim.middleware.rate_limit import limiter
from agent_claim.services.challenge_service import ChallengeStore
from agent_claim.services.claim_service import ClaimService
from agent_claim.services.cloud_status import CloudStatusTracker
from agent_claim.services.node_identity import NodeIdentity
from tests.test_utils import TEST_MACHINE_GUID, FakeClaimExecutor


@pytest.fixture
def test_settings(tmp_path):
    """Settings pointing all agent state at a temporary directory."""
    return Settings(
        varlib_dir=tmp_path,
        machine_guid=TEST_MACHINE_GUID,
        hostname="test-host",
        claim_online_timeout_seconds=0,
        claim_online_poll_seconds=0.01,
        operator_platform="posix",
    )


@pytest.fixture
def tracker(test_settings):
    return CloudStatusTracker(claimed_id_path=test_settings.claimed_id_path)


@pytest.fixture
def challenge_store(test_settings):
    store = ChallengeStore(test_settings.challenge_path)
    store.generate()
    return store


@pytest.fixture
def fake_executor(tracker):
    return FakeClaimExecutor(tracker)


@pytest.fixture
def claim_service(test_settings, challenge_store, tracker, fake_executor):
    return ClaimService(
        store=challenge_store,
        tracker=tracker,
        executor=fake_executor,
        identity=NodeIdentity(
            machine_guid=TEST_MACHINE_GUID, hostname="test-host", version="0.1.0"
        ),
        settings=test_settings,
    )


@pytest.fixture
def client(claim_service):
    """Test client wired to the temporary claim service, rate limiting disabled."""
    app.state.claim_service = claim_service
    limiter.enabled = False

    with TestClient(app) as test_client:
        yield test_client

    limiter.enabled = True
    app.state.claim_service = None
