"""
Claim handshake.

A caller proves local admin access by echoing the challenge from the backing
file as ``key``. Once a key has been checked the challenge is rotated, whether
the key matched or not and whatever happens next, so a disclosed challenge is
single use. Requests without a key only report status and never rotate.
"""

from typing import Protocol

from agent_claim.config import Settings
from agent_claim.logging_config import get_logger
from agent_claim.schemas.claim import ClaimResponse
from agent_claim.services.challenge_service import ChallengeStore
from agent_claim.services.claim_executor import ClaimOutcome
from agent_claim.services.claim_params import ClaimRequest, validate_claim_request
from agent_claim.services.cloud_status import CloudStatus, CloudStatusTracker, can_be_claimed
from agent_claim.services.node_identity import NodeIdentity
from agent_claim.services.operator_command import render_operator_command

logger = get_logger(__name__)


class InvalidClaimKey(Exception):
    """The supplied key does not match the current challenge."""


class ClaimExecutor(Protocol):
    async def attempt_claim(
        self,
        base_url: str,
        token: str,
        rooms: list[str],
        proxy: str | None = None,
        insecure: bool = False,
    ) -> ClaimOutcome: ...

    async def reload_and_wait_for_status(self, outcome: ClaimOutcome) -> CloudStatus: ...


class ClaimService:
    def __init__(
        self,
        store: ChallengeStore,
        tracker: CloudStatusTracker,
        executor: ClaimExecutor,
        identity: NodeIdentity,
        settings: Settings,
    ):
        self.store = store
        self.tracker = tracker
        self.executor = executor
        self.identity = identity
        self.settings = settings

    async def handle(self, request: ClaimRequest) -> ClaimResponse:
        """
        Run one handshake.

        Raises InvalidClaimKey or InvalidClaimParameters for rejected requests.
        A failed cloud call is not an error: it is reported in the response.
        """
        claimable = can_be_claimed(self.tracker.status())

        outcome: ClaimOutcome | None = None
        if claimable and request.key:
            outcome = await self._attempt(request)
            if outcome.success:
                claimable = False

        return self._build_response(claimable, outcome)

    async def _attempt(self, request: ClaimRequest) -> ClaimOutcome:
        if not self.store.verify_and_rotate(request.key):
            logger.warning("claim_key_rejected")
            raise InvalidClaimKey()

        try:
            validate_claim_request(request)
        except ValueError as e:
            logger.warning("claim_params_rejected", detail=str(e))
            raise

        # Challenge already rotated; the lock is not held across the cloud call
        outcome = await self.executor.attempt_claim(
            request.base_url,
            request.token,
            request.room_ids,
            self.settings.cloud_proxy,
            self.settings.cloud_insecure,
        )

        if outcome.success:
            status = await self.executor.reload_and_wait_for_status(outcome)
            logger.info("claim_attempt_succeeded", status=status.value)
        else:
            logger.warning("claim_attempt_failed", reason=outcome.message)
        return outcome

    def _build_response(self, claimable: bool, outcome: ClaimOutcome | None) -> ClaimResponse:
        response = ClaimResponse(
            cloud=self.tracker.snapshot(),
            can_be_claimed=claimable,
            agents=[self.identity.agent_info()],
        )

        if outcome is not None:
            response.success = outcome.success
            response.message = outcome.message

        if claimable:
            operator = render_operator_command(
                self.store.filename(), platform=self.settings.operator_platform
            )
            response.key_filename = operator.display_path
            response.cmd = operator.command
            response.help = operator.help

        return response
