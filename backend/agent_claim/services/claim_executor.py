"""
Cloud claim call.

One POST per attempt, no retries. Cloud-side and network failures come back as
a ``ClaimOutcome`` with a human readable reason; they never raise.
"""

from dataclasses import dataclass

import httpx

from agent_claim.config import Settings
from agent_claim.logging_config import get_logger
from agent_claim.services.cloud_status import CloudStatus, CloudStatusTracker
from agent_claim.services.node_identity import NodeIdentity

logger = get_logger(__name__)


@dataclass(frozen=True)
class ClaimOutcome:
    success: bool
    message: str
    claimed_id: str | None = None
    url: str | None = None


def _cloud_error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        for field in ("errorMessage", "message", "error"):
            value = body.get(field)
            if isinstance(value, str) and value:
                return value
    return f"cloud returned HTTP {response.status_code}"


class CloudClaimExecutor:
    def __init__(self, settings: Settings, identity: NodeIdentity, tracker: CloudStatusTracker):
        self.settings = settings
        self.identity = identity
        self.tracker = tracker

    def claim_endpoint(self, base_url: str) -> str:
        return f"{base_url.rstrip('/')}/api/v1/spaces/nodes/{self.identity.machine_guid}"

    async def attempt_claim(
        self,
        base_url: str,
        token: str,
        rooms: list[str],
        proxy: str | None = None,
        insecure: bool = False,
    ) -> ClaimOutcome:
        payload = {
            "hostname": self.identity.hostname,
            "machine_guid": self.identity.machine_guid,
            "rooms": rooms,
        }

        # httpx validates the proxy URL (and its scheme) when the client is built
        try:
            client = httpx.AsyncClient(
                proxy=proxy,
                verify=not insecure,
                timeout=self.settings.cloud_request_timeout_seconds,
            )
        except (httpx.InvalidURL, ValueError) as e:
            logger.error("cloud_claim_invalid_proxy", error=str(e))
            return ClaimOutcome(success=False, message=f"invalid cloud proxy {proxy}")

        try:
            async with client as cloud:
                response = await cloud.post(
                    self.claim_endpoint(base_url),
                    json=payload,
                    headers={"Authorization": f"Bearer {token}"},
                )
                response.raise_for_status()
        except httpx.InvalidURL as e:
            logger.warning("cloud_claim_invalid_url", error=str(e))
            return ClaimOutcome(success=False, message=f"invalid cloud url {base_url}")
        except httpx.HTTPStatusError as e:
            message = _cloud_error_message(e.response)
            logger.warning(
                "cloud_claim_rejected",
                status_code=e.response.status_code,
                reason=message,
            )
            return ClaimOutcome(success=False, message=message)
        except httpx.RequestError as e:
            message = f"failed to connect to {base_url}"
            if str(e):
                message = f"{message}: {e}"
            logger.warning("cloud_claim_request_error", error=str(e), error_type=type(e).__name__)
            return ClaimOutcome(success=False, message=message)

        claimed_id = self.identity.machine_guid
        try:
            body = response.json()
        except ValueError:
            body = None
        if isinstance(body, dict) and isinstance(body.get("claimed_id"), str) and body["claimed_id"]:
            claimed_id = body["claimed_id"]

        self._persist_claimed_id(claimed_id)
        logger.info("cloud_claim_accepted", claimed_id=claimed_id)
        return ClaimOutcome(success=True, message="ok", claimed_id=claimed_id, url=base_url)

    async def reload_and_wait_for_status(self, outcome: ClaimOutcome) -> CloudStatus:
        """Record the claim in ``outcome``, then wait (bounded) for the cloud link."""
        if outcome.claimed_id:
            self.tracker.mark_claimed(outcome.claimed_id, url=outcome.url)
        status = await self.tracker.wait_for_online(
            timeout=self.settings.claim_online_timeout_seconds,
            poll_interval=self.settings.claim_online_poll_seconds,
        )
        if status != CloudStatus.ONLINE:
            logger.info("cloud_not_online_after_claim", status=status.value)
        return status

    def _persist_claimed_id(self, claimed_id: str) -> None:
        path = self.settings.claimed_id_path
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(claimed_id + "\n", encoding="utf-8")
        except OSError as e:
            logger.error("claimed_id_write_failed", path=str(path), error=str(e))
