"""Cloud connection state and the claimability rule derived from it."""

import asyncio
import threading
import time
from enum import Enum
from pathlib import Path

from agent_claim.logging_config import get_logger
from agent_claim.schemas.claim import CloudStatusInfo

logger = get_logger(__name__)


class CloudStatus(str, Enum):
    AVAILABLE = "available"
    OFFLINE = "offline"
    INDIRECT = "indirect"
    BANNED = "banned"
    ONLINE = "online"


CLAIMABLE_STATUSES = frozenset({CloudStatus.AVAILABLE, CloudStatus.OFFLINE, CloudStatus.INDIRECT})


def can_be_claimed(status: CloudStatus) -> bool:
    return status in CLAIMABLE_STATUSES


class CloudStatusTracker:
    """
    Connection state as reported by the agent's cloud link.

    The link itself lives elsewhere; it calls the ``mark_*`` methods and the
    claim handshake reads ``status()`` / ``snapshot()``.
    """

    def __init__(self, claimed_id_path: Path | None = None):
        self.claimed_id_path = claimed_id_path
        self._lock = threading.Lock()
        self._claimed_id: str | None = None
        self._connected = False
        self._banned = False
        self._indirect = False
        self._reason: str | None = None
        self._url: str | None = None
        self._since = time.time()

    def load_claimed_id(self) -> str | None:
        """Restore the claimed ID persisted by a previous successful claim."""
        if self.claimed_id_path is None:
            return None
        try:
            claimed_id = self.claimed_id_path.read_text(encoding="utf-8").strip() or None
        except FileNotFoundError:
            return None
        except OSError as e:
            logger.warning("claimed_id_read_failed", path=str(self.claimed_id_path), error=str(e))
            return None

        with self._lock:
            self._claimed_id = claimed_id
            self._since = time.time()
        return claimed_id

    def status(self) -> CloudStatus:
        with self._lock:
            return self._status_locked()

    def snapshot(self) -> CloudStatusInfo:
        with self._lock:
            now = time.time()
            return CloudStatusInfo(
                status=self._status_locked().value,
                since=int(self._since),
                age=int(now - self._since),
                url=self._url,
                reason=self._reason,
                claim_id=self._claimed_id,
            )

    def mark_claimed(self, claimed_id: str, url: str | None = None) -> None:
        with self._lock:
            self._claimed_id = claimed_id
            self._url = url
            self._banned = False
            self._reason = None
            self._touch_locked()

    def mark_connected(self) -> None:
        with self._lock:
            self._connected = True
            self._reason = None
            self._touch_locked()

    def mark_disconnected(self, reason: str | None = None) -> None:
        with self._lock:
            self._connected = False
            self._reason = reason
            self._touch_locked()

    def mark_banned(self, reason: str | None = None) -> None:
        with self._lock:
            self._banned = True
            self._connected = False
            self._reason = reason
            self._touch_locked()

    def set_indirect(self, indirect: bool) -> None:
        with self._lock:
            self._indirect = indirect
            self._touch_locked()

    async def wait_for_online(self, timeout: float, poll_interval: float = 0.25) -> CloudStatus:
        """Poll until ONLINE or until ``timeout`` seconds pass; returns the last status."""
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        status = self.status()
        while status != CloudStatus.ONLINE and loop.time() < deadline:
            await asyncio.sleep(poll_interval)
            status = self.status()
        return status

    def _status_locked(self) -> CloudStatus:
        if self._banned:
            return CloudStatus.BANNED
        if self._claimed_id and self._connected:
            return CloudStatus.ONLINE
        if self._indirect:
            return CloudStatus.INDIRECT
        if self._claimed_id:
            return CloudStatus.OFFLINE
        return CloudStatus.AVAILABLE

    def _touch_locked(self) -> None:
        self._since = time.time()
