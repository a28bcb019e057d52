import socket
import time
import uuid
from dataclasses import dataclass
from pathlib import Path

from agent_claim.config import Settings
from agent_claim.logging_config import get_logger
from agent_claim.schemas.claim import AgentInfo

logger = get_logger(__name__)

MACHINE_GUID_FILENAME = "machine_guid"


@dataclass(frozen=True)
class NodeIdentity:
    machine_guid: str
    hostname: str
    version: str

    def agent_info(self) -> AgentInfo:
        return AgentInfo(
            mg=self.machine_guid,
            nm=self.hostname,
            version=self.version,
            now=int(time.time()),
        )


def _load_or_create_machine_guid(path: Path) -> str:
    try:
        existing = path.read_text(encoding="utf-8").strip()
    except FileNotFoundError:
        existing = ""

    if existing:
        try:
            return str(uuid.UUID(existing))
        except ValueError:
            logger.warning("machine_guid_invalid", path=str(path))

    machine_guid = str(uuid.uuid4())
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(machine_guid + "\n", encoding="utf-8")
    logger.info("machine_guid_created", machine_guid=machine_guid)
    return machine_guid


def load_node_identity(settings: Settings) -> NodeIdentity:
    """Build the agent identity from settings, persisting a machine GUID on first run."""
    machine_guid = settings.machine_guid or _load_or_create_machine_guid(
        settings.varlib_dir / MACHINE_GUID_FILENAME
    )
    return NodeIdentity(
        machine_guid=machine_guid,
        hostname=settings.hostname or socket.gethostname(),
        version=settings.agent_version,
    )
