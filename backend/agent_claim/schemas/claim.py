from pydantic import BaseModel, Field


class CloudStatusInfo(BaseModel):
    status: str = Field(..., description="available, offline, indirect, banned or online")
    since: int = Field(..., description="Unix time of the last state change")
    age: int = Field(..., description="Seconds since the last state change")
    url: str | None = None
    reason: str | None = None
    claim_id: str | None = None


class AgentInfo(BaseModel):
    mg: str = Field(..., description="Machine GUID")
    nm: str = Field(..., description="Hostname")
    version: str
    now: int


class ClaimResponse(BaseModel):
    cloud: CloudStatusInfo
    can_be_claimed: bool

    # Present only when a claim attempt was made
    success: bool | None = None
    message: str | None = None

    # Present only while the agent can still be claimed
    key_filename: str | None = None
    cmd: str | None = None
    help: str | None = None

    agents: list[AgentInfo] = []
