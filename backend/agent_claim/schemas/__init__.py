from agent_claim.schemas.claim import AgentInfo, ClaimResponse, CloudStatusInfo

__all__ = [
    "AgentInfo",
    "ClaimResponse",
    "CloudStatusInfo",
]
