from pathlib import Path

from pydantic import ConfigDict, field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    model_config = ConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
    )

    # Agent state
    varlib_dir: Path = Path("./var")
    challenge_filename: str = "random_session_id"
    machine_guid: str | None = None
    hostname: str | None = None
    agent_version: str = "0.1.0"

    # Cloud
    cloud_proxy: str | None = None
    cloud_insecure: bool = False
    cloud_request_timeout_seconds: float = 10.0
    claim_online_timeout_seconds: float = 5.0
    claim_online_poll_seconds: float = 0.25

    # Operator instructions ("posix" or "windows", autodetected when unset)
    operator_platform: str | None = None

    # Rate Limiting
    rate_limit_claims: str = "10/minute"
    trust_forwarded_for: bool = False

    # CORS
    # No browser origins unless configured
    cors_origins: list[str] | str = []

    # Logging
    log_level: str = "info"
    log_format: str = "console"

    @field_validator("cors_origins", mode="before")
    @classmethod
    def parse_cors_origins(cls, v):
        """Parse CORS origins from comma-separated string or list."""
        if isinstance(v, str):
            return [origin.strip() for origin in v.split(",") if origin.strip()]
        return v

    @field_validator("operator_platform")
    @classmethod
    def validate_operator_platform(cls, v: str | None) -> str | None:
        if v is None or v == "":
            return None
        v = v.lower()
        if v not in ("posix", "windows"):
            raise ValueError("operator_platform must be 'posix' or 'windows'")
        return v

    @property
    def challenge_path(self) -> Path:
        return self.varlib_dir / self.challenge_filename

    @property
    def claimed_id_path(self) -> Path:
        return self.varlib_dir / "cloud.d" / "claimed_id"


settings = Settings()
