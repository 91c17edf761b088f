"""Configuration management for the CloudOps client."""

from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from cloudops_client.core.exceptions import CloudOpsClientError
from cloudops_client.utils.polling import (
    DEFAULT_LOCK_STATE,
    DEFAULT_POLL_INTERVAL_SECONDS,
    PollPolicy,
)


class Settings(BaseSettings):
    """Client configuration settings."""

    model_config = SettingsConfigDict(
        env_prefix="CLOUDOPS_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Server
    base_url: str = Field("http://localhost:3000", description="Base URL of the orchestration API")
    organization: Optional[str] = Field(None, description="Organization owning the assemblies")
    assembly: Optional[str] = Field(None, description="Default assembly name")
    request_timeout_seconds: float = Field(30.0, description="Per-request timeout")
    verify_ssl: bool = Field(True, description="Verify TLS certificates")
    user_agent: str = Field("cloudops-client", description="User-Agent header")

    # Commit lock polling
    commit_poll_interval_seconds: float = Field(
        DEFAULT_POLL_INTERVAL_SECONDS,
        description="Sleep between environment fetches while a commit is locked",
    )
    commit_lock_state: str = Field(DEFAULT_LOCK_STATE, description="Environment state that means locked")
    commit_max_polls: Optional[int] = Field(None, description="Maximum re-fetches, unbounded when unset")
    commit_deadline_seconds: Optional[float] = Field(None, description="Poll deadline, unbounded when unset")

    # Observability
    log_level: str = Field("INFO")
    log_format: str = Field("json")

    @field_validator("base_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        """Paths are joined with a leading slash."""
        v = v.strip()
        if not v:
            raise ValueError("base_url cannot be empty")
        return v.rstrip("/")

    @field_validator("commit_poll_interval_seconds", "request_timeout_seconds")
    @classmethod
    def positive_seconds(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("must be greater than 0")
        return v

    @field_validator("log_format")
    @classmethod
    def known_log_format(cls, v: str) -> str:
        v = v.lower()
        if v not in ("json", "console"):
            raise ValueError(f"log_format must be 'json' or 'console', got: {v}")
        return v

    @property
    def poll_policy(self) -> PollPolicy:
        """Commit lock poll policy built from these settings."""
        return PollPolicy(
            interval_seconds=self.commit_poll_interval_seconds,
            lock_state=self.commit_lock_state,
            max_polls=self.commit_max_polls,
            deadline_seconds=self.commit_deadline_seconds,
        )


def load_settings(path: Optional[Union[str, Path]] = None, **overrides: Any) -> Settings:
    """Load settings from the environment, overlaid with a YAML file.

    Values from the YAML file win over environment variables; keyword
    overrides win over both.
    """
    values: Dict[str, Any] = {}
    if path is not None:
        config_path = Path(path)
        if not config_path.exists():
            raise CloudOpsClientError(f"Configuration file not found: {config_path}", code="config")
        with open(config_path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            raise CloudOpsClientError(
                f"Configuration file must contain a mapping: {config_path}", code="config"
            )
        values.update(data)
    values.update(overrides)
    return Settings(**values)
