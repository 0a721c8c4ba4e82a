"""Configuration management for the Riak statsd relay."""

from pathlib import Path
from typing import Any, Optional

import yaml
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Relay settings loaded from environment variables, .env or YAML."""

    model_config = SettingsConfigDict(
        env_prefix="RIAK_STATSD_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Riak node
    nodename: str = "riak"
    riak_host: str = "127.0.0.1"
    riak_http_port: int = Field(default=8098, ge=1, le=65535)
    riak_timeout: Optional[float] = Field(default=None, gt=0)  # seconds, None = aiohttp default

    # Statsd collector
    statsd_host: str = "127.0.0.1"
    statsd_port: int = Field(default=8125, ge=1, le=65535)

    # Logging
    log_level: str = "INFO"
    log_file: Optional[Path] = None

    @classmethod
    def from_yaml(cls, path: Path) -> "Settings":
        """Load settings from a YAML file. Values in the file beat the environment."""
        with open(path, "r") as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            raise ValueError(f"Config file {path} must contain a mapping")
        return cls(**data)

    def with_overrides(self, **overrides: Any) -> "Settings":
        """Return a validated copy with every non-None override applied."""
        update = {k: v for k, v in overrides.items() if v is not None}
        return type(self).model_validate({**self.model_dump(), **update})

    def to_yaml(self, path: Path) -> None:
        """Save settings to a YAML file."""
        with open(path, "w") as f:
            yaml.safe_dump(self.model_dump(mode="json"), f, default_flow_style=False)


settings = Settings()
