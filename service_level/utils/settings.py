"""Runtime configuration for the SLO outputs."""

from typing import List

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


OUTPUT_PROMETHEUS = "prometheus"
OUTPUT_LOGGER = "logger"
SUPPORTED_OUTPUTS = (OUTPUT_PROMETHEUS, OUTPUT_LOGGER)


class OutputSettings(BaseSettings):
    """Settings for the measurement outputs.

    ``expire_duration`` is expressed in seconds. Zero disables series
    expiration, so every series lives until the process exits.
    """

    model_config = SettingsConfigDict(env_prefix="SERVICE_LEVEL_")

    expire_duration: float = Field(default=0.0, ge=0.0, description="Seconds without measurements before a series is removed")
    outputs: List[str] = Field(default_factory=lambda: [OUTPUT_PROMETHEUS], description="Enabled outputs")
    log_level: str = Field(default="INFO", description="Log level")
    log_json: bool = Field(default=True, description="Render logs as JSON")

    @field_validator("outputs")
    @classmethod
    def validate_outputs(cls, v):
        """Validate output kinds."""
        unknown = [o for o in v if o not in SUPPORTED_OUTPUTS]
        if unknown:
            raise ValueError(f"unsupported outputs: {', '.join(unknown)}")
        if not v:
            raise ValueError("at least one output is required")
        if len(set(v)) != len(v):
            raise ValueError("outputs must not be repeated")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v):
        return v.upper()

    @property
    def expiry_enabled(self) -> bool:
        return self.expire_duration > 0
