from typing import Literal

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class SimulationSettings(BaseSettings):
    tick_interval_ms: int = Field(
        default=1500,
        ge=50,
        le=60_000,
        description="Wall-clock period between simulation ticks",
    )
    step_km: float = Field(
        default=0.2,
        gt=0.0,
        le=10.0,
        description="Distance a simulated driver covers per tick",
    )
    arrival_threshold_deg: float = Field(
        default=0.0005,
        gt=0.0,
        le=0.01,
        description="Per-axis degree delta under which a driver counts as arrived",
    )
    start_jitter_deg: float = Field(
        default=0.005,
        ge=0.0,
        le=0.1,
        description="Max offset of a driver's initial simulated position from pickup",
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_format: Literal["text", "json"] = "text"

    model_config = SettingsConfigDict(env_prefix="SIM_")


class PricingSettings(BaseSettings):
    """Fare formula constants."""

    base_fare: float = Field(default=3.0, ge=0.0)
    per_km_rate: float = Field(default=1.8, ge=0.0)
    driver_distance_weight: float = Field(
        default=0.3,
        ge=0.0,
        le=1.0,
        description="Share of the driver's approach distance billed to the rider",
    )
    surge_multiplier: float = Field(default=1.0, ge=1.0, le=10.0)

    model_config = SettingsConfigDict(env_prefix="PRICING_")


class APISettings(BaseSettings):
    host: str = "0.0.0.0"
    port: int = Field(default=4000, ge=1, le=65535)
    ws_path: str = "/ws"
    keepalive_interval_seconds: float = Field(default=30.0, ge=1.0, le=300.0)
    ws_send_queue_size: int = Field(
        default=100,
        ge=1,
        le=10_000,
        description="Pending snapshots per WebSocket before the client is dropped as too slow",
    )
    tokens: str = Field(
        default="",
        description="Comma-separated token:user_id pairs accepted as bearer tokens",
    )

    model_config = SettingsConfigDict(env_prefix="API_")

    @field_validator("ws_path")
    @classmethod
    def validate_ws_path(cls, v: str) -> str:
        if not v.startswith("/"):
            raise ValueError("WebSocket path must start with /")
        return v

    @model_validator(mode="after")
    def validate_credentials_provided(self) -> "APISettings":
        if not self.tokens:
            raise ValueError("Required credential not provided: API_TOKENS")
        self.token_map()
        return self

    def token_map(self) -> dict[str, str]:
        """Parse ``tokens`` into a token -> user id mapping."""
        mapping: dict[str, str] = {}
        for pair in self.tokens.split(","):
            pair = pair.strip()
            if not pair:
                continue
            token, sep, user_id = pair.partition(":")
            if not sep or not token.strip() or not user_id.strip():
                raise ValueError(f"Malformed API token entry {pair!r}, expected token:user_id")
            mapping[token.strip()] = user_id.strip()
        return mapping


class CORSSettings(BaseSettings):
    origins: str = "http://localhost:3000"

    model_config = SettingsConfigDict(env_prefix="CORS_")


class Settings(BaseSettings):
    simulation: SimulationSettings = Field(default_factory=SimulationSettings)
    pricing: PricingSettings = Field(default_factory=PricingSettings)
    api: APISettings = Field(default_factory=APISettings)
    cors: CORSSettings = Field(default_factory=CORSSettings)

    model_config = SettingsConfigDict(
        env_nested_delimiter="__",
        case_sensitive=False,
    )


def get_settings() -> Settings:
    """Load and validate settings from environment variables."""
    return Settings()
