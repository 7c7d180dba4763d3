"""
Environment configuration loader with validation for AeroDesk.
"""

import os
from typing import Optional, Dict, Any
from pydantic import BaseModel, Field, field_validator, model_validator
from dotenv import load_dotenv

from ..models.enums import CancellationCascade, GateDeactivationPolicy

TRUE_VALUES = ("true", "1", "yes", "on")


class AeroDeskConfig(BaseModel):
    """Configuration model for AeroDesk with validation."""

    # Database Configuration
    database_url: str = Field(
        default="sqlite:///aerodesk.db", description="Database connection URL"
    )
    store_timeout_seconds: float = Field(
        default=10.0, gt=0, le=300, description="Upper bound for any single store wait"
    )
    database_echo: bool = Field(default=False, description="Log every SQL statement")

    # Logging
    debug: bool = Field(default=False, description="Enable debug mode")
    log_level: str = Field(default="INFO", description="Logging level")
    log_file: Optional[str] = Field(default=None, description="Optional log file path")

    # Workflow policies
    gate_deactivation_policy: GateDeactivationPolicy = Field(
        default=GateDeactivationPolicy.REJECT,
        description="Deactivating a gate a pending flight uses: reject or reassign",
    )
    cancellation_cascade: CancellationCascade = Field(
        default=CancellationCascade.NONE,
        description="Side effects applied by the cancellation orchestrator",
    )
    require_check_in_for_baggage: bool = Field(
        default=True, description="Refuse baggage for bookings that are not checked in"
    )
    require_gate_for_boarding: bool = Field(
        default=True, description="Refuse boarding for flights without an active gate"
    )

    # External data collaborator
    weather_api_key: Optional[str] = Field(default=None, description="OpenWeatherMap API key")
    weather_api_url: str = Field(
        default="https://api.openweathermap.org/data/2.5/weather",
        description="OpenWeatherMap current weather endpoint",
    )
    aviationstack_api_key: Optional[str] = Field(default=None, description="AviationStack API key")
    aviationstack_api_url: str = Field(
        default="http://api.aviationstack.com/v1", description="AviationStack base URL"
    )
    external_api_timeout_seconds: float = Field(
        default=10.0, gt=0, le=60, description="HTTP timeout for external lookups"
    )

    # Valkey cache for external payloads
    external_cache_enabled: bool = Field(default=False, description="Cache external payloads in Valkey")
    external_cache_ttl_seconds: int = Field(default=900, ge=1, description="External payload TTL")
    valkey_host: str = Field(default="localhost", description="Valkey server host")
    valkey_port: int = Field(default=6379, ge=1, le=65535, description="Valkey server port")
    valkey_password: Optional[str] = Field(default=None, description="Valkey server password")
    valkey_database: int = Field(default=0, ge=0, le=15, description="Valkey database number")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Accept any case; store upper-cased."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"Log level must be one of: {valid_levels}")
        return v.upper()

    @field_validator("weather_api_key", "aviationstack_api_key", "valkey_password", "log_file")
    @classmethod
    def blank_to_none(cls, v: Optional[str]) -> Optional[str]:
        if v is None or not v.strip():
            return None
        return v.strip()

    @model_validator(mode="after")
    def debug_implies_debug_logging(self) -> "AeroDeskConfig":
        if self.debug:
            self.log_level = "DEBUG"
        return self


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in TRUE_VALUES


def load_config(env_file: Optional[str] = None, **overrides: Any) -> AeroDeskConfig:
    """
    Load configuration from environment variables and .env file.

    Args:
        env_file: Optional path to .env file. If None, looks for .env in current directory.
        **overrides: Field values that take precedence over the environment

    Returns:
        AeroDeskConfig: Validated configuration object

    Raises:
        ValueError: If configuration is invalid
    """
    if env_file is None:
        env_file = ".env"

    if os.path.exists(env_file):
        load_dotenv(env_file)

    config_data: Dict[str, Any] = {
        "database_url": os.getenv("DATABASE_URL", "sqlite:///aerodesk.db"),
        "store_timeout_seconds": os.getenv("AERODESK_STORE_TIMEOUT_SECONDS", "10"),
        "database_echo": _env_bool("AERODESK_DATABASE_ECHO", "false"),
        "debug": _env_bool("AERODESK_DEBUG", "false"),
        "log_level": os.getenv("AERODESK_LOG_LEVEL", "INFO"),
        "log_file": os.getenv("AERODESK_LOG_FILE"),
        "gate_deactivation_policy": os.getenv("AERODESK_GATE_DEACTIVATION_POLICY", "reject").lower(),
        "cancellation_cascade": os.getenv("AERODESK_CANCELLATION_CASCADE", "none").lower(),
        "require_check_in_for_baggage": _env_bool("AERODESK_REQUIRE_CHECKIN_FOR_BAGGAGE", "true"),
        "require_gate_for_boarding": _env_bool("AERODESK_REQUIRE_GATE_FOR_BOARDING", "true"),
        "weather_api_key": os.getenv("WEATHER_API_KEY"),
        "weather_api_url": os.getenv(
            "WEATHER_API_URL", "https://api.openweathermap.org/data/2.5/weather"
        ),
        "aviationstack_api_key": os.getenv("AVIATIONSTACK_API_KEY"),
        "aviationstack_api_url": os.getenv("AVIATIONSTACK_API_URL", "http://api.aviationstack.com/v1"),
        "external_api_timeout_seconds": os.getenv("EXTERNAL_API_TIMEOUT_SECONDS", "10"),
        "external_cache_enabled": _env_bool("EXTERNAL_CACHE_ENABLED", "false"),
        "external_cache_ttl_seconds": os.getenv("EXTERNAL_CACHE_TTL_SECONDS", "900"),
        "valkey_host": os.getenv("VALKEY_HOST", "localhost"),
        "valkey_port": os.getenv("VALKEY_PORT", "6379"),
        "valkey_password": os.getenv("VALKEY_PASSWORD"),
        "valkey_database": os.getenv("VALKEY_DATABASE", "0"),
    }
    config_data.update(overrides)

    try:
        return AeroDeskConfig(**config_data)
    except Exception as e:
        raise ValueError(f"Configuration validation failed: {e}")
