"""Application configuration using Pydantic Settings."""

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from ..models.units import Unit


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    All settings have sensible defaults but can be overridden via environment variables.
    Configuration is validated at startup and the application will fail fast if invalid.

    Example:
        >>> settings = Settings(WU_STATIONS="IPARIS18204, KCASANFR1")
        >>> settings.stations
        ['IPARIS18204', 'KCASANFR1']
        >>> Settings(WU_UNIT="imperial").WU_UNIT
        <Unit.IMPERIAL: 'e'>
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # Weather Underground Configuration
    WU_STATIONS: str = Field(
        default="",
        description="Comma-separated list of station identifiers to bridge",
    )
    WU_UNIT: Unit = Field(
        default=Unit.METRIC,
        description="Unit family requested from the API (m, e, metric, imperial)",
    )
    WU_TIMEOUT: int = Field(
        default=10000,
        description="Timeout for Weather Underground requests in milliseconds",
        ge=100,
        le=120000,
    )
    WU_INTERVAL: int = Field(
        default=60000,
        description="Delay between two bridge cycles in milliseconds",
        ge=1000,
        le=86400000,
    )
    WU_API_KEY: str | None = Field(
        default=None,
        description="Static API key; fetched from the homepage when unset",
    )
    WU_HOMEPAGE_URL: str = Field(
        default="https://www.wunderground.com",
        description="Page the API key is scraped from",
    )
    WU_OBSERVATION_URL: str = Field(
        default="https://api.weather.com/v2/pws/observations/current",
        description="Current-observation endpoint",
    )

    # InfluxDB Configuration
    INFLUX_HOST: str = Field(
        default="http://localhost:8086",
        description="InfluxDB base URL",
    )
    INFLUX_USERNAME: str = Field(default="username", description="InfluxDB username")
    INFLUX_PASSWORD: str = Field(default="password", description="InfluxDB password")
    INFLUX_DATABASE: str = Field(default="default", description="InfluxDB database")

    # Retry Configuration
    RETRY_COUNT: int = Field(
        default=3,
        description="Maximum number of retries on transport failure",
        ge=0,
        le=10,
    )
    RETRY_DELAY: int = Field(
        default=100,
        description="Initial retry delay in milliseconds",
        ge=10,
        le=5000,
    )
    RETRY_BACKOFF_MULTIPLIER: float = Field(
        default=2.0,
        description="Exponential backoff multiplier for retries",
        ge=1.0,
        le=10.0,
    )

    # Bridge Configuration
    BRIDGE_ENABLED: bool = Field(
        default=True,
        description="Run the bridge loop inside the application",
    )

    # Cache Configuration
    CACHE_TTL: int = Field(
        default=60,
        description="Cache TTL of the on-demand observation endpoint in seconds",
        ge=1,
        le=3600,
    )

    # Server Configuration
    PORT: int = Field(
        default=8000,
        description="Server port",
        ge=1,
        le=65535,
    )

    # Logging Configuration
    LOG_LEVEL: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )

    # Environment Configuration
    ENVIRONMENT: str = Field(
        default="development",
        description="Environment (development, staging, production)",
    )

    @property
    def stations(self) -> list[str]:
        """Configured station identifiers."""
        return [s for s in self.WU_STATIONS.split(",") if s]

    @property
    def timeout_seconds(self) -> float:
        return self.WU_TIMEOUT / 1000.0

    @property
    def interval_seconds(self) -> float:
        """Bridge cycle interval.

        Example:
            >>> Settings(WU_INTERVAL=60000).interval_seconds
            60.0
        """
        return self.WU_INTERVAL / 1000.0

    @field_validator("WU_STATIONS")
    @classmethod
    def normalize_stations(cls, v: str) -> str:
        """Strip whitespace and drop empty entries.

        Example:
            >>> Settings(WU_STATIONS=" A ,,B ").WU_STATIONS
            'A,B'
        """
        return ",".join(s.strip() for s in v.split(",") if s.strip())

    @field_validator("WU_UNIT", mode="before")
    @classmethod
    def parse_unit(cls, v: str | Unit) -> Unit:
        return Unit.parse(v)

    @field_validator("WU_API_KEY")
    @classmethod
    def empty_api_key_is_unset(cls, v: str | None) -> str | None:
        if v is not None and not v.strip():
            return None
        return v

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate that LOG_LEVEL is a valid logging level.

        Args:
            v: The log level string to validate

        Returns:
            The uppercase log level string

        Raises:
            ValueError: If the log level is invalid

        Example:
            >>> Settings(LOG_LEVEL="info").LOG_LEVEL
            'INFO'
        """
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(f"LOG_LEVEL must be one of {valid_levels}, got {v}")
        return v_upper

    @field_validator("WU_HOMEPAGE_URL", "WU_OBSERVATION_URL", "INFLUX_HOST")
    @classmethod
    def validate_url(cls, v: str) -> str:
        """Validate that a URL is properly formatted.

        Example:
            >>> Settings(INFLUX_HOST="http://influx:8086/").INFLUX_HOST
            'http://influx:8086'
        """
        if not v.startswith(("http://", "https://")):
            raise ValueError(f"URL must start with http:// or https://, got {v}")
        # Remove trailing slash for consistency
        return v.rstrip("/")


# Global settings instance
settings = Settings()
