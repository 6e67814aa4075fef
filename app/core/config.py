"""
Configuration management for the biometric attendance backend
"""
from pydantic_settings import BaseSettings
from pydantic import Field, field_validator
from typing import Optional, List


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    DATABASE_URL: str = Field(
        default="sqlite:///./biometric_attendance.db",
        description="SQLAlchemy database URL",
    )

    APP_ENV: str = Field(default="local", description="Application environment: local, staging, prod")
    LOG_LEVEL: str = Field(default="INFO", description="Logging level: DEBUG, INFO, WARNING, ERROR")

    # CORS settings
    ALLOWED_ORIGINS: str = Field(
        default="*",
        description="Comma-separated list of allowed CORS origins. Use '*' for local only."
    )

    # Version (can be git SHA or semver)
    VERSION: Optional[str] = Field(default=None, description="Application version (git SHA or semver)")

    # Reconciliation rules (minutes unless stated otherwise)
    DEFAULT_GRACE_PERIOD_MINUTES: int = Field(
        default=15, description="Grace period used when a schedule does not define one"
    )
    DOUBLE_PUNCH_MINUTES: int = Field(
        default=10, description="Time in/out closer than this are treated as one duplicated scan"
    )
    MAX_SHIFT_DURATION_MINUTES: int = Field(
        default=1200, description="Time in/out further apart than this drop the time out"
    )
    OVERTIME_THRESHOLD_MINUTES: int = Field(
        default=30, description="Minutes past scheduled time out before overtime is recorded"
    )
    UNDERTIME_THRESHOLD_MINUTES: int = Field(
        default=60, description="Leaving at most this early before scheduled time out is not undertime"
    )
    UNDERTIME_HOUR_THRESHOLD_MINUTES: int = Field(
        default=60,
        description="Minutes early past UNDERTIME_THRESHOLD_MINUTES before undertime_more_than_hour",
    )
    LUNCH_DEDUCTION_MINUTES: int = Field(default=60, description="Unpaid lunch deducted from long shifts")
    LUNCH_DEDUCTION_AFTER_HOURS: int = Field(
        default=5, description="Lunch is deducted when the worked span exceeds this many hours"
    )
    NEAR_SHIFT_START_TOLERANCE_MINUTES: int = Field(
        default=60, description="Scans this close before an overnight shift start belong to that shift"
    )
    UTILITY_MIN_HOURS: int = Field(default=8, description="Minimum hours for a 24H utility shift to be on time")

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True

    @field_validator("APP_ENV")
    @classmethod
    def validate_app_env(cls, v: str) -> str:
        """Validate APP_ENV"""
        allowed = ["local", "staging", "prod"]
        if v not in allowed:
            raise ValueError(f"APP_ENV must be one of {allowed}")
        return v

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate LOG_LEVEL"""
        allowed = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in allowed:
            raise ValueError(f"LOG_LEVEL must be one of {allowed}")
        return v.upper()

    @field_validator(
        "DEFAULT_GRACE_PERIOD_MINUTES",
        "DOUBLE_PUNCH_MINUTES",
        "MAX_SHIFT_DURATION_MINUTES",
        "OVERTIME_THRESHOLD_MINUTES",
        "UNDERTIME_THRESHOLD_MINUTES",
        "UNDERTIME_HOUR_THRESHOLD_MINUTES",
        "LUNCH_DEDUCTION_MINUTES",
        "LUNCH_DEDUCTION_AFTER_HOURS",
        "NEAR_SHIFT_START_TOLERANCE_MINUTES",
        "UTILITY_MIN_HOURS",
    )
    @classmethod
    def validate_non_negative(cls, v: int) -> int:
        """Reconciliation thresholds cannot be negative"""
        if v < 0:
            raise ValueError("reconciliation thresholds must be >= 0")
        return v

    def validate_production(self) -> None:
        """
        Validate settings for production environment

        Raises:
            ValueError: If production settings are invalid
        """
        if self.APP_ENV == "prod":
            if self.ALLOWED_ORIGINS == "*" or not self.ALLOWED_ORIGINS:
                raise ValueError(
                    "ALLOWED_ORIGINS must be explicitly set (not '*') in production environment"
                )
            if self.DATABASE_URL.startswith("sqlite"):
                raise ValueError("DATABASE_URL must not point at SQLite in production environment")

    def get_allowed_origins_list(self) -> List[str]:
        """
        Get list of allowed CORS origins

        Returns:
            List of allowed origins (or ['*'] for local)
        """
        if self.ALLOWED_ORIGINS == "*":
            return ["*"]
        return [origin.strip() for origin in self.ALLOWED_ORIGINS.split(",") if origin.strip()]


# Create settings instance
settings = Settings()

# Validate production settings if in prod
if settings.APP_ENV == "prod":
    settings.validate_production()
