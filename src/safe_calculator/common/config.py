"""Process-wide settings, read from the environment or a .env file."""
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Defaults for the command-line drivers, overridable with SAFE_CALC_* variables."""

    model_config = SettingsConfigDict(
        env_prefix="SAFE_CALC_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    host: str = Field(default="127.0.0.1", description="Batch server host address")
    port: int = Field(default=9000, ge=1, le=65535, description="Batch server TCP port")
    log_level: str = Field(default="INFO", description="Logging level name")
    precision: int = Field(default=9, ge=0, le=15, description="Decimal places kept for display")
    strict_decimals: bool = Field(
        default=False, description="Reject a second decimal point inside one number literal"
    )
