from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    app_name: str = "trainhub"
    app_env: Literal["dev", "prod", "test"] = Field("dev")
    database_url: str = Field("sqlite+aiosqlite:///./trainhub.db")
    database_echo: bool = Field(False)
    database_auto_create: bool = Field(True)
    log_level: str = Field("INFO")
    allow_status_regression: bool = Field(True)
    at_risk_threshold_percent: int = Field(50)
    report_list_limit: int = Field(10)
    recent_completion_days: int = Field(30)

    model_config = SettingsConfigDict(env_file=".env")

    @field_validator("log_level")
    @classmethod
    def normalize_log_level(cls, value: str) -> str:
        return value.strip().upper() or "INFO"

    @field_validator("at_risk_threshold_percent")
    @classmethod
    def validate_threshold(cls, value: int) -> int:
        if value < 0 or value > 100:
            raise ValueError("at_risk_threshold_percent must be between 0 and 100")
        return value

    @field_validator("report_list_limit", "recent_completion_days")
    @classmethod
    def validate_positive(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("value must be positive")
        return value


settings = Settings()
