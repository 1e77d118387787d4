from pydantic_settings import BaseSettings
from pydantic import Field, field_validator
from typing import List
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError
from dotenv import load_dotenv

load_dotenv()


class Settings(BaseSettings):
    # Environment setting
    ENVIRONMENT: str = Field(
        "development", description="Environment: development, testing, production"
    )

    # API settings
    API_PREFIX: str = Field("")
    DEBUG: bool = Field(False)
    LOG_LEVEL: str = Field("INFO")
    ALLOWED_ORIGINS: str = Field("*")

    # Database settings
    DB_HOST: str = Field("localhost")
    DB_PORT: int = Field(5432)
    DB_USER: str = Field("postgres")
    DB_PASSWORD: str = Field("")
    DB_NAME: str = Field("dental_sync")
    DB_DRIVER: str = Field("postgresql+asyncpg")

    SQLITE_MODE: bool = False

    # Uvicorn settings
    UVICORN_HOST: str = Field("0.0.0.0")
    UVICORN_PORT: int = Field(8000)
    WORKERS_COUNT: int = Field(1)
    RELOAD: bool = Field(False)

    # Clinical synchronization settings
    DEFAULT_APPOINTMENT_DURATION: int = Field(
        60, description="Duration in minutes when a booking does not give one"
    )
    DEFAULT_TOTAL_VISITS: int = Field(
        1, description="Visits a linked treatment needs unless told otherwise"
    )
    AUTO_CREATE_TOOTH_DIAGNOSES: bool = Field(
        True,
        description="Create a placeholder tooth diagnosis for booked teeth "
        "that have never been charted",
    )
    TOOTH_STATUS_ORDERING_GUARD: bool = Field(
        True,
        description="Never let an older appointment overwrite a newer "
        "terminal tooth status",
    )
    CLINIC_TIMEZONE: str = Field(
        "UTC",
        description="IANA timezone that appointment dates and times are booked in",
    )

    @property
    def POSTGRESQL_DATABASE_URL(self) -> str:
        return (
            f"{self.DB_DRIVER}://{self.DB_USER}:{self.DB_PASSWORD}"
            f"@{self.DB_HOST}:{self.DB_PORT}/{self.DB_NAME}"
        )

    @property
    def SQLITE_DATABASE_URL(self) -> str:
        return f"sqlite+aiosqlite:///{self.DB_NAME}.db"

    @property
    def DATABASE_URL(self) -> str:
        return (
            self.SQLITE_DATABASE_URL
            if self.SQLITE_MODE
            else self.POSTGRESQL_DATABASE_URL
        )

    @property
    def CORS_ORIGINS(self) -> List[str]:
        return [origin.strip() for origin in self.ALLOWED_ORIGINS.split(",") if origin]

    @field_validator("DEFAULT_TOTAL_VISITS", "DEFAULT_APPOINTMENT_DURATION")
    @classmethod
    def validate_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("must be at least 1")
        return v

    @field_validator("CLINIC_TIMEZONE")
    @classmethod
    def validate_timezone(cls, v: str) -> str:
        if v.upper() == "UTC":
            return v
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError):
            raise ValueError(f"Unknown timezone: {v}")
        return v

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True
        extra = "ignore"


settings = Settings()
