from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="FAMIPOINTS_", env_file=".env", extra="ignore")
    DATABASE_URL: str = "sqlite:///./famipoints.db"
    DB_ECHO: bool = False

    SECRET_KEY: str = "change-me"
    ACCESS_TOKEN_MIN: int = 60 * 24

    # InvitationCode.code is String(16)
    INVITATION_CODE_LENGTH: int = Field(default=10, ge=4, le=16)
    INVITATION_CODE_VALIDITY_HOURS: int = 24 * 7
    INVITATION_CODE_MAX_ATTEMPTS: int = 5

    LOG_LEVEL: str = "INFO"
    LOG_FILE_PATH: str | None = None
    LOG_MAX_BYTES: int = 5_000_000
    LOG_BACKUP_COUNT: int = 5


settings = Settings()
