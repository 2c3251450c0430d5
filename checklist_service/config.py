# checklist_service/config.py
from pydantic_settings import BaseSettings
from typing import Optional
from pydantic import Field

class Settings(BaseSettings):
    SECRET_KEY: str = Field("change-me-in-production")
    ALGORITHM: str = Field("HS256")

    DATABASE_URL: str
    SQLALCHEMY_DATABASE_URL: Optional[str] = None
    DB_ECHO: bool = Field(False)

    # Approval deadline = assessment date + this many calendar days
    APPROVAL_DEADLINE_DAYS: int = Field(3)
    # Expected occurrences per month for "daily" items without an override
    DEFAULT_DAILY_BASELINE: int = Field(26)

    # 0 disables the in-process sweep loop (use an external scheduler instead)
    SWEEP_INTERVAL_MINUTES: int = Field(0)

    LOG_LEVEL: str = Field("INFO")

    model_config = {
        "env_file": ".env",
        "extra": "allow",
    }

    @property
    def effective_database_url(self) -> str:
        db_url = self.SQLALCHEMY_DATABASE_URL or self.DATABASE_URL
        # Ensure asyncpg is used
        if db_url.startswith("postgresql://"):
            db_url = db_url.replace("postgresql://", "postgresql+asyncpg://", 1)
        return db_url

settings = Settings()
