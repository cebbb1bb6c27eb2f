from functools import lru_cache
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

PACKAGE_DIR = Path(__file__).resolve().parents[1]
REPO_ROOT = PACKAGE_DIR.parent
ENV_FILES = [REPO_ROOT / ".env", Path.cwd() / ".env"]

for env_path in ENV_FILES:
    if env_path.exists():
        load_dotenv(env_path, override=False)


class Settings(BaseSettings):
    model_config = SettingsConfigDict(case_sensitive=False, extra="allow")

    app_name: str = Field(default="Tool Monitoring", alias="APP_NAME")
    api_prefix: str = Field(default="/api", alias="API_PREFIX")

    database_url: str = Field(default="sqlite:///./monitoring.db", alias="DATABASE_URL")

    # Registry behaviour
    system_actor_id: int = Field(default=0, alias="SYSTEM_ACTOR_ID")
    bulk_insert_threshold: int = Field(default=2, ge=0, alias="BULK_INSERT_THRESHOLD")
    sync_on_startup: bool = Field(default=True, alias="SYNC_ON_STARTUP")
    delete_orphans_on_sync: bool = Field(default=False, alias="DELETE_ORPHANS_ON_SYNC")

    # Export endpoint
    export_token: Optional[str] = Field(default=None, alias="EXPORT_TOKEN")

    log_level: str = Field(default="INFO", alias="LOG_LEVEL")


@lru_cache
def get_settings() -> Settings:
    return Settings()
