# Backend/app/core/config.py
from __future__ import annotations

from pathlib import Path
from typing import Optional

import httpx
from dotenv import load_dotenv
from pydantic_settings import BaseSettings, SettingsConfigDict

# Backend/app/core/config.py → parents[2] = Backend
ENV_FILE = Path(__file__).resolve().parents[2] / ".env"
load_dotenv(ENV_FILE, override=False)


class Settings(BaseSettings):
    # ---- App identity (used in provider compliance headers) ----
    APP_NAME: str = "DailyHistoric"
    APP_VERSION: str = "1.0.0"
    CONTACT_EMAIL: str = "app@dailyhistoric.com"

    # ---- Wikimedia ----
    WIKIMEDIA_COMMONS_FILE_PATH_URL: str = "https://commons.wikimedia.org/wiki/Special:FilePath"
    WIKIMEDIA_ONTHISDAY_URL: str = "https://api.wikimedia.org/feed/v1/wikipedia/en/onthisday/selected"
    WIKIPEDIA_SUMMARY_URL: str = "https://en.wikipedia.org/api/rest_v1/page/summary"
    WIKIPEDIA_ARTICLE_URL: str = "https://en.wikipedia.org/wiki"
    WIKIMEDIA_USER_AGENT: Optional[str] = None
    WIKIMEDIA_TIMEOUT_S: float = 10.0
    WIKIMEDIA_MAX_RETRIES: int = 2
    WIKIMEDIA_RETRY_BASE_DELAY_S: float = 0.4
    WIKIMEDIA_RETRY_MAX_DELAY_S: float = 2.0

    # ---- Firestore (remote document store) ----
    FIRESTORE_PROJECT_ID: Optional[str] = None
    FIRESTORE_DATABASE: str = "(default)"
    FIRESTORE_API_KEY: Optional[str] = None
    FIRESTORE_TIMEOUT_S: float = 10.0
    CONTENT_EVENTS_COLLECTION: str = "contentEvents"
    DAILY_DIGESTS_COLLECTION: str = "dailyDigests"

    # ---- Alias table ----
    # Duplicate normalized titles: False = later entry wins, True = build fails
    ALIAS_STRICT: bool = False

    model_config = SettingsConfigDict(
        env_file=str(ENV_FILE),
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )


settings = Settings()


def get_wikimedia_user_agent() -> str:
    """
    Identifying string required by the Wikimedia User-Agent policy:
    <app-name>/<version> (<contact-email>) <library>/<version>
    """
    if settings.WIKIMEDIA_USER_AGENT:
        return settings.WIKIMEDIA_USER_AGENT
    return (
        f"{settings.APP_NAME}/{settings.APP_VERSION} "
        f"({settings.CONTACT_EMAIL}) httpx/{httpx.__version__}"
    )


def require_firestore_project() -> str:
    """
    Runtime check with a clear message when the document store is not configured.
    """
    project = settings.FIRESTORE_PROJECT_ID
    if not project:
        raise RuntimeError(
            "FIRESTORE_PROJECT_ID is missing. Set it in Backend/.env "
            f"(tried loading from: {ENV_FILE})."
        )
    return project
