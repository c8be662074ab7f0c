# File: /gridbase/core/config.py | Version: 1.0 | Title: Central App Settings (Pydantic v2)
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # --- Database ---
    DATABASE_URL: str = "sqlite:///./gridbase.db"

    # --- API behavior toggles ---
    ENABLE_STD_ERRORS: bool = (
        False  # set True in .env to enable standardized error responses
    )

    # --- Row query paging ---
    DEFAULT_PAGE_LIMIT: int = 100
    MAX_PAGE_LIMIT: int = 1000

    # --- Views ---
    DEFAULT_VIEW_NAME: str = "Grid view"

    # --- Client cache ---
    API_BASE_URL: str = "http://localhost:8000"
    API_TIMEOUT_SECONDS: float = 30.0
    CLIENT_PAGE_SIZE: int = 50
    FETCH_LOOKAHEAD: int = 10
    SEARCH_DEBOUNCE_MS: int = 300
    QUERY_DEBOUNCE_MS: int = 500

    # v2-style config
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")


settings = Settings()
