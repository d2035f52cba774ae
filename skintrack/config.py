from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    app_name: str = "skintrack"
    log_level: str = "INFO"

    # request limits
    max_image_mb: int = 10

    # Oracle configuration
    oracle_provider: str = "mock"  # "mock" | "gemini"
    oracle_model_id: str = "gemini-2.0-flash"
    gemini_api_key: str = ""

    # Applied by the HTTP layer around oracle calls; the core never times out on its own.
    oracle_timeout_seconds: float = 60.0

    # Timeline persistence (JSON Lines)
    timeline_path: str = "data/timeline.jsonl"


settings = Settings()
