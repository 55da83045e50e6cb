from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    app_name: str = "PainMap AI"
    env: str = "dev"
    api_prefix: str = "/api"
    log_level: str = "INFO"

    database_url: str = "sqlite:///./painmap.db"

    # Durable key the session history is written under (one record, JSON).
    storage_key: str = "physio-pain-storage"

    gemini_api_key: str | None = None
    gemini_model: str = "gemini-3-pro-preview"

    frontend_origin: str = "http://localhost:3000"


settings = Settings()
