from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    project_name: str = "incident-portal"
    cors_origins: list[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
        "http://localhost:5173",
        "http://127.0.0.1:5173",
    ]
    backend_base_url: str = "http://localhost:3001"
    request_timeout_seconds: float = 10.0

    rate_limit_max_calls: int = 10
    rate_limit_window_seconds: float = 60.0

    export_timezone: str = "UTC"
    export_filename_prefix: str = "security-reports"

    subject_max_length: int = 200
    description_max_length: int = 5000


settings = Settings()
