from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    app_env: str = "dev"
    log_level: str = "INFO"

    db_host: str = "host.docker.internal"
    db_port: int = 5432
    db_database: str = "lab_analysis"
    db_username: str = "lab_analysis"
    db_password: str = "secret"
    db_pool_max_size: int = 10

    max_job_attempts: int = 3
    job_poll_interval_seconds: int = 5
    max_concurrent_jobs: int = 4

    pdf_engine: str = "pdfplumber"
    pdf_min_text_length: int = 100
    pdf_min_text_length_high_quality: int = 30
    pdf_render_dpi: int = 150
    max_vision_pages: int = 10
    max_payload_bytes: int = 10_000_000

    openai_api_key: str = ""
    openai_base_url: str | None = None
    gemini_api_key: str = ""
    provider_timeout_seconds: int = 60
    analysis_deadline_seconds: int = 600

    default_model: str = "gpt-4o-mini"
    default_vision_model: str = "gpt-4o"
    default_temperature: float = 0.3
    default_max_tokens: int = 2000
    vision_image_token_estimate: int = 765

    max_input_tokens: int = 12000
    tenant_token_limit: int = 1_000_000
    tenant_token_limits: dict[str, int] = {}
