from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    app_env: str = "dev"
    log_level: str = "INFO"

    pdf_engine: str = "pymupdf"
    render_scale: float = 2.0
    render_jpeg_quality: int = 90

    thumbnail_max_width: int = 400
    thumbnail_max_height: int = 400
    thumbnail_jpeg_quality: int = 85

    ocr_provider: str = "google_vision"
    ocr_api_key: str = ""
    ocr_endpoint: str = "https://vision.googleapis.com/v1/images:annotate"
    ocr_language_hint: str = "ja"
    ocr_timeout_seconds: int = 30

    extraction_provider: str = "openai"
    extraction_openai_api_key: str = ""
    extraction_openai_model_name: str = "gpt-4o-mini"
    extraction_openai_temperature: float = 0.0
    extraction_openai_timeout_seconds: int = 30
    extraction_openai_compatible_base_url: str = ""
    extraction_openai_compatible_api_key: str = ""
    extraction_openai_compatible_model_name: str = ""

    extraction_batch_size: int = 3

    db_host: str = "host.docker.internal"
    db_port: int = 5432
    db_database: str = "receipts"
    db_username: str = "receipts"
    db_password: str = "secret"

    files_root: str = "/app/files"
    files_base_url: str = "/files"
    signed_url_secret: str = "change-me"
    signed_url_ttl_seconds: int = 60 * 60 * 24 * 7

    session_cache_path: str | None = None
