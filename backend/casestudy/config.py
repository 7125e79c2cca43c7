from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    app_name: str = "Case Study Studio API"
    app_env: str = "development"
    app_host: str = "0.0.0.0"
    app_port: int = 8000
    cors_origins: str = "http://localhost:3000"
    cors_allow_credentials: bool = True
    log_level: str = "INFO"
    request_id_header: str = "X-Request-ID"

    # MVP default is sqlite; the case store only needs create/read/update by id.
    database_url: str = "sqlite:///./casestudy.db"

    storage_backend: str = "local"  # local|s3
    storage_root: str = "data/uploads"
    # Base used to build public URLs for locally stored transcripts (served under /uploads).
    public_base_url: str = "http://localhost:8000"
    s3_bucket: str = "casestudy-dev"
    s3_prefix: str = "casestudy"
    # When set, S3 objects are addressed as <S3_PUBLIC_BASE_URL>/<key>; otherwise presigned or virtual-hosted URLs.
    s3_public_base_url: str = ""
    s3_presign_expiry_seconds: int = 0
    aws_region: str = "us-east-1"
    max_upload_file_bytes: int = 10 * 1024 * 1024
    allowed_upload_extensions: str = ".txt,.docx,.pdf,.md"

    max_transcript_bytes: int = 10 * 1024 * 1024
    http_timeout_seconds: float = 20.0

    completion_backend: str = "openai"  # openai|bedrock
    openai_api_key: str = ""
    openai_base_url: str = ""
    openai_model: str = "gpt-4o"
    bedrock_model_id: str = "amazon.nova-pro-v1:0"
    completion_temperature: float = 0.2
    completion_max_tokens: int = 2048
    completion_timeout_seconds: float = 90.0

    pdf_render_api_url: str = "https://api.pdfmonkey.io/api/v1"
    pdf_render_api_key: str = ""
    pdf_render_poll_interval_seconds: float = 1.0
    pdf_render_poll_max_attempts: int = 30

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    @property
    def cors_origins_list(self) -> list[str]:
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    @property
    def allowed_upload_extensions_set(self) -> set[str]:
        extensions: set[str] = set()
        for item in self.allowed_upload_extensions.split(","):
            cleaned = item.strip().lower()
            if not cleaned:
                continue
            extensions.add(cleaned if cleaned.startswith(".") else f".{cleaned}")
        return extensions


settings = Settings()
