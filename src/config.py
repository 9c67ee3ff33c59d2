"""Application configuration using pydantic-settings."""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Database
    database_url: str = "postgresql://localhost:5432/pos_catalog"

    # AWS S3 (product images)
    aws_access_key_id: str = ""
    aws_secret_access_key: str = ""
    aws_region: str = "ap-south-1"
    aws_s3_bucket_name: str = "pos-catalog-product-images"
    aws_s3_endpoint_url: str | None = None  # S3-compatible stores (MinIO etc.)

    # Product images
    product_image_prefix: str = "products"
    max_image_size: int = 5 * 1024 * 1024  # 5MB

    # Redis (for Celery)
    redis_url: str = "redis://localhost:6379/0"
    orphan_sweep_grace_hours: int = 24

    # Application
    cors_origins: list[str] = ["http://localhost:3000"]
    debug: bool = False
    log_level: str = "INFO"
    api_host: str = "0.0.0.0"
    api_port: int = 5000


settings = Settings()
