"""
Application Configuration
"""
from pydantic_settings import BaseSettings
from typing import List
from functools import lru_cache


class Settings(BaseSettings):
    """Application settings"""

    # Application
    APP_NAME: str = "PDV Sales Reports"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # External PDV backend
    EXTERNAL_API_BASE_URL: str = ""
    HTTP_TIMEOUT_SECONDS: float = 30.0

    # Sales engine
    SALES_PAGE_SIZE: int = 100
    SALE_DETAIL_CONCURRENCY: int = 20
    METADATA_CONCURRENCY: int = 10
    FINALIZED_STATUS: str = "FINALIZADA"
    LOCAL_TIMEZONE: str = "America/Sao_Paulo"

    # Top products
    DEFAULT_TOP_PRODUCTS_LIMIT: int = 10
    MAX_TOP_PRODUCTS_LIMIT: int = 100

    # CORS
    CORS_ORIGINS: List[str] = ["http://localhost:3000"]
    ALLOWED_HOSTS: List[str] = ["*"]

    # Rate Limiting
    RATE_LIMIT_PER_MINUTE: int = 100

    class Config:
        env_file = ".env"
        case_sensitive = True


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()


settings = get_settings()
