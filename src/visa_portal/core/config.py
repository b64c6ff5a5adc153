"""Application configuration management."""

from typing import Optional
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Workflow settings with environment variable support."""
    
    model_config = SettingsConfigDict(
        env_prefix="VISA_PORTAL_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )
    
    # Remote API Configuration
    api_base_url: str = Field(default="http://localhost:5000/api", description="Portal API base URL")
    api_timeout_seconds: float = Field(default=30.0, description="Transport timeout for API calls")
    access_token: Optional[str] = Field(default=None, description="Bearer token for API calls")
    
    # Object Storage Configuration
    storage_base_url: str = Field(default="http://localhost:9000/storage", description="Object storage base URL")
    storage_path_prefix: str = Field(default="visa-documents", description="Prefix for uploaded document paths")
    
    # Messaging Configuration
    messages_page_size: int = Field(default=20, description="Messages fetched per page")
    
    # Application Configuration
    log_level: str = Field(default="INFO", description="Logging level")
    environment: str = Field(default="development", description="Environment name")
    
    @property
    def api_root(self) -> str:
        """API base URL without a trailing slash."""
        return self.api_base_url.rstrip("/")
    
    @property
    def storage_root(self) -> str:
        """Storage base URL without a trailing slash."""
        return self.storage_base_url.rstrip("/")


# Global settings instance
settings = Settings()
