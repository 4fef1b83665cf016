"""
Application configuration using Pydantic Settings.

Environment-driven configuration with validation and type safety.
"""

from pydantic_settings import BaseSettings
from pydantic import Field


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""
    
    # Module configuration file (YAML)
    config_file: str = Field(default="modbus.yml", alias="CONFIG_FILE")
    
    # Server Configuration
    api_host: str = Field(default="0.0.0.0", alias="API_HOST")
    api_port: int = Field(default=9602, alias="API_PORT")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    
    # Threads serving sync routes; a request waiting on a serial bus lock holds one
    worker_threads: int = Field(default=100, ge=1, alias="WORKER_THREADS")
    
    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False


# Global settings instance
settings = Settings()
