"""Application Settings - Central Configuration"""
from functools import lru_cache
from typing import List
from pydantic_settings import BaseSettings, SettingsConfigDict

from ..domain.enums import UserRole


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # MongoDB
    mongo_uri: str = "mongodb://localhost:27017"
    mongo_db: str = "stepgate_dev"

    # Authentication (tokens are issued by the auth service)
    jwt_secret: str = "change-me"
    jwt_algorithm: str = "HS256"

    # Roles
    top_admin_role: str = UserRole.EO.value    # Defines dependencies, exempt from the certificate rule
    assignee_role: str = UserRole.DO.value     # Must upload a completion certificate before completing

    # Completion gate
    # False stops at the first failing check instead of reporting every violation
    completion_gate_collect_all_reasons: bool = True

    # Logging
    logs_path: str = "./logs"
    log_level: str = "INFO"

    # CORS - set to "*" to allow all origins
    cors_origins: str = "*"

    # Environment
    environment: str = "development"
    debug: bool = True

    @property
    def cors_origins_list(self) -> List[str]:
        """Parse CORS origins string to list"""
        return [origin.strip() for origin in self.cors_origins.split(",")]

    @property
    def is_production(self) -> bool:
        """Check if running in production"""
        return self.environment.lower() == "production"


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()


settings = get_settings()
