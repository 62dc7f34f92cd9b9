from functools import lru_cache
from pydantic_settings import BaseSettings
from typing import Optional

class Settings(BaseSettings):
    # Database Settings
    database_url: str
    auto_create_schema: bool = True

    # Signed links
    app_secret_key: str
    confirmation_link_ttl_hours: int = 24

    # Email Settings
    aws_region: str = "us-east-1"
    from_email: str
    from_name: str = "Sabrina Markon"
    support_email: str
    ses_configuration_set: Optional[str] = None
    mail_enabled: bool = True

    # Admin auth
    jwt_secret_key: str
    jwt_algorithm: str = "HS256"
    admin_page_size: int = 15

    # App Settings
    frontend_url: str
    backend_url: str
    environment: str = "development"

    class Config:
        env_file = ".env"
        extra = "ignore"  # This line allows extra env vars without errors

@lru_cache()
def get_settings() -> Settings:
    """Load settings once from the environment / .env file"""
    return Settings()
