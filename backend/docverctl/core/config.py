"""
Application configuration management
"""
from pydantic_settings import BaseSettings
from typing import List, Optional


def _split_csv(value: Optional[str]) -> List[str]:
    return [item.strip() for item in (value or "").split(",") if item.strip()]


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables
    """
    # Application
    APP_NAME: str = "DocVerCtl"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # MongoDB
    MONGODB_URL: str
    MONGODB_DB_NAME: str = "docverctl"

    # GitHub OAuth App
    GITHUB_CLIENT_ID: str
    GITHUB_CLIENT_SECRET: str
    GITHUB_OAUTH_SCOPE: str = "read:user user:email repo"

    # GitHub REST API
    GITHUB_API_URL: str = "https://api.github.com"
    GITHUB_API_VERSION: str = "2022-11-28"
    GITHUB_TIMEOUT_SECONDS: float = 15.0

    # Project repositories
    ENABLE_GITHUB_REPO_CREATE: bool = False
    GITHUB_REPO_CREATE_OWNER: Optional[str] = None
    GITHUB_DEFAULT_BRANCH: str = "main"

    # Comma separated logins allowed even when the allowlist collection is empty
    ALLOWED_GITHUB_LOGINS: str = ""

    # Extensions opened as text in the editor
    EDITABLE_EXTENSIONS: str = "md,txt,js,ts"

    # JWT
    JWT_SECRET_KEY: str
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24 * 7

    FRONTEND_URL: str
    CORS_ORIGINS: str = ""

    # Rate limiting
    RATE_LIMIT_WINDOW_SECONDS: int = 60
    RATE_LIMIT_MAX_REQUESTS: int = 120
    TRUST_PROXY: bool = False

    # Mail notifications
    SMTP_HOST: Optional[str] = None
    SMTP_PORT: int = 587
    SMTP_USE_TLS: bool = True
    SMTP_USER: Optional[str] = None
    SMTP_PASSWORD: Optional[str] = None
    MAIL_FROM: Optional[str] = None

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"  # Ignore extra fields in .env

    @property
    def fallback_allowlist(self) -> List[str]:
        """Lower-cased logins from ALLOWED_GITHUB_LOGINS"""
        return [login.lower() for login in _split_csv(self.ALLOWED_GITHUB_LOGINS)]

    @property
    def editable_extensions(self) -> List[str]:
        return [ext.lower().lstrip(".") for ext in _split_csv(self.EDITABLE_EXTENSIONS)]

    @property
    def cors_origins(self) -> List[str]:
        return _split_csv(self.CORS_ORIGINS) or [self.FRONTEND_URL]


# Global settings instance
settings = Settings()
