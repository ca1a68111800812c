# reviewbridge/config.py
from functools import lru_cache
from typing import Optional

from pydantic import SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    ENVIRONMENT: str = "development"

    DATABASE_URL: str = "sqlite+aiosqlite:///./reviewbridge.db"
    REDIS_URL: str = "redis://localhost:6379/0"

    # session tokens
    SECRET_KEY: SecretStr = SecretStr("change_me_now")
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 15
    REFRESH_TOKEN_EXPIRE_DAYS: int = 30
    COOKIE_SECURE: bool = False
    COOKIE_SAMESITE: str = "lax"

    # Fernet key for provider tokens at rest, must be set in prod
    OAUTH_TOKEN_KEY: Optional[SecretStr] = None

    PUBLIC_BASE_URL: str = "http://localhost:8000"
    FRONTEND_URL: str = "http://localhost:3000"

    GOOGLE_CLIENT_ID: Optional[str] = None
    GOOGLE_CLIENT_SECRET: Optional[SecretStr] = None
    GOOGLE_AUTH_URL: str = "https://accounts.google.com/o/oauth2/v2/auth"
    GOOGLE_TOKEN_URL: str = "https://oauth2.googleapis.com/token"
    GOOGLE_USERINFO_URL: str = "https://www.googleapis.com/oauth2/v2/userinfo"
    GOOGLE_ACCOUNTS_API_URL: str = "https://mybusinessaccountmanagement.googleapis.com/v1"
    GOOGLE_LOCATIONS_API_URL: str = "https://mybusinessbusinessinformation.googleapis.com/v1"
    GOOGLE_REVIEWS_API_URL: str = "https://mybusiness.googleapis.com/v4"
    GOOGLE_SCOPES: str = (
        "https://www.googleapis.com/auth/business.manage "
        "https://www.googleapis.com/auth/userinfo.profile "
        "https://www.googleapis.com/auth/userinfo.email"
    )

    FACEBOOK_APP_ID: Optional[str] = None
    FACEBOOK_APP_SECRET: Optional[SecretStr] = None
    FACEBOOK_API_VERSION: str = "v18.0"
    FACEBOOK_SCOPES: str = "pages_show_list,pages_read_engagement,pages_read_user_content,business_management"

    PROVIDER_TIMEOUT_SECONDS: float = 20.0
    DEFAULT_TOKEN_LIFETIME_DAYS: int = 60

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    @field_validator("PUBLIC_BASE_URL", "FRONTEND_URL")
    @classmethod
    def strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")

    @property
    def facebook_graph_url(self) -> str:
        return f"https://graph.facebook.com/{self.FACEBOOK_API_VERSION}"

    @property
    def facebook_dialog_url(self) -> str:
        return f"https://www.facebook.com/{self.FACEBOOK_API_VERSION}/dialog/oauth"

    @property
    def is_development(self) -> bool:
        return self.ENVIRONMENT.lower() == "development"

    def callback_url(self, provider: str) -> str:
        return f"{self.PUBLIC_BASE_URL}/platforms/{provider}/callback"


@lru_cache
def get_settings() -> Settings:
    return Settings()
