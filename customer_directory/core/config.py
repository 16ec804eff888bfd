from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dotenv import load_dotenv
from pydantic import field_validator
from pydantic_settings import BaseSettings


load_dotenv()

class Settings(BaseSettings):
    # Database Connection
    DATABASE_URL: str = "sqlite:///./customers.db"

    # Routing
    API_NAMESPACE: str = "customer-directory/v1"
    # Used for hypermedia links; falls back to the request base URL when unset
    PUBLIC_BASE_URL: str | None = None
    SITE_TIMEZONE: str = "UTC"

    # Basic Authentication
    ADMIN_USERNAME: str = "admin"
    ADMIN_PASSWORD: str = "password123"
    ADMIN_CAPABILITIES: list[str] = ["list_users"]

    # Roles accepted by the `role` filter (besides "all")
    KNOWN_ROLES: list[str] = [
        "administrator",
        "editor",
        "author",
        "contributor",
        "subscriber",
        "customer",
        "shop_manager",
    ]

    LOG_LEVEL: str = "INFO"

    # Gravatar options
    AVATAR_SIZE: int = 96
    AVATAR_DEFAULT: str = "mm"
    AVATAR_RATING: str = "g"

    @field_validator('SITE_TIMEZONE')
    @classmethod
    def timezone_must_exist(cls, v: str) -> str:
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError):
            raise ValueError(f"unknown time zone: {v}")
        return v

    class Config:
        env_file = ".env"
        extra = "ignore"

settings = Settings()
