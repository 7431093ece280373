from functools import lru_cache

from pydantic import BaseModel, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class GuardSettings(BaseModel):
    driver: str = "session"
    provider: str | None = None


class ProviderSettings(BaseModel):
    driver: str = "memory"
    model: str | None = None


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # App
    app_name: str = "Impersonate Service"
    app_env: str = "development"  # development, testing, production
    debug: bool = False
    host: str = "127.0.0.1"
    port: int = 8000

    # Auth (order of `guards` is the scan order for the current guard)
    default_guard: str = "web"
    guards: dict[str, GuardSettings] = {"web": GuardSettings(provider="users")}
    providers: dict[str, ProviderSettings] = {"users": ProviderSettings(model="User")}

    # Impersonation session keys
    session_key: str = "impersonated_by"
    session_guard: str = "impersonator_guard"
    session_guard_using: str = "impersonator_guard_using"
    default_impersonator_guard: str = "web"

    # Redirects: route name, literal path, or "back"
    take_redirect_to: str = "/"
    leave_redirect_to: str = "/"
    leave_redirect_session_key: str = "impersonate:leave_redirect_to"

    # Session cookie
    session_cookie: str = "session"
    session_lifetime_seconds: int = 60 * 60 * 2
    session_cookie_secure: bool = False
    remember_cookie_max_age: int = 60 * 60 * 24 * 400  # Browsers cap cookies at 400 days

    # Redis (optional - sessions fall back to process memory without it)
    redis_url: str | None = None  # e.g., "redis://localhost:6379/0"
    redis_pool_size: int = 10
    redis_session_prefix: str = "session"

    @field_validator("session_key", "session_guard", "session_guard_using")
    @classmethod
    def validate_session_key(cls, v: str) -> str:
        if not v:
            raise ValueError("Impersonation session keys must not be empty")
        if v.startswith("remember_"):
            raise ValueError(
                "Impersonation session keys must not start with 'remember_' "
                "(reserved for captured remember cookies)"
            )
        return v

    @field_validator("guards")
    @classmethod
    def validate_guards(cls, v: dict[str, GuardSettings]) -> dict[str, GuardSettings]:
        if not v:
            raise ValueError("At least one guard must be configured")
        return v


@lru_cache
def get_settings() -> Settings:
    return Settings()
