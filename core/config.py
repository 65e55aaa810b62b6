"""
core/config.py -- Centralized application configuration via pydantic-settings.

All environment variable reads for authflow happen here. No module should
call os.getenv() or os.environ.get() directly -- import get_settings() instead.

Design patterns used:
  Singleton via lru_cache: get_settings() instantiates Settings once at first
      call and returns the cached instance on every subsequent call. This is
      the official FastAPI dependency injection pattern for config.

  BaseSettings (pydantic-settings): Reads values from environment variables
      and an optional .env file automatically. Field names map to env var names
      (e.g. authentication_profile -> AUTHENTICATION_PROFILE).

Security notes:
  [P1] AUTHENTICATION_PROFILE selects the active sign-in flow by catalog key or
       by stable profile id. An unknown value degrades to the default profile
       with a warning (see auth/resolve.py). Set AUTHENTICATION_PROFILE_STRICT=true
       to make an unknown value a hard startup failure instead.

Layer rule: core/ is the kernel. This module may not import from api/ or auth/.
"""

from functools import lru_cache

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env file.

    All fields have defaults so Settings() can be instantiated in test
    environments without a real .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ------------------------------------------------------------------
    # Core
    # ------------------------------------------------------------------

    debug: bool = False

    # ------------------------------------------------------------------
    # Authentication profile
    # ------------------------------------------------------------------

    # Catalog key (PROFILE_IDENTIFIER_FIRST_EMAIL) or stable id
    # (identifier_first_email). Empty string means "use the default profile".
    authentication_profile: str = ""
    # [P1] Refuse to start on an unknown profile value instead of substituting
    # the default.
    authentication_profile_strict: bool = False

    # ------------------------------------------------------------------
    # Rate limiting
    # ------------------------------------------------------------------

    profile_rate_limit: str = "60/minute"

    # ------------------------------------------------------------------
    # HTTP
    # ------------------------------------------------------------------

    allowed_hosts: list[str] = ["localhost", "127.0.0.1", "*.localhost", "testserver"]

    # ------------------------------------------------------------------
    # Validators
    # ------------------------------------------------------------------

    @field_validator("authentication_profile", mode="before")
    @classmethod
    def none_means_unset(cls, value: object) -> object:
        """Treat an explicit null the same as an empty value."""
        if value is None:
            return ""
        return value


@lru_cache
def get_settings() -> Settings:
    """Return the application Settings singleton.

    In tests: call get_settings.cache_clear() between test cases if you need
    to inject different environment variables.
    """
    return Settings()
