"""
auth/resolve.py -- Turn a configured value into exactly one catalog profile.

resolve_profile() is total: any string, empty string, or None yields a profile
from AUTHENTICATION_PROFILES. It never raises and never returns anything that
is not a catalog entry. Lookup order:

  1. empty / None          -> the default profile
  2. exact catalog key     -> that entry            (PROFILE_IDENTIFIER_FIRST_EMAIL)
  3. exact profile id      -> linear scan by id     (identifier_first_email)
  4. anything else         -> warning + default profile

Matching is case-sensitive with no trimming and no partial matching.

Error classes:
  config_invalid -- unknown configured value. Recoverable: the default profile
                    is substituted and a WARNING is logged. With
                    AUTHENTICATION_PROFILE_STRICT=true, get_active_profile()
                    raises ProfileConfigError instead so startup fails.

Layer rule: may import from core/ (kernel). No imports from api/.
"""

from __future__ import annotations

import logging
from typing import Optional

from auth.models import AuthenticationProfile
from auth.profiles import AUTHENTICATION_PROFILES, DEFAULT_PROFILE_KEY
from core.config import Settings, get_settings

logger = logging.getLogger("authflow.resolve")

AUTH_PROFILE_ENV_KEY = "AUTHENTICATION_PROFILE"
CONFIG_INVALID = "config_invalid"


class ProfileConfigError(ValueError):
    """Raised in strict mode when AUTHENTICATION_PROFILE names no known profile."""

    code = CONFIG_INVALID


def default_profile() -> AuthenticationProfile:
    return AUTHENTICATION_PROFILES[DEFAULT_PROFILE_KEY]


def find_profile(value: Optional[str]) -> Optional[AuthenticationProfile]:
    """Return the profile named by catalog key or stable id, or None if unknown."""
    if not value:
        return None
    profile = AUTHENTICATION_PROFILES.get(value)
    if profile is not None:
        return profile
    for candidate in AUTHENTICATION_PROFILES.values():
        if candidate.id == value:
            return candidate
    return None


def resolve_profile(value: Optional[str]) -> AuthenticationProfile:
    """Resolve *value* to a catalog profile. Never raises.

    Unknown values fall back to the default profile with a WARNING. The
    fallback may be more or less permissive than what the operator intended,
    which is why strict mode exists (see get_active_profile()).
    """
    if not value:
        return default_profile()

    profile = find_profile(value)
    if profile is not None:
        return profile

    logger.warning(
        "[%s] Unknown %s value %r -- falling back to default profile %s",
        CONFIG_INVALID,
        AUTH_PROFILE_ENV_KEY,
        value,
        default_profile().id,
    )
    return default_profile()


def get_active_profile(settings: Optional[Settings] = None) -> AuthenticationProfile:
    """Resolve the deployment's active profile from AUTHENTICATION_PROFILE.

    Call once per boot (FastAPI lifespan) or once per request; both are safe
    because resolution is pure and the result is an immutable constant.

    Raises:
        ProfileConfigError: only when settings.authentication_profile_strict is
            True and the configured value is non-empty and unknown.
    """
    cfg = settings if settings is not None else get_settings()
    value = cfg.authentication_profile
    if cfg.authentication_profile_strict and value and find_profile(value) is None:
        raise ProfileConfigError(
            f"{AUTH_PROFILE_ENV_KEY}={value!r} does not name a known authentication profile. "
            f"Use a catalog key or profile id, e.g. {DEFAULT_PROFILE_KEY} or {default_profile().id}."
        )
    return resolve_profile(value)


def profile_storage_key(profile: AuthenticationProfile) -> str:
    """Return the value that is safe to persist for *profile*: its stable id."""
    return profile.id
