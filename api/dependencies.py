"""
api/dependencies.py -- FastAPI Depends() helpers for the active profile.

The lifespan stores the resolved profile on app.state.auth_profile. When it
did not run (uvicorn --lifespan off, or after shutdown), get_request_profile()
resolves the profile from settings and caches it there, so the enforcement
middleware never runs without a profile.

Layer rule: may import from auth/ and core/. Never from api/main.py.
"""

from __future__ import annotations

from fastapi import Request

from auth.models import AuthenticationProfile
from auth.resolve import get_active_profile


def get_request_profile(request: Request) -> AuthenticationProfile:
    """Return the active profile for *request*, resolving it on first use.

    Raises ProfileConfigError in strict mode when the configured value is unknown.

    Use as a FastAPI dependency:
        @router.get("/auth/profile")
        def route(profile: AuthenticationProfile = Depends(get_request_profile)): ...
    """
    profile: AuthenticationProfile | None = getattr(request.app.state, "auth_profile", None)
    if profile is None:
        profile = get_active_profile()
        request.app.state.auth_profile = profile
    return profile
