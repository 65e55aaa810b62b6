"""
auth/enforcement.py -- Server-side gate for completing authentication requests.

The identity layer may technically support every method; a deployment's
profile decides which ones a request is allowed to complete through. These
predicates are consulted per inbound request with the path relative to
server.base_path (e.g. "/sign-in/email" for POST /api/auth/sign-in/email).

Fail-closed contract:
  method_for_path() returning None means "this path belongs to no sanctioned
  method". Callers must treat it as deny, never as allow-by-default.
  evaluate_request_path() packages that rule so the API middleware does not
  re-derive it.

Security notes:
  [E1] Paths longer than MAX_PATH_LENGTH are rejected before any pattern test.
       This bounds matching cost against pathological input.
  [E2] PathPattern.test() is pure: re.fullmatch() keeps no cursor between calls,
       so a pattern shared by concurrent requests cannot leak scan state from
       one call into the next.
  [E3] evaluate_request_path() denies paths with empty, "." or ".." segments.
       "//sign-in/email" would otherwise fall outside the sign-in family
       here while the identity layer may normalize it back into it.
  [E4] Any path in the catalog-wide method table is gated, not only the
       sign-in family. "/phone-number/verify" completes an SMS sign-in, so a
       profile without smsOtp must refuse it.

All functions are synchronous, pure, and never raise for any str input.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from auth.models import AuthenticationMethod, AuthenticationProfile, MethodPaths
from auth.profiles import DEFAULT_METHOD_PATHS

MAX_PATH_LENGTH = 512

CALLBACK_PREFIXES = ("/callback/", "/oauth2/callback/")
PRIMARY_SIGN_IN_PREFIX = "/sign-in/"
PRIMARY_SIGN_IN_EXACT_PATHS = frozenset({"/magic-link/verify"})
PASSKEY_SIGN_IN_PREFIXES = (
    "/passkey/verify-authentication",
    "/passkey/generate-authenticate-options",
)
# Verification endpoints that finish a sign-in by creating a session.
SESSION_COMPLETION_PREFIXES = (
    "/phone-number/verify",
    "/email-otp/verify-email",
    "/one-tap/callback",
)

# Decision reasons
ALLOWED = "allowed"
NOT_SIGN_IN = "not_sign_in"
PATH_TOO_LONG = "path_too_long"
PATH_UNMATCHED = "path_unmatched"
PATH_NOT_NORMALIZED = "path_not_normalized"
METHOD_NOT_ALLOWED = "method_not_allowed"
CALLBACKS_DISABLED = "callbacks_disabled"


def _too_long(path: str) -> bool:
    return len(path) > MAX_PATH_LENGTH


def is_normalized_path(path: str) -> bool:
    """True for an absolute path with no empty, "." or ".." segments (one trailing slash allowed)."""
    if not path.startswith("/"):
        return False
    segments = path[1:].split("/")
    if segments and segments[-1] == "":
        segments = segments[:-1]
    return all(segment not in ("", ".", "..") for segment in segments)


def _first_match(table: MethodPaths, path: str) -> Optional[AuthenticationMethod]:
    for method, patterns in table:
        for pattern in patterns:
            if pattern.test(path):
                return method
    return None


def method_for_path(profile: AuthenticationProfile, path: str) -> Optional[AuthenticationMethod]:
    """Return the first method (in registration order) with a pattern matching *path*.

    Returns None for unmatched or oversized paths [E1]. None means deny.
    """
    if _too_long(path):
        return None
    return _first_match(profile.server.method_to_paths, path)


def is_method_path(path: str) -> bool:
    """True when *path* belongs to any method in the catalog-wide path table [E4].

    Profiles only carry the entries for their own methods; this answers for
    every method the identity layer may serve.
    """
    if _too_long(path):
        return False
    return _first_match(DEFAULT_METHOD_PATHS, path) is not None


def is_callback_path(path: str) -> bool:
    """True when *path* is the return leg of a federated sign-in redirect."""
    if _too_long(path):
        return False
    return path.startswith(CALLBACK_PREFIXES)


def is_primary_sign_in_path(path: str) -> bool:
    """True when *path* completes (or begins completing) a first-factor sign-in."""
    if _too_long(path):
        return False
    return (
        path.startswith(PRIMARY_SIGN_IN_PREFIX)
        or is_callback_path(path)
        or path in PRIMARY_SIGN_IN_EXACT_PATHS
        or path.startswith(PASSKEY_SIGN_IN_PREFIXES)
        or path.startswith(SESSION_COMPLETION_PREFIXES)
    )


def is_method_allowed(profile: AuthenticationProfile, method: AuthenticationMethod) -> bool:
    """The authorization gate: is *method* sanctioned by this deployment's profile?"""
    return method in profile.server.allowed_primary_methods


@dataclass(frozen=True)
class EnforcementDecision:
    allowed: bool
    reason: str
    method: Optional[AuthenticationMethod] = None


def evaluate_request_path(profile: AuthenticationProfile, path: str) -> EnforcementDecision:
    """Decide whether a request to *path* (relative to base_path) may proceed.

    Paths outside the primary sign-in family that no method claims pass
    through untouched: session reads, sign-out, and the like are not this
    gate's business. Everything else must map to a sanctioned method or it is
    denied, including a method endpoint that only some other profile uses.
    """
    if _too_long(path):
        return EnforcementDecision(allowed=False, reason=PATH_TOO_LONG)
    if not is_normalized_path(path):
        return EnforcementDecision(allowed=False, reason=PATH_NOT_NORMALIZED)
    if not is_primary_sign_in_path(path) and not is_method_path(path):
        return EnforcementDecision(allowed=True, reason=NOT_SIGN_IN)
    if is_callback_path(path) and not profile.server.allow_callbacks:
        return EnforcementDecision(allowed=False, reason=CALLBACKS_DISABLED)

    method = method_for_path(profile, path)
    if method is None:
        return EnforcementDecision(allowed=False, reason=PATH_UNMATCHED)
    if not is_method_allowed(profile, method):
        return EnforcementDecision(allowed=False, reason=METHOD_NOT_ALLOWED, method=method)
    return EnforcementDecision(allowed=True, reason=ALLOWED, method=method)
