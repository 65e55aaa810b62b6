"""
auth/flow.py -- Sign-in flow helpers shared by the page handlers.

The flow is Identify -> [Biometric] -> Authenticate(method) -> [MFA] -> Complete.
These helpers answer the per-step questions a page needs from the active
profile (show social buttons here? is a separate method page needed?) and
carry the identifier and callback URL between pages as query parameters.

Security note:
  [F1] get_safe_callback_url() only accepts relative paths. "//evil.example"
       is protocol-relative and would redirect off-site, so it is rejected too.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Literal, Optional
from urllib.parse import urlencode

from auth.models import AuthenticationMethod, AuthenticationProfile, Identifier

AUTH_FLOW_CALLBACK_PARAM = "callbackUrl"
AUTH_FLOW_IDENTIFIER_PARAM = "identifier"
AUTH_FLOW_IDENTIFIER_TYPE_PARAM = "identifierType"

DEFAULT_LOGIN_REDIRECT = "/dashboard"

# Methods that always need a page after the identifier is entered.
METHODS_REQUIRING_SECOND_STEP: tuple[AuthenticationMethod, ...] = ("passkey", "emailOtp", "smsOtp", "magicLink")


@dataclass(frozen=True)
class SignInFlowContext:
    callback_url: str
    identifier_type: Optional[Identifier] = None
    identifier: Optional[str] = None


def parse_identifier_type(value: Optional[str]) -> Optional[Identifier]:
    if value == "email" or value == "phone" or value == "username":
        return value
    return None


def normalize_identifier_value(identifier_type: Identifier, value: str) -> str:
    """Trim; emails and usernames are also lowercased. Phone numbers keep their form."""
    trimmed = value.strip()
    if identifier_type in ("email", "username"):
        return trimmed.lower()
    return trimmed


def get_safe_callback_url(raw: Optional[str], fallback: str = DEFAULT_LOGIN_REDIRECT) -> str:
    """Return *raw* if it is a same-site relative path, otherwise *fallback* [F1]."""
    if not raw:
        return fallback
    if raw.startswith("/") and not raw.startswith("//"):
        return raw
    return fallback


def get_sign_in_flow_context(params: Mapping[str, str]) -> SignInFlowContext:
    """Read the flow context from query parameters (any str -> str mapping)."""
    callback_url = get_safe_callback_url(params.get(AUTH_FLOW_CALLBACK_PARAM))
    identifier_type = parse_identifier_type(params.get(AUTH_FLOW_IDENTIFIER_TYPE_PARAM))
    if identifier_type is None:
        return SignInFlowContext(callback_url=callback_url)

    raw_identifier = params.get(AUTH_FLOW_IDENTIFIER_PARAM)
    normalized = normalize_identifier_value(identifier_type, raw_identifier) if isinstance(raw_identifier, str) else ""
    return SignInFlowContext(
        callback_url=callback_url,
        identifier_type=identifier_type,
        identifier=normalized or None,
    )


def build_auth_page_url(path: str, context: SignInFlowContext) -> str:
    query: dict[str, str] = {AUTH_FLOW_CALLBACK_PARAM: context.callback_url}
    if context.identifier_type and context.identifier:
        query[AUTH_FLOW_IDENTIFIER_TYPE_PARAM] = context.identifier_type
        query[AUTH_FLOW_IDENTIFIER_PARAM] = context.identifier
    return f"{path}?{urlencode(query)}"


def profile_supports_identifier(profile: AuthenticationProfile, identifier: Identifier) -> bool:
    return identifier in profile.identify.identifiers


def profile_supports_method(profile: AuthenticationProfile, method: AuthenticationMethod) -> bool:
    return method in profile.authenticate.methods


def requires_identifier_for_method(profile: AuthenticationProfile, method: AuthenticationMethod) -> bool:
    return method in profile.authenticate.require_identifier_for


def should_use_identifier_first(profile: AuthenticationProfile) -> bool:
    """True when the identifier is collected on its own page before the method."""
    if profile.biometric is not None and profile.biometric.enabled:
        return True
    auto_attempt = profile.authenticate.auto_attempt_passkey
    if auto_attempt is not None and auto_attempt.enabled:
        return True
    return any(method in METHODS_REQUIRING_SECOND_STEP for method in profile.authenticate.methods)


def should_use_dedicated_biometric_page(profile: AuthenticationProfile) -> bool:
    biometric = profile.biometric
    return (
        biometric is not None
        and biometric.enabled
        and biometric.use_dedicated_page
        and biometric.method == "passkey"
        and profile.pages.biometric is not None
    )


def should_show_social_for_step(profile: AuthenticationProfile, step: Literal["step1", "step2"]) -> bool:
    if "social" not in profile.authenticate.methods:
        return False
    placement = profile.identify.social_placement
    if placement == "both":
        return True
    if placement == "hidden":
        return False
    return placement == step


def is_method_compatible_with_identifier(method: AuthenticationMethod, identifier_type: Optional[Identifier]) -> bool:
    """Can *method* be used given what the user identified with?

    Without an identifier only the identifier-less methods (passkey discovery,
    social) remain. Email codes and links need an email; SMS needs a phone.
    """
    if identifier_type is None:
        return method in ("passkey", "social")
    if method in ("emailOtp", "magicLink"):
        return identifier_type == "email"
    if method == "smsOtp":
        return identifier_type == "phone"
    return True
