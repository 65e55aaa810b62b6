"""
auth/profiles.py -- The closed catalog of authentication profiles.

Nine profiles vary along two independent axes:

  flow shape:  identifier_password           single screen, password only
               identifier_first              identify, then choose a method
               identifier_first_biometrics   identify, passkey step, then fallback
  identifier:  email | phone | username

Rather than nine hand-copied literals, each profile is composed from shared
fragments (page maps, anti-enumeration messages, MFA defaults, the default
method -> path table) by _build_profile(). The method set for each cell of the
grid is a single tuple (_IDENTIFIER_FIRST_METHODS, or password alone), so the
UI method list and the server allow-list are derived from the same tuple and
cannot drift apart.

Identifier scoping:
  *_email:    no phone/SMS methods at all
  *_phone:    no email methods at all (no emailOtp, no magicLink)
  *_username: no OTP or magic link

AUTHENTICATION_PROFILES is a read-only mapping of catalog key -> profile. The
catalog key is an internal name; only AuthenticationProfile.id may be
persisted. check_profile() enforces the structural invariants and every entry
is checked when this module is imported.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

from collections.abc import Iterator
from types import MappingProxyType
from typing import Literal

from auth.models import (
    AntiEnumeration,
    AuthenticateStep,
    AuthenticationMethod,
    AuthenticationPages,
    AuthenticationProfile,
    AutoAttemptPasskey,
    BiometricStep,
    Identifier,
    IdentifyStep,
    MethodPaths,
    MfaRules,
    PathPattern,
    ServerEnforcement,
    WebhookSmsDelivery,
)

FlowShape = Literal["identifier_password", "identifier_first", "identifier_first_biometrics"]

AUTH_BASE_PATH = "/api/auth"

# ---------------------------------------------------------------------------
# Shared fragments
# ---------------------------------------------------------------------------

PAGES_BASE = AuthenticationPages(
    identify="/auth/sign-in",
    method="/auth/sign-in/method",
    two_factor="/auth/sign-in/two-factor",
)

PAGES_WITH_BIOMETRIC = AuthenticationPages(
    identify=PAGES_BASE.identify,
    method=PAGES_BASE.method,
    two_factor=PAGES_BASE.two_factor,
    biometric="/auth/sign-in/biometric",
)

_ANTI_ENUMERATION_MESSAGES: dict[FlowShape, str] = {
    "identifier_password": (
        "If the account exists, you’ll be able to continue. Please check your details and try again."
    ),
    "identifier_first": "If the account exists, you’ll receive the next step instructions.",
    "identifier_first_biometrics": "If the account exists, you’ll be prompted to continue sign-in.",
}

SMS_WEBHOOK_DELIVERY = WebhookSmsDelivery(
    env_url="BETTER_AUTH_PHONE_OTP_WEBHOOK_URL",
    env_secret="BETTER_AUTH_PHONE_OTP_WEBHOOK_SECRET",
)

# Method -> identity-layer endpoint patterns, in matching order. Regexes are
# full-match, so "/passkey/.*" means "anything under /passkey/".
DEFAULT_METHOD_PATHS: MethodPaths = (
    (
        "password",
        (
            PathPattern.exact("/sign-in/email"),
            PathPattern.exact("/sign-in/phone-number"),
            PathPattern.exact("/sign-in/username"),
        ),
    ),
    ("passkey", (PathPattern.exact("/sign-in/passkey"), PathPattern.regex(r"/passkey/.*"))),
    ("emailOtp", (PathPattern.regex(r"/email-otp/.*"), PathPattern.exact("/sign-in/email-otp"))),
    (
        "smsOtp",
        (
            PathPattern.regex(r"/phone-otp/.*"),
            PathPattern.regex(r"/phone-number/.*"),
            PathPattern.exact("/sign-in/phone-otp"),
            PathPattern.exact("/sign-in/phone-number-otp"),
        ),
    ),
    ("magicLink", (PathPattern.exact("/sign-in/magic-link"), PathPattern.exact("/magic-link/verify"))),
    (
        "social",
        (
            PathPattern.exact("/sign-in/social"),
            PathPattern.regex(r"/callback/.*"),
            PathPattern.regex(r"/oauth2/callback/.*"),
            PathPattern.exact("/one-tap/callback"),
        ),
    ),
)

# Only trigger MFA after password. Passkey success skips MFA: a device-bound
# passkey is already possession + inherence.
MFA_DEFAULT = MfaRules(
    policy="ifUserEnabled",
    factors=("totp", "backupCode"),
    trigger_on_primary=("password",),
    skip_if_primary_in=("passkey",),
)

_AUTO_ATTEMPT_OFF = AutoAttemptPasskey(enabled=False, when="supportedOnly", max_attempts=1)

_BIOMETRIC_STEP = BiometricStep(
    enabled=True,
    use_dedicated_page=True,
    completes_sign_in_on_success=True,
    fallback_to_method_page=True,
)

# (methods, require_identifier_for) per grid cell. Biometric variants offer the
# same methods as identifier_first; passkey is attempted on the biometric page
# and the method page is the fallback.
_IDENTIFIER_FIRST_METHODS: dict[Identifier, tuple[tuple[AuthenticationMethod, ...], tuple[AuthenticationMethod, ...]]] = {
    "email": (
        ("passkey", "password", "emailOtp", "magicLink", "social"),
        ("password", "emailOtp", "magicLink"),
    ),
    "phone": (
        ("passkey", "password", "smsOtp", "social"),
        ("password", "smsOtp"),
    ),
    "username": (
        ("passkey", "password", "social"),
        ("password",),
    ),
}

_FLOW_LABELS: dict[FlowShape, str] = {
    "identifier_password": "Identifier + Password",
    "identifier_first": "Identifier First",
    "identifier_first_biometrics": "Identifier First + Biometrics",
}

_IDENTIFIER_LABELS: dict[Identifier, str] = {
    "email": "Email only",
    "phone": "Phone only",
    "username": "Username only",
}


def restrict_method_paths(
    table: MethodPaths, methods: tuple[AuthenticationMethod, ...]
) -> MethodPaths:
    """Keep only the table entries for *methods*, preserving table order.

    A profile's enforcement table must not know about methods it does not
    sanction: a path that belongs to some other method is then "unmatched"
    and denied, rather than matched and relying on a second check.
    """
    allowed = set(methods)
    return tuple((method, patterns) for method, patterns in table if method in allowed)


def _build_profile(flow: FlowShape, identifier: Identifier) -> AuthenticationProfile:
    if flow == "identifier_password":
        methods: tuple[AuthenticationMethod, ...] = ("password",)
        require_identifier_for: tuple[AuthenticationMethod, ...] = ("password",)
        social_placement = "hidden"
    else:
        methods, require_identifier_for = _IDENTIFIER_FIRST_METHODS[identifier]
        social_placement = "step2"

    with_biometric = flow == "identifier_first_biometrics"

    return AuthenticationProfile(
        id=f"{flow}_{identifier}",
        label=f"{_FLOW_LABELS[flow]} ({_IDENTIFIER_LABELS[identifier]})",
        pages=PAGES_WITH_BIOMETRIC if with_biometric else PAGES_BASE,
        identify=IdentifyStep(
            identifiers=(identifier,),
            primary_identifier=identifier,
            social_placement=social_placement,
            anti_enumeration=AntiEnumeration(
                enabled=True,
                generic_success_message=_ANTI_ENUMERATION_MESSAGES[flow],
            ),
        ),
        authenticate=AuthenticateStep(
            methods=methods,
            preferred="password",
            require_identifier_for=require_identifier_for,
            auto_attempt_passkey=_AUTO_ATTEMPT_OFF,
        ),
        mfa=MFA_DEFAULT,
        biometric=_BIOMETRIC_STEP if with_biometric else None,
        sms_otp_delivery=SMS_WEBHOOK_DELIVERY if "smsOtp" in methods else None,
        server=ServerEnforcement(
            base_path=AUTH_BASE_PATH,
            allowed_primary_methods=methods,
            method_to_paths=restrict_method_paths(DEFAULT_METHOD_PATHS, methods),
            allow_callbacks=flow != "identifier_password",
        ),
    )


# ---------------------------------------------------------------------------
# Profiles
# ---------------------------------------------------------------------------

# A) Identifier + Password (single screen)
PROFILE_IDENTIFIER_PASSWORD_EMAIL = _build_profile("identifier_password", "email")
PROFILE_IDENTIFIER_PASSWORD_PHONE = _build_profile("identifier_password", "phone")
PROFILE_IDENTIFIER_PASSWORD_USERNAME = _build_profile("identifier_password", "username")

# B) Identifier First
PROFILE_IDENTIFIER_FIRST_EMAIL = _build_profile("identifier_first", "email")
PROFILE_IDENTIFIER_FIRST_PHONE = _build_profile("identifier_first", "phone")
PROFILE_IDENTIFIER_FIRST_USERNAME = _build_profile("identifier_first", "username")

# C) Identifier First + Biometrics
PROFILE_IDENTIFIER_FIRST_BIOMETRICS_EMAIL = _build_profile("identifier_first_biometrics", "email")
PROFILE_IDENTIFIER_FIRST_BIOMETRICS_PHONE = _build_profile("identifier_first_biometrics", "phone")
PROFILE_IDENTIFIER_FIRST_BIOMETRICS_USERNAME = _build_profile("identifier_first_biometrics", "username")


# ---------------------------------------------------------------------------
# Invariants
# ---------------------------------------------------------------------------


def check_profile(profile: AuthenticationProfile) -> list[str]:
    """Return a list of invariant violations for *profile* (empty when valid).

    The UI method list and the server allow-list must describe the same set:
    enforcement must never sanction a method the UI does not offer, and the
    UI must never offer a method enforcement will refuse.
    """
    problems: list[str] = []
    methods = set(profile.authenticate.methods)
    allowed = set(profile.server.allowed_primary_methods)
    mapped = [method for method, _ in profile.server.method_to_paths]

    if methods != allowed:
        problems.append(
            f"authenticate.methods {sorted(methods)} != server.allowed_primary_methods {sorted(allowed)}"
        )
    if profile.identify.primary_identifier not in profile.identify.identifiers:
        problems.append(f"primary identifier {profile.identify.primary_identifier!r} is not an allowed identifier")
    for method in profile.authenticate.require_identifier_for:
        if method not in methods:
            problems.append(f"require_identifier_for lists {method!r} which is not an enabled method")
    if profile.authenticate.preferred is not None and profile.authenticate.preferred not in methods:
        problems.append(f"preferred method {profile.authenticate.preferred!r} is not an enabled method")
    for method in allowed:
        if method not in mapped:
            problems.append(f"server.method_to_paths has no entry for allowed method {method!r}")
    for method in mapped:
        if method not in allowed:
            problems.append(f"server.method_to_paths maps {method!r} which is not an allowed method")
    if len(mapped) != len(set(mapped)):
        problems.append("server.method_to_paths lists a method more than once")

    overlap = set(profile.mfa.trigger_on_primary) & set(profile.mfa.skip_if_primary_in)
    if overlap:
        problems.append(f"mfa.trigger_on_primary and mfa.skip_if_primary_in overlap on {sorted(overlap)}")

    uses_sms = "smsOtp" in methods or "smsOtp" in profile.mfa.factors
    if uses_sms and profile.sms_otp_delivery is None:
        problems.append("profile uses smsOtp but has no sms_otp_delivery")

    if profile.biometric is not None and profile.biometric.enabled:
        if profile.pages.biometric is None:
            problems.append("biometric step is enabled but pages.biometric is not set")
        if "passkey" not in allowed:
            problems.append("biometric step is enabled but passkey is not an allowed method")

    return problems


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------

AUTHENTICATION_PROFILES: MappingProxyType[str, AuthenticationProfile] = MappingProxyType(
    {
        "PROFILE_IDENTIFIER_PASSWORD_EMAIL": PROFILE_IDENTIFIER_PASSWORD_EMAIL,
        "PROFILE_IDENTIFIER_PASSWORD_PHONE": PROFILE_IDENTIFIER_PASSWORD_PHONE,
        "PROFILE_IDENTIFIER_PASSWORD_USERNAME": PROFILE_IDENTIFIER_PASSWORD_USERNAME,
        "PROFILE_IDENTIFIER_FIRST_EMAIL": PROFILE_IDENTIFIER_FIRST_EMAIL,
        "PROFILE_IDENTIFIER_FIRST_PHONE": PROFILE_IDENTIFIER_FIRST_PHONE,
        "PROFILE_IDENTIFIER_FIRST_USERNAME": PROFILE_IDENTIFIER_FIRST_USERNAME,
        "PROFILE_IDENTIFIER_FIRST_BIOMETRICS_EMAIL": PROFILE_IDENTIFIER_FIRST_BIOMETRICS_EMAIL,
        "PROFILE_IDENTIFIER_FIRST_BIOMETRICS_PHONE": PROFILE_IDENTIFIER_FIRST_BIOMETRICS_PHONE,
        "PROFILE_IDENTIFIER_FIRST_BIOMETRICS_USERNAME": PROFILE_IDENTIFIER_FIRST_BIOMETRICS_USERNAME,
    }
)

DEFAULT_PROFILE_KEY = "PROFILE_IDENTIFIER_FIRST_EMAIL"


def get_profile(key: str) -> AuthenticationProfile:
    """Return the profile registered under catalog *key*. Raises KeyError if unknown.

    Use auth.resolve.resolve_profile() for untrusted or configured input; this
    lookup is for code that names a catalog key directly.
    """
    return AUTHENTICATION_PROFILES[key]


def iter_profiles() -> Iterator[tuple[str, AuthenticationProfile]]:
    """Yield (catalog key, profile) pairs in registration order."""
    yield from AUTHENTICATION_PROFILES.items()


def _validate_catalog() -> None:
    seen_ids: set[str] = set()
    for key, profile in AUTHENTICATION_PROFILES.items():
        problems = check_profile(profile)
        if problems:
            raise ValueError(f"Authentication profile {key} is invalid: " + "; ".join(problems))
        if profile.id in seen_ids:
            raise ValueError(f"Authentication profile id {profile.id!r} is registered twice")
        seen_ids.add(profile.id)


_validate_catalog()
