"""
auth/models.py -- Domain dataclasses for authentication profiles.

Pattern: Data class (pure data container, zero logic). Every class is frozen
and every collection is a tuple, so a profile built at import time can be
shared by any number of concurrent request handlers without locking.

PathPattern is the one value type with behaviour: test() is a pure predicate.
Python's re.Pattern keeps no scan position between calls (there is no
lastIndex), and fullmatch() always starts from position 0, so a shared pattern
gives the same answer regardless of call history.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Literal, Optional, Union

# ---------------------------------------------------------------------------
# Vocabulary
# ---------------------------------------------------------------------------

Identifier = Literal["email", "phone", "username"]
AuthenticationMethod = Literal["password", "passkey", "emailOtp", "smsOtp", "magicLink", "social"]
MfaFactor = Literal["totp", "backupCode", "emailOtp", "smsOtp"]
MfaPolicy = Literal["disabled", "ifUserEnabled", "requiredForOrg", "always"]
SocialPlacement = Literal["hidden", "step1", "step2", "both"]

IDENTIFIERS: tuple[Identifier, ...] = ("email", "phone", "username")
AUTHENTICATION_METHODS: tuple[AuthenticationMethod, ...] = (
    "password",
    "passkey",
    "emailOtp",
    "smsOtp",
    "magicLink",
    "social",
)
MFA_FACTORS: tuple[MfaFactor, ...] = ("totp", "backupCode", "emailOtp", "smsOtp")
MFA_POLICIES: tuple[MfaPolicy, ...] = ("disabled", "ifUserEnabled", "requiredForOrg", "always")


# ---------------------------------------------------------------------------
# Path patterns
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PathPattern:
    """One accepted wire path for a method: an exact string or a full-match regex.

    Build with PathPattern.exact("/sign-in/email") or PathPattern.regex(r"/passkey/.*").
    A regex must match the whole path; a prefix rule therefore ends in ".*".
    """

    value: str
    compiled: Optional[re.Pattern[str]] = None

    @classmethod
    def exact(cls, path: str) -> PathPattern:
        return cls(value=path)

    @classmethod
    def regex(cls, expression: str) -> PathPattern:
        return cls(value=expression, compiled=re.compile(expression))

    @property
    def is_regex(self) -> bool:
        return self.compiled is not None

    def test(self, path: str) -> bool:
        if self.compiled is None:
            return path == self.value
        return self.compiled.fullmatch(path) is not None


MethodPaths = tuple[tuple[AuthenticationMethod, tuple[PathPattern, ...]], ...]


# ---------------------------------------------------------------------------
# Flow steps
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class AuthenticationPages:
    identify: str  # /auth/sign-in
    method: str  # /auth/sign-in/method
    two_factor: str  # /auth/sign-in/two-factor
    biometric: Optional[str] = None  # /auth/sign-in/biometric


@dataclass(frozen=True)
class AntiEnumeration:
    """Generic response shown whether or not the identifier belongs to an account."""

    enabled: bool
    generic_success_message: str


@dataclass(frozen=True)
class IdentifyStep:
    identifiers: tuple[Identifier, ...]
    primary_identifier: Identifier
    social_placement: SocialPlacement
    anti_enumeration: AntiEnumeration


@dataclass(frozen=True)
class AutoAttemptPasskey:
    enabled: bool
    when: Literal["always", "supportedOnly"] = "supportedOnly"
    max_attempts: int = 1


@dataclass(frozen=True)
class AuthenticateStep:
    methods: tuple[AuthenticationMethod, ...]
    require_identifier_for: tuple[AuthenticationMethod, ...]
    preferred: Optional[AuthenticationMethod] = None
    auto_attempt_passkey: Optional[AutoAttemptPasskey] = None


@dataclass(frozen=True)
class BiometricStep:
    """Dedicated passkey step offered before the generic method chooser."""

    enabled: bool
    use_dedicated_page: bool
    completes_sign_in_on_success: bool
    fallback_to_method_page: bool
    method: Literal["passkey"] = "passkey"


@dataclass(frozen=True)
class MfaRules:
    """Second-factor policy. Evaluated by auth.mfa.requires_second_factor().

    skip_if_primary_in wins over trigger_on_primary when a method is in both.
    """

    policy: MfaPolicy
    factors: tuple[MfaFactor, ...]
    trigger_on_primary: tuple[AuthenticationMethod, ...]
    skip_if_primary_in: tuple[AuthenticationMethod, ...]


@dataclass(frozen=True)
class WebhookSmsDelivery:
    """SMS codes are POSTed to a webhook whose URL/secret live in these env vars."""

    env_url: str
    env_secret: Optional[str] = None
    kind: Literal["webhook"] = "webhook"


@dataclass(frozen=True)
class ProviderSmsDelivery:
    name: Literal["twilio", "sns", "other"]
    kind: Literal["provider"] = "provider"


SmsOtpDelivery = Union[WebhookSmsDelivery, ProviderSmsDelivery]


# ---------------------------------------------------------------------------
# Server enforcement + profile
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ServerEnforcement:
    """Server-only enforcement table. Never sent to clients (see auth/client.py).

    method_to_paths is an ordered tuple, not a dict: the matcher walks it in
    registration order and the first method with a matching pattern wins.
    """

    base_path: str
    allowed_primary_methods: tuple[AuthenticationMethod, ...]
    method_to_paths: MethodPaths
    allow_callbacks: bool = False

    def patterns_for(self, method: AuthenticationMethod) -> tuple[PathPattern, ...]:
        for entry_method, patterns in self.method_to_paths:
            if entry_method == method:
                return patterns
        return ()


@dataclass(frozen=True)
class AuthenticationProfile:
    """One complete, named sign-in flow variant.

    id is the stable value that may be persisted (DB rows, cookies). The
    catalog key in auth/profiles.py is an implementation detail and must not
    be stored.
    """

    id: str
    label: str
    pages: AuthenticationPages
    identify: IdentifyStep
    authenticate: AuthenticateStep
    mfa: MfaRules
    server: ServerEnforcement
    biometric: Optional[BiometricStep] = None
    sms_otp_delivery: Optional[SmsOtpDelivery] = None
