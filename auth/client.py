"""
auth/client.py -- Public-safe projection of a profile for UI collaborators.

Security note:
  [P2] The projection carries only base_path and allow_callbacks from the
       server section. allowed_primary_methods and method_to_paths are withheld:
       publishing the exact path-pattern table would tell a client precisely
       which wire paths enforcement accepts. Audit this module whenever the
       shape of AuthenticationProfile changes.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Optional

from auth.models import (
    AuthenticateStep,
    AuthenticationPages,
    AuthenticationProfile,
    BiometricStep,
    IdentifyStep,
    MfaRules,
    SmsOtpDelivery,
)
from auth.resolve import get_active_profile
from core.config import Settings


@dataclass(frozen=True)
class ClientServerEnforcement:
    base_path: str
    allow_callbacks: bool


@dataclass(frozen=True)
class ClientAuthenticationProfile:
    id: str
    label: str
    pages: AuthenticationPages
    identify: IdentifyStep
    authenticate: AuthenticateStep
    mfa: MfaRules
    server: ClientServerEnforcement
    biometric: Optional[BiometricStep] = None
    sms_otp_delivery: Optional[SmsOtpDelivery] = None


def to_client_profile(profile: AuthenticationProfile) -> ClientAuthenticationProfile:
    """Shrink *profile* to the fields a browser may see. Pure; shares the frozen sub-objects."""
    return ClientAuthenticationProfile(
        id=profile.id,
        label=profile.label,
        pages=profile.pages,
        identify=profile.identify,
        authenticate=profile.authenticate,
        mfa=profile.mfa,
        biometric=profile.biometric,
        sms_otp_delivery=profile.sms_otp_delivery,
        server=ClientServerEnforcement(
            base_path=profile.server.base_path,
            allow_callbacks=profile.server.allow_callbacks,
        ),
    )


def client_profile_to_dict(client_profile: ClientAuthenticationProfile) -> dict[str, Any]:
    """JSON-ready dict of a client profile (tuples become lists via json)."""
    return asdict(client_profile)


def get_active_client_profile(settings: Optional[Settings] = None) -> ClientAuthenticationProfile:
    return to_client_profile(get_active_profile(settings))
