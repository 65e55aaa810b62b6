"""
API request and response models for the authflow REST endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the frozen dataclasses in auth/models.py
and auth/client.py, which own the internal domain representation. Route
handlers build responses with Model.model_validate(obj, from_attributes=True).

Separation of concerns: auth/ models = domain truth; api/ models = API contract.

ClientProfileResponse has no field for allowed_primary_methods or
method_to_paths. Even if a handler passed a full AuthenticationProfile by
mistake, the enforcement table would not be serialized.
"""

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict

# ---------------------------------------------------------------------------
# Client profile
# ---------------------------------------------------------------------------


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True, from_attributes=True)


class PagesResponse(_Frozen):
    identify: str
    method: str
    two_factor: str
    biometric: Optional[str] = None


class AntiEnumerationResponse(_Frozen):
    enabled: bool
    generic_success_message: str


class IdentifyResponse(_Frozen):
    identifiers: list[str]
    primary_identifier: str
    social_placement: str
    anti_enumeration: AntiEnumerationResponse


class AutoAttemptPasskeyResponse(_Frozen):
    enabled: bool
    when: str
    max_attempts: int


class AuthenticateResponse(_Frozen):
    methods: list[str]
    preferred: Optional[str] = None
    require_identifier_for: list[str]
    auto_attempt_passkey: Optional[AutoAttemptPasskeyResponse] = None


class MfaResponse(_Frozen):
    policy: str
    factors: list[str]
    trigger_on_primary: list[str]
    skip_if_primary_in: list[str]


class BiometricResponse(_Frozen):
    enabled: bool
    method: str
    use_dedicated_page: bool
    completes_sign_in_on_success: bool
    fallback_to_method_page: bool


class SmsOtpDeliveryResponse(_Frozen):
    kind: Literal["webhook", "provider"]
    env_url: Optional[str] = None
    env_secret: Optional[str] = None
    name: Optional[str] = None


class ClientServerResponse(_Frozen):
    base_path: str
    allow_callbacks: bool


class ClientProfileResponse(_Frozen):
    """Response for GET /api/v1/auth/profile -- the public view of the active profile."""

    id: str
    label: str
    pages: PagesResponse
    identify: IdentifyResponse
    authenticate: AuthenticateResponse
    mfa: MfaResponse
    biometric: Optional[BiometricResponse] = None
    sms_otp_delivery: Optional[SmsOtpDeliveryResponse] = None
    server: ClientServerResponse


# ---------------------------------------------------------------------------
# Sign-in flow
# ---------------------------------------------------------------------------


class FlowStepResponse(BaseModel):
    """Response for GET /api/v1/auth/flow -- what the identify page should do next."""

    model_config = ConfigDict(frozen=True)

    identifier_first: bool
    use_biometric_page: bool
    show_social_step1: bool
    show_social_step2: bool
    identifier_type: Optional[str] = None
    identifier: Optional[str] = None
    identifier_supported: bool
    methods: list[str]
    next_url: str


# ---------------------------------------------------------------------------
# Shared
# ---------------------------------------------------------------------------


class ErrorDetail(BaseModel):
    """Machine-readable error payload."""

    model_config = ConfigDict(frozen=True)

    code: str
    message: str
    detail: Optional[str] = None


class ErrorResponse(BaseModel):
    """Top-level error envelope returned on 4xx/5xx responses."""

    model_config = ConfigDict(frozen=True)

    error: ErrorDetail


class HealthResponse(BaseModel):
    """Response for GET /api/v1/health."""

    model_config = ConfigDict(frozen=True)

    status: str = "ok"
    version: str
    profile: str
