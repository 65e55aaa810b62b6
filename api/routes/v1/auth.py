"""
api/routes/v1/auth.py -- Public sign-in configuration endpoints.

Routes:
  GET /api/v1/auth/profile   -- public projection of the active profile
  GET /api/v1/auth/flow      -- next step for the identify page

Both read the active profile through get_request_profile() (api/dependencies.py).

Security:
  [P2] /profile returns ClientProfileResponse, which has no field for the
       server enforcement table (see auth/client.py).
  [F1] /flow only echoes callbackUrl when it is a same-site relative path.
  [H2] Both routes are rate-limited per IP (PROFILE_RATE_LIMIT).
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query, Request

from api.dependencies import get_request_profile
from api.limiter import limiter
from api.models import ClientProfileResponse, FlowStepResponse
from auth.client import to_client_profile
from auth.flow import (
    AUTH_FLOW_CALLBACK_PARAM,
    AUTH_FLOW_IDENTIFIER_PARAM,
    AUTH_FLOW_IDENTIFIER_TYPE_PARAM,
    SignInFlowContext,
    build_auth_page_url,
    get_sign_in_flow_context,
    is_method_compatible_with_identifier,
    profile_supports_identifier,
    should_show_social_for_step,
    should_use_dedicated_biometric_page,
    should_use_identifier_first,
)
from auth.models import AuthenticationProfile
from core.config import get_settings

# Auth policy:
# - GET /api/v1/auth/profile:  public -- the sign-in pages need it before anyone is signed in
# - GET /api/v1/auth/flow:     public -- same
router = APIRouter()


@limiter.limit(lambda: get_settings().profile_rate_limit)
@router.get("/auth/profile", response_model=ClientProfileResponse)
def get_profile(
    request: Request,
    profile: AuthenticationProfile = Depends(get_request_profile),
) -> ClientProfileResponse:
    """Return the active profile's public view: flow shape plus base_path/allow_callbacks."""
    return ClientProfileResponse.model_validate(to_client_profile(profile), from_attributes=True)


@limiter.limit(lambda: get_settings().profile_rate_limit)
@router.get("/auth/flow", response_model=FlowStepResponse)
def get_flow_step(
    request: Request,
    callback_url: Optional[str] = Query(default=None, alias=AUTH_FLOW_CALLBACK_PARAM),
    identifier_type: Optional[str] = Query(default=None, alias=AUTH_FLOW_IDENTIFIER_TYPE_PARAM),
    identifier: Optional[str] = Query(default=None, alias=AUTH_FLOW_IDENTIFIER_PARAM, max_length=320),
    profile: AuthenticationProfile = Depends(get_request_profile),
) -> FlowStepResponse:
    """Tell the identify page which page comes next and which methods fit the identifier.

    An identifier type the profile does not accept yields identifier_supported=False
    and only the identifier-less methods. The response wording is the same whether
    or not an account exists: nothing here touches the user store.
    """
    params = {
        key: value
        for key, value in (
            (AUTH_FLOW_CALLBACK_PARAM, callback_url),
            (AUTH_FLOW_IDENTIFIER_TYPE_PARAM, identifier_type),
            (AUTH_FLOW_IDENTIFIER_PARAM, identifier),
        )
        if value is not None
    }
    context = get_sign_in_flow_context(params)

    supported = context.identifier_type is not None and profile_supports_identifier(profile, context.identifier_type)
    if not supported:
        context = SignInFlowContext(callback_url=context.callback_url)
    effective_type = context.identifier_type
    methods = [
        method
        for method in profile.authenticate.methods
        if is_method_compatible_with_identifier(method, effective_type)
    ]

    use_biometric_page = should_use_dedicated_biometric_page(profile)
    if use_biometric_page and profile.pages.biometric is not None:
        next_page = profile.pages.biometric
    elif should_use_identifier_first(profile):
        next_page = profile.pages.method
    else:
        next_page = profile.pages.identify

    return FlowStepResponse(
        identifier_first=should_use_identifier_first(profile),
        use_biometric_page=use_biometric_page,
        show_social_step1=should_show_social_for_step(profile, "step1"),
        show_social_step2=should_show_social_for_step(profile, "step2"),
        identifier_type=effective_type,
        identifier=context.identifier,
        identifier_supported=supported,
        methods=methods,
        next_url=build_auth_page_url(next_page, context),
    )