"""
tests/test_client.py -- Unit tests for the client projection (auth/client.py).

The projection is the one place the server enforcement table could leak to a
browser, so every profile is checked structurally: the projected object and
its dict form must carry only base_path and allow_callbacks from server.
"""

from __future__ import annotations

import json

import pytest

from auth.client import client_profile_to_dict, get_active_client_profile, to_client_profile
from auth.profiles import AUTHENTICATION_PROFILES, PROFILE_IDENTIFIER_FIRST_BIOMETRICS_PHONE

ALL_PROFILES = list(AUTHENTICATION_PROFILES.values())
WITHHELD = ("allowed_primary_methods", "method_to_paths")


def _all_keys(value) -> set[str]:
    keys: set[str] = set()
    if isinstance(value, dict):
        for key, item in value.items():
            keys.add(key)
            keys |= _all_keys(item)
    elif isinstance(value, (list, tuple)):
        for item in value:
            keys |= _all_keys(item)
    return keys


class TestProjection:
    @pytest.mark.parametrize("profile", ALL_PROFILES, ids=lambda p: p.id)
    def test_server_section_is_reduced(self, profile) -> None:
        client = to_client_profile(profile)
        for name in WITHHELD:
            assert not hasattr(client.server, name)
        assert client.server.base_path == profile.server.base_path
        assert client.server.allow_callbacks == profile.server.allow_callbacks

    @pytest.mark.parametrize("profile", ALL_PROFILES, ids=lambda p: p.id)
    def test_dict_never_contains_enforcement_table(self, profile) -> None:
        data = client_profile_to_dict(to_client_profile(profile))
        assert set(data["server"]) == {"base_path", "allow_callbacks"}
        assert not set(WITHHELD) & _all_keys(data)

    @pytest.mark.parametrize("profile", ALL_PROFILES, ids=lambda p: p.id)
    def test_flow_shape_is_carried_over(self, profile) -> None:
        client = to_client_profile(profile)
        assert client.id == profile.id
        assert client.label == profile.label
        assert client.pages == profile.pages
        assert client.identify == profile.identify
        assert client.authenticate == profile.authenticate
        assert client.mfa == profile.mfa
        assert client.biometric == profile.biometric
        assert client.sms_otp_delivery == profile.sms_otp_delivery

    def test_dict_is_json_serializable(self) -> None:
        data = client_profile_to_dict(to_client_profile(PROFILE_IDENTIFIER_FIRST_BIOMETRICS_PHONE))
        decoded = json.loads(json.dumps(data))
        assert decoded["sms_otp_delivery"]["kind"] == "webhook"
        assert decoded["pages"]["biometric"] == "/auth/sign-in/biometric"
        assert decoded["authenticate"]["methods"] == ["passkey", "password", "smsOtp", "social"]

    def test_no_regex_patterns_in_output(self) -> None:
        text = json.dumps(client_profile_to_dict(to_client_profile(PROFILE_IDENTIFIER_FIRST_BIOMETRICS_PHONE)))
        assert "/phone-otp/" not in text
        assert "/sign-in/phone-number" not in text

    def test_active_client_profile_uses_settings(self, settings_env) -> None:
        settings_env(authentication_profile="identifier_password_phone")
        assert get_active_client_profile().id == "identifier_password_phone"
