"""
tests/test_profiles.py -- Unit tests for the profile catalog in auth/profiles.py.

Covers:
  - Catalog is exactly the nine flow x identifier profiles, ids unique and stable
  - UI method list == server allow-list for every profile
  - Structural invariants (check_profile) hold for every profile
  - check_profile() reports each kind of violation on a broken profile
  - Identifier scoping: no phone methods on *_email, no email methods on *_phone
  - Profiles are immutable
"""

from __future__ import annotations

import dataclasses

import pytest

from auth.models import PathPattern, ServerEnforcement
from auth.profiles import (
    AUTHENTICATION_PROFILES,
    DEFAULT_METHOD_PATHS,
    MFA_DEFAULT,
    PROFILE_IDENTIFIER_FIRST_BIOMETRICS_PHONE,
    PROFILE_IDENTIFIER_FIRST_EMAIL,
    PROFILE_IDENTIFIER_FIRST_PHONE,
    PROFILE_IDENTIFIER_PASSWORD_EMAIL,
    check_profile,
    get_profile,
    iter_profiles,
    restrict_method_paths,
)

ALL_PROFILES = list(AUTHENTICATION_PROFILES.values())


def _ids(profiles):
    return [p.id for p in profiles]


class TestCatalog:
    def test_catalog_has_nine_profiles(self) -> None:
        assert len(AUTHENTICATION_PROFILES) == 9

    def test_ids_are_unique(self) -> None:
        ids = _ids(ALL_PROFILES)
        assert len(ids) == len(set(ids))

    def test_expected_ids(self) -> None:
        expected = {
            f"{flow}_{identifier}"
            for flow in ("identifier_password", "identifier_first", "identifier_first_biometrics")
            for identifier in ("email", "phone", "username")
        }
        assert set(_ids(ALL_PROFILES)) == expected

    def test_catalog_key_differs_from_id(self) -> None:
        """The catalog key is internal; the id is what gets persisted."""
        for key, profile in iter_profiles():
            assert key != profile.id
            assert key == "PROFILE_" + profile.id.upper()

    def test_get_profile_unknown_key_raises(self) -> None:
        with pytest.raises(KeyError):
            get_profile("PROFILE_DOES_NOT_EXIST")

    def test_catalog_is_read_only(self) -> None:
        with pytest.raises(TypeError):
            AUTHENTICATION_PROFILES["PROFILE_NEW"] = PROFILE_IDENTIFIER_FIRST_EMAIL  # type: ignore[index]

    def test_profiles_are_frozen(self) -> None:
        with pytest.raises(dataclasses.FrozenInstanceError):
            PROFILE_IDENTIFIER_FIRST_EMAIL.label = "changed"  # type: ignore[misc]


class TestInvariants:
    @pytest.mark.parametrize("profile", ALL_PROFILES, ids=_ids(ALL_PROFILES))
    def test_methods_match_allowed_primary_methods(self, profile) -> None:
        assert set(profile.authenticate.methods) == set(profile.server.allowed_primary_methods)

    @pytest.mark.parametrize("profile", ALL_PROFILES, ids=_ids(ALL_PROFILES))
    def test_check_profile_reports_nothing(self, profile) -> None:
        assert check_profile(profile) == []

    @pytest.mark.parametrize("profile", ALL_PROFILES, ids=_ids(ALL_PROFILES))
    def test_method_to_paths_covers_exactly_the_allowed_methods(self, profile) -> None:
        mapped = [method for method, _ in profile.server.method_to_paths]
        assert set(mapped) == set(profile.server.allowed_primary_methods)
        for method in mapped:
            assert profile.server.patterns_for(method)

    @pytest.mark.parametrize("profile", ALL_PROFILES, ids=_ids(ALL_PROFILES))
    def test_mfa_trigger_and_skip_are_disjoint(self, profile) -> None:
        assert not set(profile.mfa.trigger_on_primary) & set(profile.mfa.skip_if_primary_in)


class TestCheckProfileViolations:
    """check_profile() must name each broken invariant, not just fail."""

    def test_method_set_mismatch(self) -> None:
        broken = dataclasses.replace(
            PROFILE_IDENTIFIER_PASSWORD_EMAIL,
            server=dataclasses.replace(
                PROFILE_IDENTIFIER_PASSWORD_EMAIL.server,
                allowed_primary_methods=("password", "smsOtp"),
            ),
        )
        problems = check_profile(broken)
        assert any("allowed_primary_methods" in p for p in problems)
        assert any("no entry for allowed method 'smsOtp'" in p for p in problems)

    def test_primary_identifier_not_allowed(self) -> None:
        broken = dataclasses.replace(
            PROFILE_IDENTIFIER_PASSWORD_EMAIL,
            identify=dataclasses.replace(PROFILE_IDENTIFIER_PASSWORD_EMAIL.identify, primary_identifier="phone"),
        )
        assert any("primary identifier" in p for p in check_profile(broken))

    def test_require_identifier_for_unknown_method(self) -> None:
        broken = dataclasses.replace(
            PROFILE_IDENTIFIER_PASSWORD_EMAIL,
            authenticate=dataclasses.replace(
                PROFILE_IDENTIFIER_PASSWORD_EMAIL.authenticate,
                require_identifier_for=("password", "magicLink"),
            ),
        )
        assert any("require_identifier_for" in p for p in check_profile(broken))

    def test_unsanctioned_method_in_path_table(self) -> None:
        broken = dataclasses.replace(
            PROFILE_IDENTIFIER_PASSWORD_EMAIL,
            server=ServerEnforcement(
                base_path="/api/auth",
                allowed_primary_methods=("password",),
                method_to_paths=DEFAULT_METHOD_PATHS,
            ),
        )
        assert any("maps 'smsOtp'" in p for p in check_profile(broken))

    def test_overlapping_mfa_lists(self) -> None:
        broken = dataclasses.replace(
            PROFILE_IDENTIFIER_FIRST_EMAIL,
            mfa=dataclasses.replace(MFA_DEFAULT, trigger_on_primary=("password", "passkey")),
        )
        assert any("overlap" in p for p in check_profile(broken))

    def test_sms_without_delivery(self) -> None:
        broken = dataclasses.replace(PROFILE_IDENTIFIER_FIRST_PHONE, sms_otp_delivery=None)
        assert any("sms_otp_delivery" in p for p in check_profile(broken))

    def test_biometric_without_page(self) -> None:
        broken = dataclasses.replace(
            PROFILE_IDENTIFIER_FIRST_BIOMETRICS_PHONE,
            pages=PROFILE_IDENTIFIER_FIRST_PHONE.pages,
        )
        assert any("pages.biometric" in p for p in check_profile(broken))


class TestIdentifierScoping:
    @pytest.mark.parametrize("key", [k for k in AUTHENTICATION_PROFILES if k.endswith("_EMAIL")])
    def test_email_profiles_have_no_sms(self, key: str) -> None:
        profile = AUTHENTICATION_PROFILES[key]
        assert "smsOtp" not in profile.server.allowed_primary_methods
        assert profile.identify.identifiers == ("email",)
        assert profile.sms_otp_delivery is None

    @pytest.mark.parametrize("key", [k for k in AUTHENTICATION_PROFILES if k.endswith("_PHONE")])
    def test_phone_profiles_have_no_email_methods(self, key: str) -> None:
        profile = AUTHENTICATION_PROFILES[key]
        assert "emailOtp" not in profile.server.allowed_primary_methods
        assert "magicLink" not in profile.server.allowed_primary_methods
        assert profile.identify.identifiers == ("phone",)

    @pytest.mark.parametrize("key", [k for k in AUTHENTICATION_PROFILES if k.endswith("_USERNAME")])
    def test_username_profiles_have_no_otp_or_links(self, key: str) -> None:
        methods = AUTHENTICATION_PROFILES[key].server.allowed_primary_methods
        assert not {"emailOtp", "smsOtp", "magicLink"} & set(methods)

    def test_phone_profiles_use_sms_webhook(self) -> None:
        delivery = PROFILE_IDENTIFIER_FIRST_PHONE.sms_otp_delivery
        assert delivery is not None
        assert delivery.kind == "webhook"
        assert delivery.env_url == "BETTER_AUTH_PHONE_OTP_WEBHOOK_URL"

    def test_password_only_profiles_block_callbacks(self) -> None:
        assert PROFILE_IDENTIFIER_PASSWORD_EMAIL.server.allow_callbacks is False
        assert PROFILE_IDENTIFIER_FIRST_EMAIL.server.allow_callbacks is True

    def test_biometric_profiles_offer_passkey_and_biometric_page(self) -> None:
        profile = PROFILE_IDENTIFIER_FIRST_BIOMETRICS_PHONE
        assert profile.biometric is not None and profile.biometric.enabled
        assert profile.pages.biometric == "/auth/sign-in/biometric"
        assert "passkey" in profile.authenticate.methods


class TestRestrictMethodPaths:
    def test_keeps_table_order(self) -> None:
        restricted = restrict_method_paths(DEFAULT_METHOD_PATHS, ("social", "password"))
        assert [method for method, _ in restricted] == ["password", "social"]

    def test_password_only_table(self) -> None:
        table = PROFILE_IDENTIFIER_PASSWORD_EMAIL.server.method_to_paths
        assert [method for method, _ in table] == ["password"]
        assert PathPattern.exact("/sign-in/email") in table[0][1]
