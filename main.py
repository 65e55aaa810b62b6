#!/usr/bin/env python3
"""
authflow -- Inspect and check authentication-flow profiles from the terminal.

Usage:
  python main.py --list
  python main.py --profile identifier_first_phone
  python main.py --profile PROFILE_IDENTIFIER_PASSWORD_EMAIL --json
  python main.py --check-path /sign-in/email
  python main.py --profile identifier_first_biometrics_phone --mfa passkey
  python main.py --validate

Environment variables:
  AUTHENTICATION_PROFILE          Active profile (catalog key or stable id).
                                  Used when --profile is not given.
  AUTHENTICATION_PROFILE_STRICT   true = an unknown value is an error, not a fallback.
"""

import argparse
import json
import sys
from typing import Optional

from auth.client import client_profile_to_dict, to_client_profile
from auth.enforcement import MAX_PATH_LENGTH, evaluate_request_path
from auth.mfa import policy_requires_user_enrollment, requires_second_factor
from auth.models import AUTHENTICATION_METHODS, AuthenticationProfile
from auth.profiles import check_profile, iter_profiles
from auth.resolve import ProfileConfigError, get_active_profile, resolve_profile
from core.config import get_settings


def _select_profile(value: Optional[str]) -> AuthenticationProfile:
    """--profile wins over the environment. Strict mode applies to the environment only."""
    if value is not None:
        return resolve_profile(value)
    return get_active_profile(get_settings())


def _print_list() -> None:
    print(f"  {'CATALOG KEY':<46} {'ID':<38} LABEL")
    for key, profile in iter_profiles():
        print(f"  {key:<46} {profile.id:<38} {profile.label}")


def _print_profile(profile: AuthenticationProfile) -> None:
    print(f"\n  {profile.label}  [{profile.id}]")
    print("  " + "─" * 40)
    print(f"  Identifiers:     {', '.join(profile.identify.identifiers)}")
    print(f"  Methods:         {', '.join(profile.authenticate.methods)}")
    print(f"  Preferred:       {profile.authenticate.preferred or '-'}")
    print(f"  Social buttons:  {profile.identify.social_placement}")
    print(f"  Biometric step:  {'yes' if profile.biometric and profile.biometric.enabled else 'no'}")
    print(f"  MFA policy:      {profile.mfa.policy} ({', '.join(profile.mfa.factors)})")
    print(f"  Callbacks:       {'allowed' if profile.server.allow_callbacks else 'blocked'}")
    print(f"  Base path:       {profile.server.base_path}\n")


def _validate_all() -> int:
    failures = 0
    for key, profile in iter_profiles():
        problems = check_profile(profile)
        if problems:
            failures += 1
            print(f"  [!] {key}")
            for problem in problems:
                print(f"      - {problem}")
        else:
            print(f"  ok  {key}")
    return failures


def main() -> None:
    parser = argparse.ArgumentParser(
        prog="authflow",
        description="Inspect authentication-flow profiles and check sign-in paths against them.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py --list
  python main.py --profile identifier_first_email --json
  python main.py --profile identifier_password_email --check-path /sign-in/phone-otp
  python main.py --profile identifier_first_biometrics_phone --mfa password
  AUTHENTICATION_PROFILE=identifier_first_phone python main.py
        """,
    )
    parser.add_argument("--list", action="store_true", help="List every profile in the catalog")
    parser.add_argument(
        "--profile",
        metavar="VALUE",
        help="Profile to use (catalog key or id). Defaults to AUTHENTICATION_PROFILE.",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Print the public (client) projection of the profile as JSON",
    )
    parser.add_argument(
        "--check-path",
        metavar="PATH",
        help="Check a path relative to the auth base path, e.g. /sign-in/email",
    )
    parser.add_argument(
        "--mfa",
        choices=AUTHENTICATION_METHODS,
        metavar="METHOD",
        help="Show whether a second factor follows a successful primary METHOD",
    )
    parser.add_argument("--validate", action="store_true", help="Check every catalog profile's invariants")
    args = parser.parse_args()

    if args.list:
        _print_list()
        return

    if args.validate:
        sys.exit(1 if _validate_all() else 0)

    try:
        profile = _select_profile(args.profile)
    except ProfileConfigError as e:
        print(f"  [!] {e}")
        sys.exit(2)

    if args.json:
        print(json.dumps(client_profile_to_dict(to_client_profile(profile)), indent=2))
        return

    if args.check_path is None and args.mfa is None:
        _print_profile(profile)
        return

    if args.check_path is not None:
        decision = evaluate_request_path(profile, args.check_path)
        shown = args.check_path if len(args.check_path) <= 80 else args.check_path[:77] + "..."
        verdict = "ALLOW" if decision.allowed else "DENY"
        print(f"  {verdict}  {shown}  (method={decision.method or '-'}, reason={decision.reason})")
        if len(args.check_path) > MAX_PATH_LENGTH:
            print(f"  [!] Path exceeds {MAX_PATH_LENGTH} characters.")

    if args.mfa is not None:
        required = requires_second_factor(profile.mfa, args.mfa)
        if not required:
            print(f"  No second factor after {args.mfa}.")
        elif policy_requires_user_enrollment(profile.mfa):
            print(f"  Second factor after {args.mfa} if the user has enrolled one ({', '.join(profile.mfa.factors)}).")
        else:
            print(f"  Second factor required after {args.mfa} ({', '.join(profile.mfa.factors)}).")


if __name__ == "__main__":
    main()
