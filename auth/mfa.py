"""
auth/mfa.py -- Second-factor trigger rule over MfaRules.

The session-issuance collaborator calls requires_second_factor() after a
primary method succeeds. Precedence, highest first:

  1. policy "disabled"            -> no second factor
  2. method in skip_if_primary_in -> no second factor (skip wins over trigger)
  3. policy "always"              -> second factor
  4. method in trigger_on_primary -> second factor

For "ifUserEnabled" a True result still depends on the user having enrolled a
factor; policy_requires_user_enrollment() tells the caller to check that.
"""

from __future__ import annotations

from auth.models import AuthenticationMethod, MfaRules


def requires_second_factor(mfa: MfaRules, primary_method: AuthenticationMethod) -> bool:
    if mfa.policy == "disabled":
        return False
    if primary_method in mfa.skip_if_primary_in:
        return False
    if mfa.policy == "always":
        return True
    return primary_method in mfa.trigger_on_primary


def policy_requires_user_enrollment(mfa: MfaRules) -> bool:
    return mfa.policy == "ifUserEnabled"
