"""Closed set of remediation kinds understood by the resolver and builder.

The server selects behaviour by remediation *name*. Rather than matching
those strings ad hoc throughout the code, every name is mapped once to a
:class:`RemediationKind` member here. Anything outside the known set maps to
:attr:`RemediationKind.UNKNOWN`, which the resolver and builder handle in an
explicit branch (verbatim field mapping, no heuristics) or reject outright
in strict mode.
"""

from __future__ import annotations

import enum

from idxauth.models import Remediation


class RemediationKind(str, enum.Enum):
    """Known remediation names, plus an explicit ``UNKNOWN`` member."""

    IDENTIFY = "identify"
    SELECT_AUTHENTICATOR_AUTHENTICATE = "select-authenticator-authenticate"
    SELECT_AUTHENTICATOR_ENROLL = "select-authenticator-enroll"
    CHALLENGE_AUTHENTICATOR = "challenge-authenticator"
    ENROLL_AUTHENTICATOR = "enroll-authenticator"
    AUTHENTICATOR_ENROLLMENT_DATA = "authenticator-enrollment-data"
    AUTHENTICATOR_VERIFICATION_DATA = "authenticator-verification-data"
    REENROLL_AUTHENTICATOR = "reenroll-authenticator"
    RESET_AUTHENTICATOR = "reset-authenticator"
    SELECT_ENROLL_PROFILE = "select-enroll-profile"
    ENROLL_PROFILE = "enroll-profile"
    REDIRECT_IDP = "redirect-idp"
    SKIP = "skip"
    UNKNOWN = "unknown"

    @classmethod
    def of(cls, remediation: Remediation | str) -> RemediationKind:
        """Return the kind for a remediation (or a bare remediation name)."""
        name = remediation if isinstance(remediation, str) else remediation.name
        try:
            return cls(name)
        except ValueError:
            return cls.UNKNOWN

    @property
    def selects_authenticator(self) -> bool:
        return self in (
            RemediationKind.SELECT_AUTHENTICATOR_AUTHENTICATE,
            RemediationKind.SELECT_AUTHENTICATOR_ENROLL,
        )

    @property
    def collects_authenticator_data(self) -> bool:
        return self in (
            RemediationKind.AUTHENTICATOR_ENROLLMENT_DATA,
            RemediationKind.AUTHENTICATOR_VERIFICATION_DATA,
        )

    @property
    def collects_passcode(self) -> bool:
        return self in (
            RemediationKind.CHALLENGE_AUTHENTICATOR,
            RemediationKind.ENROLL_AUTHENTICATOR,
        )

    @property
    def sets_new_password(self) -> bool:
        return self in (
            RemediationKind.REENROLL_AUTHENTICATOR,
            RemediationKind.RESET_AUTHENTICATOR,
        )


def passcode_input_name(remediation: Remediation) -> str:
    """Caller-facing name for a remediation's ``credentials.passcode`` field.

    ``password`` for identify steps and password authenticators,
    ``newPassword`` for password (re)enrollment, ``verificationCode`` for
    every code-entry step.
    """
    kind = RemediationKind.of(remediation)
    if kind.sets_new_password:
        return "newPassword"
    if kind is RemediationKind.IDENTIFY or remediation.type == "password":
        return "password"
    return "verificationCode"
