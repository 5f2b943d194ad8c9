"""Remediation resolver -- pick a remediation and build its payload from caller params.

:class:`RemediationResolver` walks a response's remediations in server order
and returns a :class:`Resolution` for the first one whose needed fields can
all be filled from the caller's parameters plus a handful of heuristics:

* ``identify``: ``identifier`` <- ``username``; when the server merged the
  password step in, ``credentials.passcode`` <- ``password`` as well.
* ``select-authenticator-*``: when ``authenticators`` (or ``authenticator``)
  names exactly one offered choice, submit ``{"authenticator": {"id": ...}}``.
* ``authenticator-enrollment-data`` / ``authenticator-verification-data``:
  ``phoneNumber`` is submitted together with the first delivery method
  offered (SMS).
* ``challenge-authenticator`` / ``enroll-authenticator``:
  ``credentials.passcode`` <- ``password`` or ``verificationCode``.
* ``reenroll-authenticator`` / ``reset-authenticator``:
  ``credentials.passcode`` <- ``newPassword``.
* ``enroll-profile``: ``userProfile.<attr>`` <- ``<attr>``.
* ``select-enroll-profile`` and ``skip`` only when explicitly requested
  through ``register`` / ``skip``.

Any leaf field no heuristic covers is filled from ``params[field.name]``
when present. Fields that stay empty leave the remediation unresolved.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Collection, Mapping, Optional

from idxauth.exceptions import UnknownRemediationError
from idxauth.models import IdxResponse, Remediation, RemediationField
from idxauth.output import get_output
from idxauth.remediations import RemediationKind

_MISSING = object()


@dataclass(frozen=True)
class Resolution:
    """A remediation chosen for submission and the payload to send with it."""

    remediation: Remediation
    payload: dict[str, Any] = field(default_factory=dict)

    @property
    def name(self) -> str:
        return self.remediation.name


@dataclass
class _Fill:
    """Accumulates one remediation's payload while its fields are walked."""

    hints: Mapping[str, Any]
    params: Mapping[str, Any]
    supplied: int = 0
    satisfied: bool = True

    def lookup(self, path: str, name: str) -> Any:
        if path in self.hints:
            return self.hints[path]
        if self.params.get(name) is not None:
            return self.params[name]
        return _MISSING


class RemediationResolver:
    """Select the first satisfiable remediation and build its payload.

    Args:
        strict: When ``True``, an unrecognised remediation name raises
            :class:`~idxauth.exceptions.UnknownRemediationError` instead of
            being resolved through explicit field-name params only.
    """

    def __init__(self, strict: bool = False) -> None:
        self._strict = strict

    def resolve(
        self,
        response: IdxResponse,
        params: Mapping[str, Any],
        exclude: Collection[str] = (),
    ) -> Optional[Resolution]:
        """Return the first remediation *params* can fully satisfy, or ``None``.

        Args:
            response: The current protocol state.
            params: Caller-supplied values. Unrecognised keys are ignored.
            exclude: Remediation names that must not be picked, e.g. those
                already submitted earlier in the same call.

        Raises:
            UnknownRemediationError: In strict mode, for an unrecognised
                remediation name.
        """
        for remediation in response.remediations:
            if remediation.name in exclude:
                continue
            resolution = self.resolve_remediation(remediation, params)
            if resolution is not None:
                return resolution
        return None

    def resolve_remediation(
        self, remediation: Remediation, params: Mapping[str, Any]
    ) -> Optional[Resolution]:
        """Try to satisfy one remediation; ``None`` if any needed field is missing."""
        kind = RemediationKind.of(remediation)

        if kind is RemediationKind.UNKNOWN:
            if self._strict:
                raise UnknownRemediationError(remediation.name)
            get_output().warning(
                f"Unrecognised remediation '{remediation.name}'; "
                "only explicitly named params will be used"
            )
        if kind.selects_authenticator:
            return self._select_authenticator(remediation, params)
        if kind is RemediationKind.SKIP:
            return Resolution(remediation) if params.get("skip") else None
        if kind is RemediationKind.SELECT_ENROLL_PROFILE:
            return Resolution(remediation) if params.get("register") else None
        if kind is RemediationKind.REDIRECT_IDP:
            return None

        hints = self._hints(kind, remediation, params)
        return self._fill_remediation(remediation, params, hints)

    # ------------------------------------------------------------------ #
    # Field filling
    # ------------------------------------------------------------------ #

    def _fill_remediation(
        self,
        remediation: Remediation,
        params: Mapping[str, Any],
        hints: dict[str, Any],
    ) -> Optional[Resolution]:
        state = _Fill(hints=hints, params=params)
        payload = self._fill_fields(remediation.fields, "", state)
        if not state.satisfied or state.supplied == 0:
            return None
        return Resolution(remediation, payload)

    def _fill_fields(
        self, fields: list[RemediationField], prefix: str, state: _Fill
    ) -> dict[str, Any]:
        payload: dict[str, Any] = {}
        for fld in fields:
            path = f"{prefix}{fld.name}"
            if path == "stateHandle":
                # sent by the advancer with every submission
                continue
            if fld.form:
                before = state.supplied
                nested = self._fill_fields(fld.form, f"{path}.", state)
                if state.supplied > before:
                    payload[fld.name] = nested
                elif fld.is_required:
                    state.satisfied = False
                continue

            value = state.lookup(path, fld.name)
            if value is not _MISSING:
                payload[fld.name] = value
                state.supplied += 1
            elif fld.value is not None:
                payload[fld.name] = fld.value
            elif fld.required or _is_primary(path):
                state.satisfied = False
        return payload

    # ------------------------------------------------------------------ #
    # Per-kind heuristics (field path -> value)
    # ------------------------------------------------------------------ #

    def _hints(
        self, kind: RemediationKind, remediation: Remediation, params: Mapping[str, Any]
    ) -> dict[str, Any]:
        if kind is RemediationKind.IDENTIFY:
            return self._identify_hints(remediation, params)
        if kind.collects_passcode:
            return self._passcode_hints(remediation, params)
        if kind.sets_new_password:
            return self._new_password_hints(remediation, params)
        if kind.collects_authenticator_data:
            return self._authenticator_data_hints(remediation, params)
        if kind is RemediationKind.ENROLL_PROFILE:
            return self._profile_hints(remediation, params)
        return {}

    @staticmethod
    def _identify_hints(remediation: Remediation, params: Mapping[str, Any]) -> dict[str, Any]:
        hints: dict[str, Any] = {}
        if params.get("username") is not None:
            hints["identifier"] = params["username"]
        if remediation.get_field("credentials") is not None and params.get("password") is not None:
            hints["credentials.passcode"] = params["password"]
        return hints

    @staticmethod
    def _passcode_hints(remediation: Remediation, params: Mapping[str, Any]) -> dict[str, Any]:
        order = ("password", "verificationCode")
        if remediation.type != "password":
            order = ("verificationCode", "password")
        for key in order:
            if params.get(key) is not None:
                return {"credentials.passcode": params[key]}
        return {}

    @staticmethod
    def _new_password_hints(remediation: Remediation, params: Mapping[str, Any]) -> dict[str, Any]:
        if params.get("newPassword") is not None:
            return {"credentials.passcode": params["newPassword"]}
        return {}

    @staticmethod
    def _authenticator_data_hints(
        remediation: Remediation, params: Mapping[str, Any]
    ) -> dict[str, Any]:
        authenticator = remediation.get_field("authenticator")
        phone_number = params.get("phoneNumber")
        if authenticator is None or phone_number is None:
            return {}
        hints: dict[str, Any] = {"authenticator.phoneNumber": phone_number}
        method_type = authenticator.get_subfield("methodType")
        if method_type is not None and method_type.options:
            # TODO: let callers choose the delivery method once product decides on voice support
            hints["authenticator.methodType"] = method_type.options[0].value
        return hints

    @staticmethod
    def _profile_hints(remediation: Remediation, params: Mapping[str, Any]) -> dict[str, Any]:
        profile = remediation.get_field("userProfile")
        if profile is None:
            return {}
        return {
            f"userProfile.{sub.name}": params[sub.name]
            for sub in profile.form or []
            if params.get(sub.name) is not None
        }

    # ------------------------------------------------------------------ #
    # Authenticator selection
    # ------------------------------------------------------------------ #

    @staticmethod
    def _select_authenticator(
        remediation: Remediation, params: Mapping[str, Any]
    ) -> Optional[Resolution]:
        authenticator = remediation.get_field("authenticator")
        if authenticator is None or not authenticator.options:
            return None

        requested = params.get("authenticators") or []
        if isinstance(requested, str):
            requested = [requested]
        requested = list(requested)
        if params.get("authenticator") is not None:
            requested.append(params["authenticator"])
        if not requested:
            return None

        matches = [
            option
            for option in authenticator.options
            if option.authenticator_type in requested or option.value in requested
        ]
        if len(matches) != 1:
            return None
        return Resolution(remediation, {"authenticator": {"id": matches[0].value}})


def _is_primary(path: str) -> bool:
    """Fields a remediation cannot be submitted without, even if not flagged required."""
    return path in ("identifier", "credentials.passcode")
