"""Next-step builder -- describe a pending remediation in caller terms.

:class:`NextStepBuilder` is a pure function of a single
:class:`~idxauth.models.Remediation`: the same remediation always yields an
identical :class:`~idxauth.models.NextStep`, which is what lets the
orchestrator re-present a step after a soft error.

Wire names are translated to the names callers pass back in:

* ``identifier`` becomes ``username``;
* ``credentials.passcode`` is flattened into a single ``password``,
  ``verificationCode`` or ``newPassword`` input (see
  :func:`~idxauth.remediations.passcode_input_name`);
* authenticator choices are offered by authenticator type (``phone``,
  ``email``) when the server says which type each option selects.

Hidden fields (``visible: false``, e.g. ``stateHandle``) are omitted.
Unrecognised remediations are mapped field by field without renaming.
"""

from __future__ import annotations

from idxauth.models import (
    Input,
    InputForm,
    InputOption,
    NextStep,
    Remediation,
    RemediationField,
)
from idxauth.remediations import RemediationKind, passcode_input_name


class NextStepBuilder:
    """Convert a remediation into the inputs a caller must supply."""

    def build(self, remediation: Remediation) -> NextStep:
        kind = RemediationKind.of(remediation)
        inputs: list[Input] = []
        for field in remediation.fields:
            if field.visible is False:
                continue
            if kind is RemediationKind.UNKNOWN:
                inputs.append(_to_input(field))
            elif field.name == "identifier":
                inputs.append(_to_input(field, name="username"))
            elif field.name == "credentials" and field.get_subfield("passcode") is not None:
                inputs.append(_passcode_input(remediation, field))
            elif kind.selects_authenticator and field.name == "authenticator":
                inputs.append(_authenticator_choice(field))
            else:
                inputs.append(_to_input(field))

        return NextStep(
            name=remediation.name,
            type=remediation.type,
            can_skip=remediation.can_skip,
            inputs=inputs,
        )


def _to_input(field: RemediationField, name: str | None = None) -> Input:
    return Input(
        name=name or field.name,
        label=field.label,
        required=field.required,
        secret=field.secret,
        type=field.type,
        value=field.value,
        options=[InputOption(value=o.value, label=o.label) for o in field.options]
        if field.options is not None
        else None,
        form=InputForm(value=[_to_input(sub) for sub in field.form if sub.visible is not False])
        if field.form
        else None,
    )


def _passcode_input(remediation: Remediation, credentials: RemediationField) -> Input:
    passcode = credentials.get_subfield("passcode")
    assert passcode is not None
    return Input(
        name=passcode_input_name(remediation),
        label=passcode.label or credentials.label,
        required=passcode.required if passcode.required is not None else credentials.required,
        secret=passcode.secret,
        type=passcode.type,
    )


def _authenticator_choice(field: RemediationField) -> Input:
    return Input(
        name=field.name,
        label=field.label,
        required=field.required,
        type=field.type,
        options=[
            InputOption(value=o.authenticator_type or o.value, label=o.label)
            for o in field.options or []
        ],
    )
