"""Canonical Pydantic models shared across all idxauth modules.

This is the single source of truth for data shapes in the project. Every other
module imports from here rather than defining its own models. The models fall
into three groups:

**Protocol state models** -- parsed from the server's interaction JSON by
:mod:`idxauth.parser` and never mutated afterwards:
    :class:`IdxMessage`, :class:`FieldOption`, :class:`RemediationField`,
    :class:`Remediation`, and :class:`IdxResponse`.

**Persistence and configuration models** -- serialised as JSON:
    :class:`ClientConfig` and :class:`TransactionMeta`.

**Caller-facing models** -- produced by the orchestrator:
    :class:`IdxStatus`, :class:`Input`, :class:`NextStep`, and
    :class:`AuthenticateResult`. These render to plain dicts through their
    ``to_dict()`` methods, using the camelCase keys callers expect
    (``nextStep``, ``canSkip``).
"""

from __future__ import annotations

import enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


# --- Status ---


class IdxStatus(str, enum.Enum):
    """Outcome of a single :meth:`~idxauth.orchestrator.IdxOrchestrator.authenticate` call.

    The values are opaque strings. Callers should compare against the enum
    members and never rely on ordinal positions.
    """

    SUCCESS = "SUCCESS"
    PENDING = "PENDING"
    TERMINAL = "TERMINAL"


class MessageClass(str, enum.Enum):
    """Severity class of a server message."""

    INFO = "INFO"
    ERROR = "ERROR"


# --- Protocol state ---


class IdxMessage(BaseModel):
    """A message attached to a response or to a single field.

    Messages are appended to the caller-facing output as received; they are
    never merged across steps.
    """

    model_config = ConfigDict(frozen=True)

    message_class: MessageClass = MessageClass.INFO
    i18n_key: Optional[str] = None
    i18n_params: Optional[list[Any]] = Field(
        default=None,
        description="Localisation parameters; None when the server sent none at all",
    )
    text: str = ""

    def to_dict(self) -> dict[str, Any]:
        i18n: dict[str, Any] = {"key": self.i18n_key}
        if self.i18n_params is not None:
            i18n["params"] = list(self.i18n_params)
        return {
            "class": self.message_class.value,
            "i18n": i18n,
            "message": self.text,
        }


class FieldOption(BaseModel):
    """One choice of a closed-choice field (authenticator, delivery method, ...)."""

    model_config = ConfigDict(frozen=True)

    value: Any = None
    label: Optional[str] = None
    authenticator_type: Optional[str] = Field(
        default=None,
        description="Authenticator family this option selects (phone, email, ...)",
    )


class RemediationField(BaseModel):
    """A single input slot of a remediation.

    Composite objects (e.g. ``credentials`` or a phone ``authenticator``)
    carry their sub-fields in :attr:`form`.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    label: Optional[str] = None
    required: Optional[bool] = None
    secret: Optional[bool] = None
    type: Optional[str] = None
    value: Any = None
    mutable: Optional[bool] = None
    visible: Optional[bool] = None
    options: Optional[list[FieldOption]] = None
    form: Optional[list[RemediationField]] = None
    messages: list[IdxMessage] = Field(default_factory=list)

    @property
    def is_required(self) -> bool:
        """Whether this field, or any of its sub-fields, must be supplied."""
        if self.required:
            return True
        return any(sub.is_required for sub in self.form or [])

    def get_subfield(self, name: str) -> Optional[RemediationField]:
        for sub in self.form or []:
            if sub.name == name:
                return sub
        return None


class Remediation(BaseModel):
    """One actionable step offered by the server.

    Immutable once received; a fresh :class:`IdxResponse` must be fetched to
    observe any server-side change.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    type: Optional[str] = Field(
        default=None, description="Authenticator family (password, phone, email, ...)"
    )
    fields: list[RemediationField] = Field(default_factory=list)
    can_skip: bool = False
    href: Optional[str] = None
    method: str = "POST"

    def get_field(self, name: str) -> Optional[RemediationField]:
        for field in self.fields:
            if field.name == name:
                return field
        return None


class IdxResponse(BaseModel):
    """The server's current protocol state.

    A response carrying an :attr:`interaction_code` has no outstanding
    remediations requiring input.
    """

    model_config = ConfigDict(frozen=True)

    state_handle: Optional[str] = None
    interaction_code: Optional[str] = None
    remediations: list[Remediation] = Field(default_factory=list)
    messages: list[IdxMessage] = Field(default_factory=list)
    raw: dict[str, Any] = Field(default_factory=dict, repr=False)

    @property
    def remediation_names(self) -> list[str]:
        return [r.name for r in self.remediations]

    def find(self, name: str) -> Optional[Remediation]:
        """Return the first remediation called *name*, if offered."""
        for remediation in self.remediations:
            if remediation.name == name:
                return remediation
        return None


# --- Persistence and configuration ---


class ClientConfig(BaseModel):
    """OAuth2/OIDC client settings used to begin and complete an interaction.

    Loaded by :func:`~idxauth.config.load_client_config`, which layers
    explicit overrides, ``IDXAUTH_*`` environment variables, and a JSON file.

    Example::

        ClientConfig(
            issuer="https://example.okta.com/oauth2/default",
            client_id="0oa1example",
            redirect_uri="https://app.example.com/login/callback",
        )
    """

    issuer: str = Field(description="Authorization server issuer URL")
    client_id: str
    client_secret: Optional[str] = Field(
        default=None, description="Only for confidential clients"
    )
    redirect_uri: str
    scopes: list[str] = Field(default_factory=lambda: ["openid", "profile", "email"])
    state: Optional[str] = Field(
        default=None, description="Fixed OAuth state; generated per flow when unset"
    )
    strict_remediations: bool = Field(
        default=False,
        description="Raise UnknownRemediationError instead of passing unknown steps through",
    )
    timeout: float = Field(default=30.0, description="HTTP timeout in seconds")
    max_retries: int = Field(
        default=2, description="Retries for idempotent calls on connection errors and 5xx"
    )


class TransactionMeta(BaseModel):
    """Per-flow metadata persisted between independent ``authenticate`` calls.

    Created when an interaction begins, read on every subsequent call of the
    same flow, and cleared on success or fatal failure. Owned by a
    :class:`~idxauth.transaction.TransactionStore`.
    """

    issuer: str
    client_id: str
    redirect_uri: str
    state: str
    code_verifier: str
    scopes: list[str] = Field(default_factory=list)
    interaction_handle: str


class Interaction(BaseModel):
    """Result of beginning a new interaction: the handle plus its metadata."""

    handle: str
    meta: TransactionMeta


# --- Caller-facing output ---


class InputOption(BaseModel):
    """A (value, label) pair offered for a closed-choice input."""

    value: Any = None
    label: Optional[str] = None


class InputForm(BaseModel):
    """Nested inputs of a composite input, rendered as ``{"value": [...]}``."""

    value: list[Input] = Field(default_factory=list)


class Input(BaseModel):
    """Description of one value the caller must supply for the next step."""

    name: str
    label: Optional[str] = None
    required: Optional[bool] = None
    secret: Optional[bool] = None
    type: Optional[str] = None
    value: Any = None
    options: Optional[list[InputOption]] = None
    form: Optional[InputForm] = None


class NextStep(BaseModel):
    """What the caller must supply to move past the pending remediation."""

    model_config = ConfigDict(populate_by_name=True)

    name: str
    type: Optional[str] = None
    can_skip: bool = Field(default=False, alias="canSkip")
    inputs: list[Input] = Field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class AuthenticateResult(BaseModel):
    """The record returned by every ``authenticate`` call.

    ``tokens`` is present only for :attr:`IdxStatus.SUCCESS`, ``next_step``
    only for :attr:`IdxStatus.PENDING`, and ``messages`` only when the call
    produced any. ``error`` is a reserved slot that no code path populates.
    """

    status: IdxStatus
    tokens: Optional[dict[str, Any]] = None
    next_step: Optional[NextStep] = None
    messages: Optional[list[IdxMessage]] = None
    error: Optional[Any] = None

    def to_dict(self) -> dict[str, Any]:
        """Render the caller-facing dict (``status``, ``tokens``, ``nextStep``, ``messages``)."""
        data: dict[str, Any] = {"status": self.status.value, "tokens": self.tokens}
        if self.next_step is not None:
            data["nextStep"] = self.next_step.to_dict()
        if self.messages:
            data["messages"] = [m.to_dict() for m in self.messages]
        return data


RemediationField.model_rebuild()
Input.model_rebuild()
InputForm.model_rebuild()
