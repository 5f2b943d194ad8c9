"""Error classifier -- decide whether a proceed outcome can be recovered from.

Given the outcome of one proceed call (a fresh
:class:`~idxauth.models.IdxResponse` or a rejected raw error body), the
:class:`ErrorClassifier` applies three rules in order:

1. **Soft failure.** The call succeeded but the response carries top-level
   messages and offers the same remediations as before (e.g. unknown
   username). PENDING; the unchanged current remediation is re-presented.
2. **Recoverable rejection.** The rejected body embeds a remediation list
   (e.g. invalid passcode, invalid phone number). PENDING; the step is
   rebuilt from the error body's copy of the current remediation (keeping
   the submitted step's authenticator type when the copy lacks one), or
   from the prior known step when the body does not carry it.
3. **Fatal rejection.** The rejected body has no remediation (bad
   password, unassigned or locked account). TERMINAL.

Anything else is an advance to a genuinely new state.

Messages from a rejected body are taken from nested field messages when
present and from the top-level list otherwise; never both.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional

from idxauth.models import IdxMessage, IdxResponse, IdxStatus, Remediation
from idxauth.parser import extract_messages, parse_idx_response


@dataclass(frozen=True)
class ProceedOutcome:
    """Result of one proceed call: exactly one of ``response`` or ``rejected`` is set."""

    response: Optional[IdxResponse] = None
    rejected: Optional[dict[str, Any]] = None

    @property
    def is_rejected(self) -> bool:
        return self.rejected is not None


@dataclass(frozen=True)
class Classification:
    """How the orchestrator should continue after a proceed call.

    Attributes:
        status: PENDING or TERMINAL.
        messages: The single message list to surface.
        next_step_source: Remediation to present when the flow pauses on
            the same (or a rebuilt) step. ``None`` when advancing or terminal.
        response: The new state to continue from when the call advanced.
    """

    status: IdxStatus
    messages: list[IdxMessage] = field(default_factory=list)
    next_step_source: Optional[Remediation] = None
    response: Optional[IdxResponse] = None

    @property
    def advanced(self) -> bool:
        """True when the flow moved to a new state and the loop may continue."""
        return self.status is IdxStatus.PENDING and self.response is not None


class ErrorClassifier:
    """Classify proceed outcomes into PENDING (same or new step) or TERMINAL."""

    def classify(
        self,
        outcome: ProceedOutcome,
        current: IdxResponse,
        remediation: Remediation,
    ) -> Classification:
        """Classify *outcome* of submitting *remediation* against *current*.

        Args:
            outcome: What the proceed call produced.
            current: The state the submission was made against.
            remediation: The remediation that was submitted.

        Returns:
            A :class:`Classification` describing how to continue.
        """
        if outcome.rejected is not None:
            return self._classify_rejection(outcome.rejected, remediation)

        response = outcome.response
        assert response is not None, "ProceedOutcome carries neither a response nor a rejection"

        if (
            response.interaction_code is None
            and response.messages
            and response.remediation_names == current.remediation_names
        ):
            return Classification(
                status=IdxStatus.PENDING,
                messages=list(response.messages),
                next_step_source=remediation,
            )

        return Classification(
            status=IdxStatus.PENDING,
            messages=list(response.messages),
            response=response,
        )

    @staticmethod
    def _classify_rejection(
        raw: dict[str, Any], remediation: Remediation
    ) -> Classification:
        error_state = parse_idx_response(raw)

        if not error_state.remediations:
            return Classification(
                status=IdxStatus.TERMINAL,
                messages=list(error_state.messages),
            )

        source = error_state.find(remediation.name) or remediation
        if source.type is None and remediation.type is not None:
            # error bodies may drop the relatesTo target
            source = source.model_copy(update={"type": remediation.type})
        return Classification(
            status=IdxStatus.PENDING,
            messages=extract_messages(error_state),
            next_step_source=source,
        )
