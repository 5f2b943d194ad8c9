"""Proceeder -- submit a resolved remediation and capture protocol rejections."""

from __future__ import annotations

from idxauth.classifier import ProceedOutcome
from idxauth.collaborators import StateAdvancer
from idxauth.exceptions import IdxRejection
from idxauth.models import IdxResponse
from idxauth.output import get_output, redact_payload
from idxauth.resolver import Resolution


class Proceeder:
    """Wraps a :class:`~idxauth.collaborators.StateAdvancer`.

    A rejection carrying a protocol error body becomes a rejected
    :class:`~idxauth.classifier.ProceedOutcome`; transport failures are not
    caught and reach the caller unchanged.
    """

    def __init__(self, advancer: StateAdvancer) -> None:
        self._advancer = advancer

    async def proceed(self, current: IdxResponse, resolution: Resolution) -> ProceedOutcome:
        get_output().debug(
            f"Proceeding with '{resolution.name}': {redact_payload(resolution.payload)}"
        )
        try:
            response = await self._advancer.advance_state(
                current.state_handle or "",
                resolution.remediation,
                resolution.payload,
            )
        except IdxRejection as exc:
            get_output().debug(f"'{resolution.name}' rejected (status {exc.status_code})")
            return ProceedOutcome(rejected=exc.raw)
        return ProceedOutcome(response=response)
