"""Parse raw interaction JSON into :mod:`idxauth.models` objects.

The server wraps collections as ``{"type": "array", "value": [...]}`` and
objects as ``{"type": "object", "value": {...}}``; remediations and options
point at authenticator objects elsewhere in the document through
``relatesTo`` references such as ``$.currentAuthenticatorEnrollment`` or
``$.authenticators.value[0]``. This module hides all of that and produces
plain :class:`~idxauth.models.IdxResponse` trees.

It also owns message extraction, which the classifier relies on: field
level messages (e.g. a passcode's "Invalid code") take precedence over the
response's top-level list, and only one of the two is ever surfaced.
"""

from __future__ import annotations

import re
from typing import Any, Iterable, Optional

from idxauth.exceptions import TransportError
from idxauth.models import (
    FieldOption,
    IdxMessage,
    IdxResponse,
    MessageClass,
    Remediation,
    RemediationField,
)

_REF_TOKEN = re.compile(r"([^.\[\]]+)|\[(\d+)\]")


def parse_idx_response(raw: Any) -> IdxResponse:
    """Build an :class:`IdxResponse` from a decoded JSON body.

    Args:
        raw: The decoded JSON document returned by introspect/proceed, or the
            body of a rejected proceed call.

    Returns:
        The parsed response. The original document is kept on ``raw``.

    Raises:
        TransportError: If *raw* is not a JSON object.
    """
    if not isinstance(raw, dict):
        raise TransportError(f"Malformed interaction response: expected object, got {type(raw).__name__}")

    items = [item for item in _collection(raw.get("remediation")) if isinstance(item, dict)]
    skip_offered = any(item.get("name") == "skip" for item in items)

    return IdxResponse(
        state_handle=raw.get("stateHandle"),
        interaction_code=_interaction_code(raw),
        remediations=[_parse_remediation(raw, item, skip_offered) for item in items],
        messages=parse_messages(raw.get("messages")),
        raw=raw,
    )


def parse_messages(raw: Any) -> list[IdxMessage]:
    """Parse a ``messages`` collection (wrapped or bare list)."""
    return [_parse_message(m) for m in _collection(raw) if isinstance(m, dict)]


def collect_field_messages(remediations: Iterable[Remediation]) -> list[IdxMessage]:
    """Return every message attached to a field, depth first, in document order."""
    found: list[IdxMessage] = []

    def walk(fields: Iterable[RemediationField]) -> None:
        for field in fields:
            found.extend(field.messages)
            walk(field.form or [])

    for remediation in remediations:
        walk(remediation.fields)
    return found


def extract_messages(response: IdxResponse) -> list[IdxMessage]:
    """Return the single message list to surface for *response*.

    Nested field messages win over top-level messages when both exist.
    """
    nested = collect_field_messages(response.remediations)
    if nested:
        return nested
    return list(response.messages)


def resolve_reference(root: dict[str, Any], ref: str) -> Any:
    """Resolve a ``$.a.b[0]`` style reference against *root*.

    Returns ``None`` when any segment is missing. Object wrappers of the form
    ``{"type": "object", "value": {...}}`` are unwrapped at the end.
    """
    if not ref.startswith("$"):
        return None
    node: Any = root
    for name, index in _REF_TOKEN.findall(ref[1:]):
        if name:
            node = node.get(name) if isinstance(node, dict) else None
        else:
            idx = int(index)
            node = node[idx] if isinstance(node, list) and idx < len(node) else None
        if node is None:
            return None
    if isinstance(node, dict) and isinstance(node.get("value"), dict):
        return node["value"]
    return node


# --- Private helpers ---


def _collection(raw: Any) -> list[Any]:
    if raw is None:
        return []
    if isinstance(raw, list):
        return raw
    if isinstance(raw, dict) and isinstance(raw.get("value"), list):
        return raw["value"]
    return []


def _interaction_code(raw: dict[str, Any]) -> Optional[str]:
    if raw.get("interactionCode"):
        return raw["interactionCode"]
    success = raw.get("successWithInteractionCode")
    if not isinstance(success, dict):
        return None
    for item in _collection(success):
        if isinstance(item, dict) and item.get("name") == "interaction_code":
            return item.get("value")
    return None


def _related_object(root: dict[str, Any], relates_to: Any) -> Optional[dict[str, Any]]:
    refs = relates_to if isinstance(relates_to, list) else [relates_to]
    for ref in refs:
        if isinstance(ref, str):
            target = resolve_reference(root, ref)
            if isinstance(target, dict):
                return target
    return None


def _parse_remediation(
    root: dict[str, Any], item: dict[str, Any], skip_offered: bool
) -> Remediation:
    name = item.get("name", "")
    kind_type = item.get("type") if isinstance(item.get("type"), str) else None
    if kind_type is None:
        related = _related_object(root, item.get("relatesTo"))
        if related is not None:
            kind_type = related.get("type")

    can_skip = item.get("canSkip")
    if can_skip is None:
        can_skip = skip_offered and name != "skip"

    return Remediation(
        name=name,
        type=kind_type,
        fields=[_parse_field(root, f) for f in _collection(item.get("value")) if isinstance(f, dict)],
        can_skip=bool(can_skip),
        href=item.get("href"),
        method=item.get("method", "POST"),
    )


def _parse_field(root: dict[str, Any], raw: dict[str, Any]) -> RemediationField:
    value = raw.get("value")
    form_items: list[Any] = []
    if isinstance(raw.get("form"), dict):
        form_items = _collection(raw["form"])
    elif isinstance(value, dict) and isinstance(value.get("form"), dict):
        # object-typed field whose sub-fields live under value.form
        form_items = _collection(value["form"])
        value = None

    options = raw.get("options")
    return RemediationField(
        name=raw.get("name", ""),
        label=raw.get("label"),
        required=raw.get("required"),
        secret=raw.get("secret"),
        type=raw.get("type"),
        value=value,
        mutable=raw.get("mutable"),
        visible=raw.get("visible"),
        options=[_parse_option(root, o) for o in options if isinstance(o, dict)]
        if isinstance(options, list)
        else None,
        form=[_parse_field(root, f) for f in form_items if isinstance(f, dict)] or None,
        messages=parse_messages(raw.get("messages")),
    )


def _parse_option(root: dict[str, Any], raw: dict[str, Any]) -> FieldOption:
    value = raw.get("value")
    related = _related_object(root, raw.get("relatesTo"))
    authenticator_type = related.get("type") if related else None

    if isinstance(value, dict) and isinstance(value.get("form"), dict):
        # authenticator choice: the submitted value is the nested "id"
        sub_fields = [f for f in _collection(value["form"]) if isinstance(f, dict)]
        value = next((f.get("value") for f in sub_fields if f.get("name") == "id"), None)
        if value is None and related:
            value = related.get("id")

    return FieldOption(value=value, label=raw.get("label"), authenticator_type=authenticator_type)


def _parse_message(raw: dict[str, Any]) -> IdxMessage:
    i18n = raw.get("i18n") if isinstance(raw.get("i18n"), dict) else {}
    params = i18n.get("params")
    return IdxMessage(
        message_class=MessageClass.ERROR if raw.get("class") == "ERROR" else MessageClass.INFO,
        i18n_key=i18n.get("key"),
        i18n_params=list(params) if isinstance(params, list) else None,
        text=raw.get("message", ""),
    )
