"""HTTP implementation of the four orchestrator collaborators.

:class:`HttpIdxClient` wraps :class:`httpx.AsyncClient` and talks to an
authorization server that supports the interaction-code grant:

==========================  ===========================================
Collaborator call           Endpoint
==========================  ===========================================
``begin_interaction``       ``POST {issuer}/v1/interact`` (form)
``fetch_state``             ``POST {origin}/idp/idx/introspect`` (ion+json)
``advance_state``           ``POST {remediation.href}`` (ion+json)
``cancel``                  ``POST {origin}/idp/idx/cancel`` (ion+json)
``exchange_code``           ``POST {issuer}/v1/token`` (form)
==========================  ===========================================

Only introspection is retried (connection errors and 5xx, exponential
backoff). Proceed calls change server state and are never retried.
"""

from __future__ import annotations

import asyncio
import json
from typing import Any, Optional
from urllib.parse import urlsplit

import httpx

from idxauth.client.pkce import generate_pkce_pair, generate_state
from idxauth.collaborators import Interactor, Introspector, StateAdvancer, TokenExchanger
from idxauth.exceptions import (
    IdxRejection,
    InvalidHandleError,
    TokenExchangeError,
    TransportError,
)
from idxauth.models import ClientConfig, IdxResponse, Interaction, Remediation, TransactionMeta
from idxauth.output import get_output, redact_payload
from idxauth.parser import parse_idx_response, parse_messages

ION_JSON = "application/ion+json; okta-version=1.0.0"

_ION_HEADERS = {"Accept": ION_JSON, "Content-Type": ION_JSON}
_FORM_HEADERS = {"Accept": "application/json"}


class HttpIdxClient(Interactor, Introspector, StateAdvancer, TokenExchanger):
    """Interaction-code protocol client over :class:`httpx.AsyncClient`.

    Args:
        config: Client settings; ``issuer``, ``timeout`` and ``max_retries``
            are used here.
        http_client: An existing :class:`httpx.AsyncClient` to send requests
            through (e.g. one built on :class:`httpx.MockTransport` in
            tests). It is not closed by this object. When omitted, a client
            is created lazily and closed by :meth:`aclose`.

    Example::

        async with HttpIdxClient(config) as client:
            interaction = await client.begin_interaction(config)
            state = await client.fetch_state(interaction.handle)
    """

    def __init__(
        self,
        config: ClientConfig,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self._config = config
        self._client = http_client
        self._owns_client = http_client is None

    # ------------------------------------------------------------------ #
    # Async context manager
    # ------------------------------------------------------------------ #

    async def __aenter__(self) -> HttpIdxClient:
        self._http()
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None

    # ------------------------------------------------------------------ #
    # Collaborator calls
    # ------------------------------------------------------------------ #

    async def begin_interaction(self, config: ClientConfig) -> Interaction:
        """Start an interaction with a fresh PKCE pair and OAuth state.

        Raises:
            TransportError: On network failure, an error status, or a
                response without ``interaction_handle``.
        """
        code_verifier, code_challenge = generate_pkce_pair()
        state = config.state or generate_state()
        issuer = config.issuer.rstrip("/")

        data: dict[str, str] = {
            "client_id": config.client_id,
            "scope": " ".join(config.scopes),
            "redirect_uri": config.redirect_uri,
            "code_challenge": code_challenge,
            "code_challenge_method": "S256",
            "state": state,
        }
        if config.client_secret:
            data["client_secret"] = config.client_secret

        url = f"{issuer}/v1/interact"
        get_output().debug(f"POST {url}")
        response = await self._send("POST", url, data=data, headers=_FORM_HEADERS)
        body = _decode_json(response)
        if response.status_code >= 400:
            raise TransportError(
                f"Interaction request failed: {_error_text(response, body)}",
                status_code=response.status_code,
            )

        handle = body.get("interaction_handle") if isinstance(body, dict) else None
        if not handle:
            raise TransportError("Interaction response missing 'interaction_handle'")

        meta = TransactionMeta(
            issuer=config.issuer,
            client_id=config.client_id,
            redirect_uri=config.redirect_uri,
            state=state,
            code_verifier=code_verifier,
            scopes=list(config.scopes),
            interaction_handle=handle,
        )
        return Interaction(handle=handle, meta=meta)

    async def fetch_state(self, handle: str) -> IdxResponse:
        """Introspect the interaction identified by *handle*.

        Raises:
            InvalidHandleError: On a 400/401 reply naming an expired or
                unknown handle.
            TransportError: On any other 4xx, on network failure or 5xx
                after all retries, or a body that is not a JSON object.
        """
        url = f"{self._origin()}/idp/idx/introspect"
        get_output().debug(f"POST {url}")
        response = await self._send_with_retry(
            "POST", url, content=json.dumps({"interactionHandle": handle}), headers=_ION_HEADERS
        )
        body = _decode_json(response)
        if 400 <= response.status_code < 500:
            if response.status_code in (400, 401) and _names_invalid_handle(body):
                raise InvalidHandleError(
                    f"Interaction handle rejected: {_error_text(response, body)}",
                    status_code=response.status_code,
                )
            raise TransportError(
                f"Introspection failed: {_error_text(response, body)}",
                status_code=response.status_code,
            )
        _raise_for_server_error(response, body)
        return parse_idx_response(body)

    async def advance_state(
        self,
        state_handle: str,
        remediation: Remediation,
        payload: dict[str, Any],
    ) -> IdxResponse:
        """Submit *payload* to the remediation's ``href``. Never retried.

        Raises:
            IdxRejection: On a 4xx reply carrying a JSON error body.
            TransportError: On network failure, 5xx, a missing ``href``, or
                a non-JSON body.
        """
        if not remediation.href:
            raise TransportError(f"Remediation '{remediation.name}' has no href to submit to")

        body_out = {"stateHandle": state_handle, **payload}
        get_output().debug(f"POST {remediation.href} {redact_payload(body_out)}")
        response = await self._send(
            remediation.method or "POST",
            remediation.href,
            content=json.dumps(body_out),
            headers=_ION_HEADERS,
        )
        body = _decode_json(response)
        if 400 <= response.status_code < 500:
            if not isinstance(body, dict):
                raise TransportError(
                    f"HTTP {response.status_code} without a JSON error body",
                    status_code=response.status_code,
                )
            raise IdxRejection(body, status_code=response.status_code)
        _raise_for_server_error(response, body)
        return parse_idx_response(body)

    async def cancel(self, state_handle: str) -> None:
        """Cancel the flow on the server.

        Raises:
            TransportError: On network failure or an error status.
        """
        url = f"{self._origin()}/idp/idx/cancel"
        get_output().debug(f"POST {url}")
        response = await self._send(
            "POST", url, content=json.dumps({"stateHandle": state_handle}), headers=_ION_HEADERS
        )
        if response.status_code >= 400:
            raise TransportError(
                f"Cancel failed with HTTP {response.status_code}",
                status_code=response.status_code,
            )

    async def exchange_code(self, interaction_code: str, meta: TransactionMeta) -> dict[str, Any]:
        """Exchange the interaction code for tokens.

        Returns:
            The parsed JSON token response containing at least
            ``access_token``.

        Raises:
            TokenExchangeError: On network or HTTP errors, or if
                ``access_token`` is missing from the response.
        """
        data: dict[str, str] = {
            "grant_type": "interaction_code",
            "interaction_code": interaction_code,
            "code_verifier": meta.code_verifier,
            "client_id": meta.client_id,
            "redirect_uri": meta.redirect_uri,
        }
        if self._config.client_secret:
            data["client_secret"] = self._config.client_secret

        url = f"{meta.issuer.rstrip('/')}/v1/token"
        get_output().debug(f"POST {url} {redact_payload(data)}")
        try:
            response = await self._http().post(url, data=data, headers=_FORM_HEADERS)
            response.raise_for_status()
            token_data = response.json()
        except httpx.HTTPStatusError as exc:
            raise TokenExchangeError(
                f"Token exchange failed with status {exc.response.status_code}: "
                f"{exc.response.text}"
            ) from exc
        except httpx.HTTPError as exc:
            raise TokenExchangeError(f"Token exchange failed: {exc}") from exc
        except ValueError as exc:
            raise TokenExchangeError(f"Token response is not JSON: {exc}") from exc

        if not isinstance(token_data, dict) or "access_token" not in token_data:
            raise TokenExchangeError("Token response missing 'access_token' field")
        return token_data

    # ------------------------------------------------------------------ #
    # Private helpers
    # ------------------------------------------------------------------ #

    def _http(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self._config.timeout,
                follow_redirects=True,
            )
        return self._client

    def _origin(self) -> str:
        parts = urlsplit(self._config.issuer)
        if not parts.scheme or not parts.netloc:
            raise TransportError(f"Issuer is not an absolute URL: {self._config.issuer!r}")
        return f"{parts.scheme}://{parts.netloc}"

    async def _send(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        try:
            return await self._http().request(method, url, **kwargs)
        except httpx.HTTPError as exc:
            raise TransportError(f"Request to {url} failed: {exc}") from exc

    async def _send_with_retry(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        """Send with exponential-backoff retry on 5xx and connection errors.

        The delay doubles each attempt: 1 s, 2 s, 4 s, ...
        """
        max_retries = self._config.max_retries
        output = get_output()

        for attempt in range(max_retries + 1):
            try:
                response = await self._http().request(method, url, **kwargs)
            except (httpx.ConnectError, httpx.TimeoutException, httpx.NetworkError) as exc:
                if attempt < max_retries:
                    delay = 2 ** attempt
                    output.debug(
                        f"Connection error: {exc}, retrying in {delay}s "
                        f"(attempt {attempt + 1}/{max_retries})"
                    )
                    await asyncio.sleep(delay)
                    continue
                raise TransportError(
                    f"Connection failed after {max_retries + 1} attempts: {exc}"
                ) from exc
            except httpx.HTTPError as exc:
                raise TransportError(f"Request to {url} failed: {exc}") from exc

            if response.status_code >= 500 and attempt < max_retries:
                delay = 2 ** attempt
                output.debug(
                    f"Server error {response.status_code}, retrying in {delay}s "
                    f"(attempt {attempt + 1}/{max_retries})"
                )
                await asyncio.sleep(delay)
                continue
            return response

        raise TransportError("Request failed after all retries")  # pragma: no cover


def _decode_json(response: httpx.Response) -> Any:
    """Decode a JSON body, tolerating empty error bodies."""
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError as exc:
        if response.status_code >= 400:
            return None
        raise TransportError(
            f"Malformed JSON in HTTP {response.status_code} response: {exc}",
            status_code=response.status_code,
        ) from exc


def _raise_for_server_error(response: httpx.Response, body: Any) -> None:
    if response.status_code >= 500:
        raise TransportError(
            f"Server error: {_error_text(response, body)}",
            status_code=response.status_code,
        )


def _error_text(response: httpx.Response, body: Any) -> str:
    prefix = f"HTTP {response.status_code}"
    if isinstance(body, dict):
        messages = parse_messages(body.get("messages"))
        if messages:
            return f"{prefix}: {'; '.join(m.text for m in messages)}"
        detail = body.get("error_description") or body.get("error") or ""
        if detail:
            return f"{prefix}: {detail}"
    return prefix


_HANDLE_ERROR_HINTS = ("handle", "expired", "idx.session.expired")


def _names_invalid_handle(body: Any) -> bool:
    """True when an error body says the interaction or state handle is no longer usable."""
    if not isinstance(body, dict):
        return False
    texts = [str(body.get(key) or "") for key in ("error", "error_description", "errorSummary")]
    for message in parse_messages(body.get("messages")):
        texts.append(message.text)
        texts.append(message.i18n_key or "")
    return any(hint in text.lower() for text in texts for hint in _HANDLE_ERROR_HINTS)
