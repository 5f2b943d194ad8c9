"""HTTP collaborators for idxauth.

:class:`HttpIdxClient` implements the interactor, introspector, state
advancer and token exchanger interfaces over :class:`httpx.AsyncClient`.
The PKCE helpers it uses are exported for callers building their own
interactor.

Example::

    from idxauth.client import HttpIdxClient

    async with HttpIdxClient(config) as client:
        interaction = await client.begin_interaction(config)
"""

from idxauth.client.async_client import ION_JSON, HttpIdxClient
from idxauth.client.pkce import code_challenge_for, generate_pkce_pair, generate_state

__all__ = [
    "HttpIdxClient",
    "ION_JSON",
    "code_challenge_for",
    "generate_pkce_pair",
    "generate_state",
]
