"""PKCE and OAuth ``state`` helpers used when an interaction begins."""

from __future__ import annotations

import base64
import hashlib
import secrets


def generate_pkce_pair() -> tuple[str, str]:
    """Generate a PKCE code_verifier and code_challenge (S256).

    Returns:
        A tuple of ``(code_verifier, code_challenge)``.
    """
    code_verifier = secrets.token_urlsafe(64)[:128]
    return code_verifier, code_challenge_for(code_verifier)


def code_challenge_for(code_verifier: str) -> str:
    """Return the S256 challenge for *code_verifier* (unpadded base64url)."""
    digest = hashlib.sha256(code_verifier.encode("ascii")).digest()
    return base64.urlsafe_b64encode(digest).rstrip(b"=").decode("ascii")


def generate_state() -> str:
    return secrets.token_urlsafe(32)
