"""Tests for PKCE and state generation."""

from __future__ import annotations

import re

from idxauth.client import code_challenge_for, generate_pkce_pair, generate_state


def test_pair_is_consistent() -> None:
    verifier, challenge = generate_pkce_pair()
    assert challenge == code_challenge_for(verifier)


def test_verifier_length_and_alphabet() -> None:
    verifier, _ = generate_pkce_pair()
    assert 43 <= len(verifier) <= 128
    assert re.fullmatch(r"[A-Za-z0-9_\-]+", verifier)


def test_challenge_known_vector() -> None:
    # RFC 7636 appendix B
    verifier = "dBjftJeZ4CVP-mB92K27uhbUJU1p1r7wlAgD1GJmB0k"
    assert code_challenge_for(verifier) == "E9Melhoa2OwvFrEMTJguCHaoeK1t8URWbuGjSstw-cM"


def test_unpadded() -> None:
    _, challenge = generate_pkce_pair()
    assert "=" not in challenge


def test_state_is_random() -> None:
    assert generate_state() != generate_state()
