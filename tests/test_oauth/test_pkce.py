"""Tests for PKCE verifier and challenge generation."""

from __future__ import annotations

import base64
import hashlib

import pytest

from pkce_login.oauth.pkce import (
    CODE_CHALLENGE_METHOD,
    MAX_VERIFIER_LENGTH,
    MIN_VERIFIER_LENGTH,
    derive_code_challenge,
    generate_pkce_pair,
    is_valid_verifier,
)

_UNRESERVED = set("ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789-._~")


class TestGeneratePkcePair:
    def test_verifier_length_within_bounds(self) -> None:
        for _ in range(200):
            verifier, _challenge = generate_pkce_pair()
            assert MIN_VERIFIER_LENGTH <= len(verifier) <= MAX_VERIFIER_LENGTH

    def test_verifier_uses_unreserved_characters_only(self) -> None:
        for _ in range(200):
            verifier, _challenge = generate_pkce_pair()
            assert set(verifier) <= _UNRESERVED

    def test_challenge_is_sha256_of_verifier(self) -> None:
        for _ in range(50):
            verifier, challenge = generate_pkce_pair()
            expected = (
                base64.urlsafe_b64encode(hashlib.sha256(verifier.encode("ascii")).digest())
                .rstrip(b"=")
                .decode("ascii")
            )
            assert challenge == expected

    def test_challenge_has_no_padding(self) -> None:
        _verifier, challenge = generate_pkce_pair()
        assert "=" not in challenge
        assert len(challenge) == 43

    def test_successive_verifiers_differ(self) -> None:
        verifiers = {generate_pkce_pair()[0] for _ in range(100)}
        assert len(verifiers) == 100

    def test_method_is_s256(self) -> None:
        assert CODE_CHALLENGE_METHOD == "S256"


class TestDeriveCodeChallenge:
    def test_rfc7636_appendix_b_vector(self) -> None:
        verifier = "dBjftJeZ4CVP-mB92K27uhbUJU1p1r_wW1gFWFOEjXk"
        assert derive_code_challenge(verifier) == "E9Melhoa2OwvFrEMTJguCHaoeK1t8URWbuGJSstw-cM"

    def test_deterministic(self) -> None:
        assert derive_code_challenge("abc") == derive_code_challenge("abc")


class TestIsValidVerifier:
    def test_generated_verifier_is_valid(self) -> None:
        verifier, _ = generate_pkce_pair()
        assert is_valid_verifier(verifier)

    @pytest.mark.parametrize(
        "verifier",
        [
            "a" * 42,
            "a" * 129,
            "a" * 42 + "!",
            "a" * 50 + " ",
            "",
        ],
    )
    def test_invalid_verifiers(self, verifier: str) -> None:
        assert not is_valid_verifier(verifier)

    def test_boundaries_are_valid(self) -> None:
        assert is_valid_verifier("a" * 43)
        assert is_valid_verifier("~" * 128)
