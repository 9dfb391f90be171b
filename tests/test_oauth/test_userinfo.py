"""Tests for the userinfo request."""

from __future__ import annotations

import json

import httpx
import pytest

from pkce_login.exceptions import ProfileFetchError
from pkce_login.oauth.userinfo import ProfileFetcher

ISSUER = "https://idp.example/oauth2"


def _fetch(handler, access_token: str = "abc"):
    with httpx.Client(transport=httpx.MockTransport(handler)) as client:
        return ProfileFetcher(client).fetch(ISSUER, access_token)


class TestProfileFetcher:
    def test_sends_bearer_token_to_userinfo(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"sub": "123"})

        _fetch(handler, access_token="tok-1")

        assert len(seen) == 1
        assert seen[0].method == "GET"
        assert str(seen[0].url) == f"{ISSUER}/userinfo"
        assert seen[0].headers["authorization"] == "Bearer tok-1"

    def test_success_pretty_prints_profile(self) -> None:
        profile = {"sub": "123", "email": "a@b.c", "name": "Zoë"}
        result = _fetch(lambda request: httpx.Response(200, json=profile))

        assert result.ok
        assert result.profile == profile
        assert result.display == json.dumps(profile, indent=2, ensure_ascii=False)
        assert "Zoë" in result.display

    def test_error_status_returns_raw_body(self) -> None:
        body = '{"error":"invalid_token"}'
        result = _fetch(lambda request: httpx.Response(401, content=body.encode()))

        assert not result.ok
        assert result.status_code == 401
        assert result.profile is None
        assert result.display == body

    def test_non_json_success_raises(self) -> None:
        with pytest.raises(ProfileFetchError, match="non-JSON"):
            _fetch(lambda request: httpx.Response(200, content=b"not json"))

    def test_non_object_success_raises(self) -> None:
        with pytest.raises(ProfileFetchError):
            _fetch(lambda request: httpx.Response(200, json=[1, 2]))

    def test_transport_error_raises(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("timed out", request=request)

        with pytest.raises(ProfileFetchError, match="User info request failed"):
            _fetch(handler)
