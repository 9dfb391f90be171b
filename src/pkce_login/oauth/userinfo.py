"""Retrieval of the authenticated user's profile from the userinfo endpoint."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from pkce_login.exceptions import ProfileFetchError
from pkce_login.models import ProfileResult

logger = logging.getLogger(__name__)


class ProfileFetcher:
    """Fetches ``{issuer}/userinfo`` with a bearer access token.

    Args:
        client: The HTTP client to send the request with.
    """

    def __init__(self, client: httpx.Client) -> None:
        self._client = client

    def fetch(self, issuer: str, access_token: str) -> ProfileResult:
        """Send one authenticated GET to the userinfo endpoint.

        Returns:
            A :class:`~pkce_login.models.ProfileResult` holding the parsed
            profile on success, or the provider's raw body otherwise.

        Raises:
            ProfileFetchError: On a transport failure or a success response
                that is not a JSON object.
        """
        url = f"{issuer.rstrip('/')}/userinfo"
        logger.info("Fetching user info from: %s", url)

        try:
            response = self._client.get(
                url,
                headers={
                    "Authorization": f"Bearer {access_token}",
                    "Accept": "application/json",
                },
            )
        except httpx.HTTPError as exc:
            raise ProfileFetchError(f"User info request failed: {exc}") from exc

        logger.info("HTTP response code: %d", response.status_code)

        if not response.is_success:
            return ProfileResult(status_code=response.status_code, raw_body=response.text)

        try:
            profile: Any = response.json()
        except ValueError as exc:
            raise ProfileFetchError(
                f"Userinfo endpoint returned a non-JSON body: {response.text[:200]}"
            ) from exc
        if not isinstance(profile, dict):
            raise ProfileFetchError("Userinfo response is not a JSON object")

        return ProfileResult(
            status_code=response.status_code,
            profile=profile,
            raw_body=response.text,
        )
