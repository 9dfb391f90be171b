"""Authorization code exchange against the provider's token endpoint."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from pkce_login.exceptions import TokenExchangeError
from pkce_login.models import TokenResult

logger = logging.getLogger(__name__)


class TokenExchanger:
    """Trades an authorization code and its PKCE verifier for an access token.

    Exactly one request is made per :meth:`exchange` call; nothing is
    retried.

    Args:
        client: The HTTP client to send the request with. The caller owns
            it and is responsible for closing it.
    """

    def __init__(self, client: httpx.Client) -> None:
        self._client = client

    def exchange(
        self,
        issuer: str,
        client_id: str,
        code_verifier: str,
        authorization_code: str,
        redirect_uri: str,
    ) -> TokenResult:
        """POST the code to ``{issuer}/token`` and return the outcome.

        Args:
            issuer: Base URL of the provider.
            client_id: OAuth client id.
            code_verifier: The PKCE verifier whose challenge was sent in the
                authorization request.
            authorization_code: The code received on the callback.
            redirect_uri: The redirect URI used in the authorization request.

        Returns:
            A :class:`~pkce_login.models.TokenResult`. On a non-success
            status it carries the provider's body verbatim in
            ``error_body`` so the exact OAuth error reaches the user.

        Raises:
            TokenExchangeError: On a transport failure, or when a success
                response is not a JSON object with an ``access_token``.
        """
        url = f"{issuer.rstrip('/')}/token"
        logger.info("Exchanging authz code for access token at: %s", url)

        data: dict[str, str] = {
            "grant_type": "authorization_code",
            "client_id": client_id,
            "code_verifier": code_verifier,
            "code": authorization_code,
            "redirect_uri": redirect_uri,
        }

        try:
            response = self._client.post(
                url,
                data=data,
                headers={
                    "Content-Type": "application/x-www-form-urlencoded",
                    "Accept": "application/json",
                },
            )
        except httpx.HTTPError as exc:
            raise TokenExchangeError(f"Token exchange failed: {exc}") from exc

        logger.info("HTTP response code: %d", response.status_code)

        if not response.is_success:
            return TokenResult(status_code=response.status_code, error_body=response.text)

        try:
            token_data: Any = response.json()
        except ValueError as exc:
            raise TokenExchangeError(
                f"Token endpoint returned a non-JSON body: {response.text[:200]}"
            ) from exc

        if not isinstance(token_data, dict):
            raise TokenExchangeError("Token response is not a JSON object")

        access_token = token_data.get("access_token")
        if not isinstance(access_token, str) or not access_token:
            raise TokenExchangeError("Token response missing 'access_token' field")

        return TokenResult(
            status_code=response.status_code,
            access_token=access_token,
            payload=token_data,
        )
