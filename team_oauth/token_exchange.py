"""
OAuth token exchange against the TEAM identity provider
"""
import datetime
import logging
from typing import Dict, Optional

import httpx

from settings import LOCALHOST_REDIRECT, TOKEN_REQUEST_TIMEOUT

from .constants import (
    DEFAULT_TOKEN_TYPE,
    GRANT_AUTHORIZATION_CODE,
    GRANT_DEVICE_CODE,
    GRANT_REFRESH_TOKEN,
    TOKEN_PATH,
)
from .exceptions import TokenExchangeError, TokenRequestError
from .models import AuthToken, RemoteConfig, utcnow

logger = logging.getLogger(__name__)


def token_url(remote: RemoteConfig) -> str:
    """Token endpoint of the remote's OAuth domain"""
    return f"https://{remote.oauth_domain}{TOKEN_PATH}"


async def request_token(
    remote: RemoteConfig,
    data: Dict[str, str],
    *,
    client: Optional[httpx.AsyncClient] = None,
    previous_refresh_token: str = "",
) -> AuthToken:
    """
    POST a grant to the token endpoint and normalize the response.

    The expiry is computed from the instant captured before the request is
    sent, so a slow response never overstates how long the token is valid.

    Args:
        remote: Remote server config
        data: Form fields of the grant
        client: Optional shared HTTP client
        previous_refresh_token: Kept when the response carries no refresh token

    Returns:
        AuthToken with an absolute expiry

    Raises:
        TokenRequestError: Request could not be sent or timed out
        TokenExchangeError: Non-200 status or an unparseable body
    """
    url = token_url(remote)
    grant_type = data.get("grant_type")
    logger.debug(f"Requesting token from {url} (grant_type={grant_type})")

    now = utcnow()

    try:
        if client is None:
            async with httpx.AsyncClient(timeout=TOKEN_REQUEST_TIMEOUT) as own_client:
                response = await _post(own_client, url, data)
        else:
            response = await _post(client, url, data)
    except httpx.RequestError as e:
        raise TokenRequestError(f"failed to send token request: {e!r}") from e

    if response.status_code != 200:
        logger.debug(f"Token endpoint returned {response.status_code}")
        raise TokenExchangeError(response.status_code, response.text)

    try:
        payload = response.json()
    except ValueError as e:
        raise TokenExchangeError(
            response.status_code, response.text, "failed to unmarshal token body"
        ) from e

    if not isinstance(payload, dict):
        raise TokenExchangeError(response.status_code, response.text, "failed to unmarshal token body")

    try:
        expires_in = int(payload.get("expires_in") or 0)
    except (TypeError, ValueError) as e:
        raise TokenExchangeError(response.status_code, response.text, "invalid expires_in") from e

    return AuthToken(
        id_token=payload.get("id_token") or "",
        access_token=payload.get("access_token") or "",
        # May not return new refresh token
        refresh_token=payload.get("refresh_token") or previous_refresh_token,
        expires_at=now + datetime.timedelta(seconds=expires_in),
        token_type=payload.get("token_type") or DEFAULT_TOKEN_TYPE,
    )


async def _post(client: httpx.AsyncClient, url: str, data: Dict[str, str]) -> httpx.Response:
    return await client.post(
        url,
        data=data,
        headers={
            "Content-Type": "application/x-www-form-urlencoded",
        },
        timeout=TOKEN_REQUEST_TIMEOUT,
    )


async def exchange_authorization_code(
    remote: RemoteConfig,
    code: str,
    code_verifier: Optional[str],
    *,
    redirect_uri: str = LOCALHOST_REDIRECT,
    client: Optional[httpx.AsyncClient] = None,
) -> AuthToken:
    """
    Exchange authorization code for tokens.

    Args:
        remote: Remote server config
        code: Authorization code from callback
        code_verifier: PKCE code verifier, None if the authorization
            request carried no challenge
        redirect_uri: Redirect URI used in the authorization request

    Returns:
        AuthToken
    """
    data = {
        "grant_type": GRANT_AUTHORIZATION_CODE,
        "code": code,
        "client_id": remote.user_pool_client_id,
        "redirect_uri": redirect_uri,
    }
    if code_verifier is not None:
        data["code_verifier"] = code_verifier

    return await request_token(remote, data, client=client)


async def exchange_refresh_token(
    remote: RemoteConfig,
    old_token: AuthToken,
    *,
    client: Optional[httpx.AsyncClient] = None,
) -> AuthToken:
    """
    Refresh tokens using the refresh token of `old_token`.

    Args:
        remote: Remote server config
        old_token: Token holding the refresh token

    Returns:
        New AuthToken; keeps the old refresh token if none was reissued
    """
    return await request_token(
        remote,
        {
            "grant_type": GRANT_REFRESH_TOKEN,
            "client_id": remote.user_pool_client_id,
            "refresh_token": old_token.refresh_token,
        },
        client=client,
        previous_refresh_token=old_token.refresh_token,
    )


async def exchange_device_code(
    remote: RemoteConfig,
    device_code: str,
    *,
    client: Optional[httpx.AsyncClient] = None,
) -> AuthToken:
    """
    Exchange a device code entered by the user for tokens.

    Args:
        remote: Remote server config
        device_code: Code the user copied from the device code page

    Returns:
        AuthToken
    """
    return await request_token(
        remote,
        {
            "grant_type": GRANT_DEVICE_CODE,
            "client_id": remote.user_pool_client_id,
            "device_code": device_code,
        },
        client=client,
    )
