"""
OAuth authorization URL construction
"""
import logging
import webbrowser
from typing import Optional
from urllib.parse import urlencode

from settings import LOCALHOST_REDIRECT

from .constants import AUTHORIZE_PATH, CODE_CHALLENGE_METHOD, RESPONSE_TYPE_CODE
from .models import AuthorizationFlow, RemoteConfig
from .pkce import create_state, generate_challenge

logger = logging.getLogger(__name__)


def build_authorization_url(
    remote: RemoteConfig,
    state: str,
    challenge: Optional[str] = None,
    redirect_uri: str = LOCALHOST_REDIRECT,
) -> str:
    """
    Build the authorize URL of the remote's OAuth domain.

    The PKCE parameters are only added for the "code" response type.

    Args:
        remote: Remote server config
        state: Random state for this attempt
        challenge: PKCE challenge
        redirect_uri: Where the provider sends the browser back to

    Returns:
        Full authorization URL
    """
    params = {
        "redirect_uri": redirect_uri,
        "response_type": remote.oauth_response_type,
        "client_id": remote.user_pool_client_id,
        "scope": " ".join(remote.oauth_scopes),
        "state": state,
    }

    if remote.oauth_response_type == RESPONSE_TYPE_CODE and challenge:
        params["code_challenge"] = challenge
        params["code_challenge_method"] = CODE_CHALLENGE_METHOD

    return f"https://{remote.oauth_domain}{AUTHORIZE_PATH}?{urlencode(params)}"


def create_authorization_flow(
    remote: RemoteConfig,
    redirect_uri: str = LOCALHOST_REDIRECT,
    use_pkce: bool = True,
) -> AuthorizationFlow:
    """
    Create a single authorization attempt.

    Generates state, a PKCE pair (when requested) and the authorization URL.

    Returns:
        AuthorizationFlow: Tuple of (state, pkce, url)
    """
    state = create_state()
    pkce = generate_challenge() if use_pkce else None
    url = build_authorization_url(
        remote,
        state,
        challenge=pkce.challenge if pkce else None,
        redirect_uri=redirect_uri,
    )
    return AuthorizationFlow(state=state, pkce=pkce, url=url)


def open_browser(url: str) -> bool:
    """Try to open the URL in the default browser"""
    try:
        opened = webbrowser.open(url)
    except webbrowser.Error as e:
        logger.warning(f"Could not open browser: {e}")
        return False
    if not opened:
        logger.info("No browser available to open the authorization URL")
    return opened
