"""
Token lifecycle management: reuse, refresh or reauthenticate
"""
import datetime
import logging
from dataclasses import replace
from enum import Enum
from typing import Callable, Optional

import httpx
from rich.console import Console

from settings import TOKEN_EXPIRY_MARGIN

from .callback_server import fetch_token
from .device_code import DeviceCodePrompt, fetch_token_via_device_code
from .exceptions import ConfigInvalidError, TeamAuthError
from .models import AuthToken, IdentityClaims, RemoteConfig, utcnow
from .storage import CliConfig, ConfigStore
from .token_exchange import exchange_refresh_token

logger = logging.getLogger(__name__)


class TokenState(Enum):
    """What has to happen to a cached token before it can be used"""
    VALID = "valid"
    REFRESHABLE = "refreshable"
    EXPIRED_NO_REFRESH = "expired_no_refresh"


def classify_token(
    token: Optional[AuthToken],
    now: Optional[datetime.datetime] = None,
) -> TokenState:
    """
    Classify a cached token.

    A token is reused only while it has more than TOKEN_EXPIRY_MARGIN
    seconds left.
    """
    if token is None:
        return TokenState.EXPIRED_NO_REFRESH

    now = now or utcnow()
    if not token.expires_within(datetime.timedelta(seconds=TOKEN_EXPIRY_MARGIN), now):
        return TokenState.VALID

    if token.refresh_token:
        return TokenState.REFRESHABLE

    return TokenState.EXPIRED_NO_REFRESH


async def reauthenticate(
    remote: RemoteConfig,
    use_device_code: bool = False,
    *,
    prompt_device_code: Optional[DeviceCodePrompt] = None,
    no_browser: bool = False,
    client: Optional[httpx.AsyncClient] = None,
    console: Optional[Console] = None,
) -> AuthToken:
    """Run a full interactive login with the configured flow"""
    if use_device_code:
        if prompt_device_code is None:
            raise ValueError("device code flow needs a prompt_device_code callable")
        return await fetch_token_via_device_code(
            remote,
            prompt_device_code,
            no_browser=no_browser,
            client=client,
            console=console,
        )

    return await fetch_token(remote, no_browser=no_browser, client=client, console=console)


async def acquire_valid_token(
    remote: RemoteConfig,
    cached_token: Optional[AuthToken],
    use_device_code: bool = False,
    *,
    save: Callable[[AuthToken], None],
    prompt_device_code: Optional[DeviceCodePrompt] = None,
    no_browser: bool = False,
    client: Optional[httpx.AsyncClient] = None,
    console: Optional[Console] = None,
) -> AuthToken:
    """
    Return a usable token, refreshing or reauthenticating as needed.

    A still valid token is returned without any network call. An expired
    token with a refresh token is refreshed once; if that fails the user
    is sent through a full login exactly once. Every newly issued token is
    passed to `save` before it is returned.

    Args:
        remote: Remote server config
        cached_token: Token from the config store, if any
        use_device_code: Reauthenticate with the device code flow
        save: Persists a newly issued token; its errors propagate
        prompt_device_code: Asks the user for the device code

    Returns:
        AuthToken
    """
    remote.validate()

    state = classify_token(cached_token)

    if state is TokenState.VALID:
        logger.info("Existing auth token is valid")
        return cached_token

    if state is TokenState.REFRESHABLE:
        logger.info("Existing auth token has expired, attempting to refresh")
        try:
            new_token = await exchange_refresh_token(remote, cached_token, client=client)
        except TeamAuthError as e:
            # Refresh tokens go stale over long idle periods
            logger.warning(f"Failed to refresh token: {e}")
        else:
            logger.info("Refreshed token")
            save(new_token)
            return new_token

    logger.info("Reauthentication required")

    new_token = await reauthenticate(
        remote,
        use_device_code,
        prompt_device_code=prompt_device_code,
        no_browser=no_browser,
        client=client,
        console=console,
    )

    save(new_token)
    return new_token


class TokenManager:
    """Keeps the token in the CLI config file usable"""

    def __init__(
        self,
        store: Optional[ConfigStore] = None,
        prompt_device_code: Optional[DeviceCodePrompt] = None,
        console: Optional[Console] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        """
        Initialize token manager.

        Args:
            store: Config store (default location if None)
            prompt_device_code: Asks the user for a device code
            console: Rich console for user output
            client: Optional shared HTTP client
        """
        self.store = store or ConfigStore()
        self.prompt_device_code = prompt_device_code
        self.console = console
        self.client = client
        self.config: Optional[CliConfig] = None

    def load(self) -> CliConfig:
        """Load the config and make sure a server is configured"""
        config = self.store.load()
        if config.server_config is None:
            logger.error("No server config found!")
            raise ConfigInvalidError("no server config found; run `team-cli configure` first")
        config.server_config.validate()
        self.config = config
        return config

    def _saver(self, config: CliConfig) -> Callable[[AuthToken], None]:
        def save(token: AuthToken) -> None:
            self.config = replace(config, auth_token=token)
            self.store.save(self.config)

        return save

    async def ensure_authenticated(self) -> CliConfig:
        """
        Load the config and return it with a usable token.

        Returns:
            CliConfig holding a valid token (persisted if it changed)
        """
        config = self.load()
        await acquire_valid_token(
            config.server_config,
            config.auth_token,
            config.use_device_code,
            save=self._saver(config),
            prompt_device_code=self.prompt_device_code,
            no_browser=config.no_browser,
            client=self.client,
            console=self.console,
        )
        return self.config

    async def login(self) -> CliConfig:
        """Force a full login regardless of the cached token"""
        config = self.load()
        token = await reauthenticate(
            config.server_config,
            config.use_device_code,
            prompt_device_code=self.prompt_device_code,
            no_browser=config.no_browser,
            client=self.client,
            console=self.console,
        )
        self._saver(config)(token)
        return self.config

    def identity_claims(self) -> Optional[IdentityClaims]:
        """Decode the stored ID token, None if there is no token"""
        config = self.config or self.store.load()
        if config.auth_token is None:
            return None
        return config.auth_token.identity_claims()

    def logout(self) -> bool:
        """Drop the stored token, keeping the server config

        Returns:
            True if a token was removed
        """
        config = self.store.load()
        if config.auth_token is None:
            return False
        self.config = replace(config, auth_token=None)
        self.store.save(self.config)
        logger.info("Cleared stored auth token")
        return True
