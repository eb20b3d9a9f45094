"""
Local loopback listener for the OAuth redirect and the browser login flow
"""
import asyncio
import logging
from typing import Optional

import httpx
from aiohttp import web
from rich.console import Console

from settings import (
    AUTHORIZATION_TIMEOUT,
    CALLBACK_HOST,
    CALLBACK_PORT,
    LOCALHOST_REDIRECT,
    SHUTDOWN_GRACE_PERIOD,
)

from .authorization import create_authorization_flow, open_browser
from .constants import CALLBACK_PAGE
from .exceptions import AuthorizationDeniedError, AuthorizationTimeoutError, ListenerBindError
from .models import AuthToken, RemoteConfig
from .token_exchange import exchange_authorization_code

logger = logging.getLogger(__name__)

_default_console = Console()


class LoopbackListener:
    """Short-lived local HTTP server that captures one authorization code

    Use as an async context manager: entering binds the port, leaving
    always tears the server down. The first delivered code (or provider
    error) wins; anything delivered afterwards is dropped.
    """

    def __init__(
        self,
        host: str = CALLBACK_HOST,
        port: int = CALLBACK_PORT,
        expected_state: Optional[str] = None,
        shutdown_grace: float = SHUTDOWN_GRACE_PERIOD,
    ):
        self.host = host
        self.port = port
        self.expected_state = expected_state
        self.shutdown_grace = shutdown_grace
        self.app = web.Application()
        self.runner: Optional[web.AppRunner] = None
        self._handoff: Optional[asyncio.Future] = None

        # Every path answers, so favicon and other stray requests don't hang the tab
        self.app.router.add_get("/{tail:.*}", self._handle_callback)

    @property
    def bound_port(self) -> Optional[int]:
        """Port actually bound (differs from `port` when binding port 0)"""
        if not self.runner or not self.runner.addresses:
            return None
        return self.runner.addresses[0][1]

    @property
    def is_serving(self) -> bool:
        return self.runner is not None

    def _deliver(self, code: Optional[str] = None, error: Optional[Exception] = None) -> None:
        if self._handoff is None or self._handoff.done():
            logger.warning("Authorization result already received, dropping duplicate delivery")
            return
        if error is not None:
            self._handoff.set_exception(error)
        else:
            self._handoff.set_result(code)

    async def _handle_callback(self, request: web.Request) -> web.Response:
        """Handle OAuth redirect request"""
        code = request.query.get("code")
        error = request.query.get("error")

        if code:
            logger.debug("Got authorization code from redirect")
            state = request.query.get("state")
            # Mismatches are reported only; the code is still used
            if self.expected_state is not None and state != self.expected_state:
                logger.warning("Returned state does not match the authorization request")
            self._deliver(code=code)
        elif error:
            description = request.query.get("error_description")
            logger.warning(f"OAuth error in redirect: {error}")
            self._deliver(error=AuthorizationDeniedError(error, description))

        return web.Response(text=CALLBACK_PAGE, content_type="text/html")

    async def start(self) -> None:
        """Bind the port and start serving"""
        self.runner = web.AppRunner(self.app, access_log=None)
        await self.runner.setup()

        site = web.TCPSite(self.runner, host=self.host, port=self.port)

        try:
            await site.start()
        except OSError as e:
            await self.runner.cleanup()
            self.runner = None
            raise ListenerBindError(self.host, self.port, e) from e

        # created before the next await, so every request finds it
        self._handoff = asyncio.get_running_loop().create_future()
        logger.info(f"OAuth callback listener on {self.host}:{self.bound_port}")

    async def wait_for_code(self, timeout: float = AUTHORIZATION_TIMEOUT) -> str:
        """
        Wait for the authorization code.

        Args:
            timeout: Maximum time to wait in seconds (default 5 minutes)

        Returns:
            The first authorization code delivered

        Raises:
            AuthorizationTimeoutError: Nothing was delivered in time
            AuthorizationDeniedError: The provider redirected with an error
        """
        if self._handoff is None:
            raise RuntimeError("listener is not started")

        try:
            # shield: the handoff stays readable after a timeout
            return await asyncio.wait_for(asyncio.shield(self._handoff), timeout=timeout)
        except asyncio.TimeoutError:
            logger.info("Timeout waiting for authorization code")
            raise AuthorizationTimeoutError(timeout) from None

    async def stop(self) -> None:
        """Stop serving, giving in-flight connections a bounded grace period"""
        runner, self.runner = self.runner, None
        if runner is None:
            return

        try:
            await asyncio.wait_for(runner.cleanup(), timeout=self.shutdown_grace)
        except Exception as e:
            logger.warning(f"Failed to shutdown callback listener: {e!r}")

        if self._handoff is not None:
            if not self._handoff.done():
                self._handoff.cancel()
            elif not self._handoff.cancelled():
                # mark a delivered provider error as retrieved
                self._handoff.exception()

    async def __aenter__(self) -> "LoopbackListener":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.stop()


async def fetch_token(
    remote: RemoteConfig,
    *,
    no_browser: bool = False,
    wait_timeout: float = AUTHORIZATION_TIMEOUT,
    client: Optional[httpx.AsyncClient] = None,
    console: Optional[Console] = None,
    host: str = CALLBACK_HOST,
    port: int = CALLBACK_PORT,
    redirect_uri: str = LOCALHOST_REDIRECT,
) -> AuthToken:
    """
    Run the interactive authorization code + PKCE flow.

    Prints the authorization URL, captures the redirect on the loopback
    listener and exchanges exactly one code for tokens.

    Args:
        remote: Remote server config
        no_browser: Only print the URL, don't open a browser
        wait_timeout: How long the user has to complete the login
        client: Optional shared HTTP client for the token exchange
        console: Rich console for user output

    Returns:
        AuthToken
    """
    remote.validate()
    out = console or _default_console

    logger.info("Fetching authentication token")

    flow = create_authorization_flow(remote, redirect_uri=redirect_uri)

    out.print("\nPlease visit the following URL in your browser to authenticate:")
    out.print(flow.url, soft_wrap=True, markup=False, highlight=False)

    async with LoopbackListener(host=host, port=port, expected_state=flow.state) as listener:
        if not no_browser:
            open_browser(flow.url)
        code = await listener.wait_for_code(wait_timeout)

    return await exchange_authorization_code(
        remote,
        code,
        flow.pkce.verifier,
        redirect_uri=redirect_uri,
        client=client,
    )
