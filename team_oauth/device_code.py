"""
Device code login for headless or remote sessions
"""
import asyncio
import logging
import threading
from typing import Callable, Optional

import httpx
from rich.console import Console

from .authorization import create_authorization_flow, open_browser
from .exceptions import DeviceCodeCancelledError
from .models import AuthToken, RemoteConfig
from .token_exchange import exchange_authorization_code, exchange_device_code

logger = logging.getLogger(__name__)

_default_console = Console(stderr=True)

DeviceCodePrompt = Callable[[], Optional[str]]


async def ask_device_code(prompt_device_code: DeviceCodePrompt) -> Optional[str]:
    """
    Run a blocking prompt without blocking the event loop.

    The prompt runs on a daemon thread. If the awaiting task is cancelled
    (Ctrl-C) the thread is abandoned rather than joined, so a pending
    terminal read never keeps the process alive.

    Returns:
        Whatever the prompt returned
    """
    loop = asyncio.get_running_loop()
    answer: asyncio.Future = loop.create_future()

    def settle(result=None, error=None):
        if answer.done():
            return
        if error is not None:
            answer.set_exception(error)
        else:
            answer.set_result(result)

    def worker():
        try:
            result = prompt_device_code()
        except BaseException as e:
            outcome = {"error": e}
        else:
            outcome = {"result": result}
        try:
            loop.call_soon_threadsafe(lambda: settle(**outcome))
        except RuntimeError:
            # loop already closed, nobody is waiting any more
            pass

    threading.Thread(target=worker, name="device-code-prompt", daemon=True).start()
    return await answer


async def fetch_token_via_device_code(
    remote: RemoteConfig,
    prompt_device_code: DeviceCodePrompt,
    *,
    no_browser: bool = True,
    client: Optional[httpx.AsyncClient] = None,
    console: Optional[Console] = None,
) -> AuthToken:
    """
    Log in with a code the user obtained on another device.

    No local listener is started and no PKCE pair is used. When the remote
    config names a device code page, the authorization URL redirecting to
    it is shown; the page displays the authorization code it was redirected
    with, so that code is redeemed with the authorization code grant for the
    page's redirect URI. Without a page the entered code is redeemed with
    the device code grant.

    Args:
        remote: Remote server config
        prompt_device_code: Blocking callable asking the user for the code
        no_browser: Only print the URL, don't open a browser
        client: Optional shared HTTP client for the token exchange
        console: Rich console for user output

    Returns:
        AuthToken

    Raises:
        DeviceCodeCancelledError: The user gave no code
    """
    remote.validate()
    out = console or _default_console

    logger.info("Fetching authentication token via device code")

    page = remote.device_code_redirect_uri
    if page:
        flow = create_authorization_flow(remote, redirect_uri=page, use_pkce=False)
        out.print("\nPlease visit the following URL on any device and copy the code it shows:")
        out.print(flow.url, soft_wrap=True, markup=False, highlight=False)
        if not no_browser:
            open_browser(flow.url)

    try:
        code = await ask_device_code(prompt_device_code)
    except EOFError as e:
        raise DeviceCodeCancelledError("device code entry cancelled") from e

    code = (code or "").strip()
    if not code:
        raise DeviceCodeCancelledError("no device code entered")

    if page:
        return await exchange_authorization_code(remote, code, None, redirect_uri=page, client=client)
    return await exchange_device_code(remote, code, client=client)
