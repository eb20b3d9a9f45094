"""Authentication handlers for CLI"""

import io
import logging
import os
import sys
from functools import partial
from typing import List, Optional, TextIO

from rich.console import Console
from rich.markup import escape
from rich.prompt import Prompt

import settings
from team_oauth import (
    CliConfig,
    ConfigStore,
    IdentityTokenError,
    RemoteConfig,
    TokenManager,
)
from team_oauth.token_manager import reauthenticate
from cli.status_display import get_auth_status, show_identity, show_token_status

logger = logging.getLogger(__name__)


_prompt_console = Console(stderr=True)


def _terminal_input() -> TextIO:
    """Private reader on stdin's file descriptor

    An abandoned prompt thread keeps blocking on this reader instead of
    holding the lock of sys.stdin while the interpreter shuts down.
    """
    try:
        fd = sys.stdin.fileno()
    except (AttributeError, io.UnsupportedOperation):
        return sys.stdin
    return os.fdopen(os.dup(fd), "r", closefd=True)


def prompt_device_code(console: Optional[Console] = None) -> Optional[str]:
    """Ask the user for the code shown on the device code page

    The prompt goes to stderr so stdout stays usable for scripts.
    """
    stream = _terminal_input()
    try:
        return Prompt.ask("Device code", console=console or _prompt_console, stream=stream)
    finally:
        if stream is not sys.stdin:
            stream.close()


async def configure(
    store: ConfigStore,
    console,
    *,
    domain: str,
    client_id: str,
    scopes: Optional[List[str]] = None,
    response_type: str = settings.DEFAULT_RESPONSE_TYPE,
    graphql_endpoint: str = "",
    device_code_page: Optional[str] = None,
    use_device_code: bool = False,
    no_browser: bool = False,
) -> CliConfig:
    """
    Store a new server config and run the first login

    The config is only written once a token was obtained.

    Returns:
        The saved CliConfig
    """
    remote = RemoteConfig(
        oauth_domain=domain,
        user_pool_client_id=client_id,
        oauth_response_type=response_type,
        oauth_scopes=list(scopes or settings.DEFAULT_SCOPES),
        graphql_endpoint=graphql_endpoint,
        device_code_redirect_uri=device_code_page,
    )
    remote.validate()

    logger.info(f"Configuring server {remote.oauth_domain}")

    # --device-code implies --no-browser
    no_browser = no_browser or use_device_code

    token = await reauthenticate(
        remote,
        use_device_code,
        prompt_device_code=partial(prompt_device_code, console),
        no_browser=no_browser,
        console=console,
    )

    logger.info("Fetched initial token")

    config = CliConfig(
        server_config=remote,
        auth_token=token,
        use_device_code=use_device_code,
        no_browser=no_browser,
    )
    store.save(config)

    console.print("\n[bold green]✓ team-cli config updated[/bold green]")
    return config


async def login(manager: TokenManager, console) -> CliConfig:
    """Force a full login"""
    config = await manager.login()
    console.print("\n[bold green]✓ Authentication successful![/bold green]")
    return config


async def ensure_token(manager: TokenManager, console) -> CliConfig:
    """Reuse, refresh or reacquire the token as needed"""
    config = await manager.ensure_authenticated()
    _, detail = get_auth_status(config.auth_token)
    console.print(f"[green]✓ Authenticated[/green] [dim]({detail})[/dim]")
    return config


def status(store: ConfigStore, console) -> None:
    """Show the stored token state without touching the network"""
    show_token_status(store.load(), store.config_file, console)


def whoami(manager: TokenManager, console) -> bool:
    """
    Show who the stored ID token belongs to

    Returns:
        False if there is no token or it cannot be decoded
    """
    try:
        claims = manager.identity_claims()
    except IdentityTokenError as e:
        console.print(f"[yellow]⚠ Could not decode identity token: {escape(str(e))}[/yellow]")
        return False

    if claims is None:
        console.print("[red]✗ Not authenticated[/red]")
        return False

    show_identity(claims, console)
    return True


def logout(manager: TokenManager, console) -> None:
    """Remove the stored token"""
    if manager.logout():
        console.print("[green]✓ Logged out[/green]")
    else:
        console.print("[dim]No stored token[/dim]")
