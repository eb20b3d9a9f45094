"""Status display functionality for CLI"""

import datetime
from typing import Optional

from rich.table import Table

from team_oauth import AuthToken, CliConfig, IdentityClaims, TokenState, classify_token
from team_oauth.models import utcnow


def _format_delta(delta: datetime.timedelta) -> str:
    seconds = int(abs(delta.total_seconds()))
    hours = seconds // 3600
    minutes = (seconds % 3600) // 60
    if hours > 0:
        return f"{hours}h {minutes}m"
    return f"{minutes}m"


def get_auth_status(token: Optional[AuthToken], now: Optional[datetime.datetime] = None) -> tuple[str, str]:
    """
    Get authentication status and expiry info

    Args:
        token: Cached token, if any
        now: Reference time (defaults to the current time)

    Returns:
        Tuple of (status, detail_message)
    """
    if token is None:
        return "NO AUTH", "No token available"

    now = now or utcnow()
    delta = token.expires_at - now
    state = classify_token(token, now)

    if delta.total_seconds() <= 0:
        if state is TokenState.REFRESHABLE:
            return "EXPIRED", f"Expired {_format_delta(delta)} ago, will refresh on next use"
        return "EXPIRED", f"Expired {_format_delta(delta)} ago, login required"

    if state is TokenState.VALID:
        return "VALID", f"Expires in {_format_delta(delta)}"

    if state is TokenState.REFRESHABLE:
        return "EXPIRING", f"Expires in {_format_delta(delta)}, will refresh on next use"

    return "EXPIRING", f"Expires in {_format_delta(delta)}, login required soon"


def show_token_status(config: CliConfig, config_file, console):
    """
    Display detailed token status

    Args:
        config: Loaded CLI config
        config_file: Path of the config file
        console: Rich console for output
    """
    table = Table(title="Token Status Details")
    table.add_column("Property", style="cyan")
    table.add_column("Value")

    remote = config.server_config
    table.add_row("OAuth Domain", remote.oauth_domain if remote and remote.oauth_domain else "[red]not configured[/red]")
    table.add_row("Login Flow", "Device code" if config.use_device_code else "Browser")

    status, detail = get_auth_status(config.auth_token)
    style = {"VALID": "green", "EXPIRING": "yellow"}.get(status, "red")
    table.add_row("Status", f"[{style}]{status}[/{style}]")
    table.add_row("Detail", detail)

    token = config.auth_token
    if token is not None:
        table.add_row("Expires At", token.expires_at.astimezone().isoformat(timespec="seconds"))
        table.add_row("Refresh Token", "Yes" if token.refresh_token else "No")
        table.add_row("Token Type", token.token_type)

    table.add_row("Config File", str(config_file))

    console.print(table)


def show_identity(claims: IdentityClaims, console):
    """
    Display the decoded (unverified) identity claims

    Args:
        claims: Identity claims from the ID token
        console: Rich console for output
    """
    table = Table(show_header=False, box=None, padding=(0, 2))
    table.add_column(style="cyan", width=12)
    table.add_column()

    table.add_row("User ID:", str(claims.user_id) if claims.user_id is not None else "[dim]unknown[/dim]")
    table.add_row("Email:", str(claims.email) if claims.email is not None else "[dim]unknown[/dim]")
    table.add_row("Groups:", str(claims.group_ids) if claims.group_ids is not None else "[dim]none[/dim]")

    console.print(table)
    console.print("[dim]Claims are decoded without signature verification.[/dim]")
