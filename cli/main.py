"""CLI entry point and argument parsing"""

import argparse
import asyncio
import logging
import sys
from functools import partial
from typing import List, Optional

from rich.console import Console
from rich.markup import escape

import settings
from team_oauth import ConfigStore, TeamAuthError, TokenManager
from cli import auth_handlers


console = Console(stderr=True)

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

# Prefix of the error line for each command
COMMAND_FAILURES = {
    "configure": "failed to configure team-cli",
    "login": "failed to fetch new token",
    "token": "failed to get a valid token",
    "status": "failed to read token status",
    "whoami": "failed to read identity",
    "logout": "failed to log out",
}


def setup_logging(verbose: int = 0, log_file: Optional[str] = None) -> None:
    """
    Configure the root logger from the -v count

    Args:
        verbose: 0 = configured level (warning by default), 1 = info, 2+ = debug
        log_file: Optional file that receives the same records
    """
    if verbose > 1:
        level = logging.DEBUG
    elif verbose > 0:
        level = logging.INFO
    else:
        level = getattr(logging, str(settings.LOG_LEVEL).upper(), logging.WARNING)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    # Clear existing handlers to avoid duplicates
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    formatter = logging.Formatter(LOG_FORMAT)

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file, mode='a', encoding='utf-8')
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="team-cli",
        description="team-cli authentication: log in to AWS TEAM and keep the token fresh",
    )
    parser.add_argument("--verbose", "-v", action="count", default=0, help="Increase verbosity")
    parser.add_argument("--log-file", default=None, help="Also write log records to this file")
    parser.add_argument("--config-file", default=None, help="Override the config file location")

    subparsers = parser.add_subparsers(dest="command", required=True)

    configure = subparsers.add_parser("configure", help="Configure the TEAM server and log in")
    configure.add_argument("--domain", required=True, help="OAuth domain (host only)")
    configure.add_argument("--client-id", required=True, help="User pool client ID")
    configure.add_argument(
        "--scope",
        action="append",
        dest="scopes",
        default=None,
        help="OAuth scope, repeat for several (default: %s)" % " ".join(settings.DEFAULT_SCOPES),
    )
    configure.add_argument("--response-type", default=settings.DEFAULT_RESPONSE_TYPE, help="OAuth response type")
    configure.add_argument("--graphql-endpoint", default="", help="TEAM GraphQL endpoint")
    configure.add_argument("--device-code-page", default=None, help="Page that shows the device code")
    configure.add_argument("--no-browser", "-b", action="store_true", help="Do not open the browser automatically")
    configure.add_argument(
        "--device-code",
        "-d",
        action="store_true",
        help="Use the device code flow. Implies --no-browser",
    )

    subparsers.add_parser("login", help="Log in again, discarding the cached token")

    token = subparsers.add_parser("token", help="Make sure a valid token is available")
    token.add_argument(
        "--print-access-token",
        action="store_true",
        help="Write the access token to stdout",
    )

    subparsers.add_parser("status", help="Show the cached token status")
    subparsers.add_parser("whoami", help="Show the identity in the cached ID token")
    subparsers.add_parser("logout", help="Remove the cached token")

    return parser


def run(args: argparse.Namespace, console: Console = console) -> int:
    """Dispatch a parsed command, returning the exit code"""
    store = ConfigStore(args.config_file)
    manager = TokenManager(
        store,
        prompt_device_code=partial(auth_handlers.prompt_device_code, console),
        console=console,
    )

    if args.command == "configure":
        asyncio.run(auth_handlers.configure(
            store,
            console,
            domain=args.domain,
            client_id=args.client_id,
            scopes=args.scopes,
            response_type=args.response_type,
            graphql_endpoint=args.graphql_endpoint,
            device_code_page=args.device_code_page,
            use_device_code=args.device_code,
            no_browser=args.no_browser,
        ))
    elif args.command == "login":
        asyncio.run(auth_handlers.login(manager, console))
    elif args.command == "token":
        config = asyncio.run(auth_handlers.ensure_token(manager, console))
        if args.print_access_token:
            print(config.auth_token.access_token)
    elif args.command == "status":
        auth_handlers.status(store, console)
    elif args.command == "whoami":
        if not auth_handlers.whoami(manager, console):
            return 1
    elif args.command == "logout":
        auth_handlers.logout(manager, console)

    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """Entry point for the CLI"""
    parser = build_parser()
    args = parser.parse_args(argv)

    setup_logging(args.verbose, args.log_file)

    try:
        return run(args)
    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted by user[/yellow]")
        return 130
    except TeamAuthError as e:
        console.print(f"[red]✗ {COMMAND_FAILURES[args.command]}: {escape(str(e))}[/red]")
        return 1
    except OSError as e:
        console.print(f"[red]✗ {COMMAND_FAILURES[args.command]}: config file error: {escape(str(e))}[/red]")
        return 1


if __name__ == "__main__":
    sys.exit(main())
