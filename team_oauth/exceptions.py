"""Exceptions raised by the team-cli authentication flows."""

from typing import Optional


class TeamAuthError(Exception):
    """Base exception for all authentication errors."""


# ========================================
# Configuration
# ========================================


class ConfigInvalidError(TeamAuthError):
    """The remote server config is missing or has no OAuth domain."""


class ConfigFileError(TeamAuthError):
    """The config file exists but cannot be parsed."""


# ========================================
# Interactive authorization
# ========================================


class AuthorizationTimeoutError(TeamAuthError):
    """The user did not finish the browser login in time."""

    def __init__(self, timeout: float):
        self.timeout = timeout
        super().__init__(
            f"timed out after {timeout:.0f}s waiting for the browser login to complete; "
            "re-run the command and finish the login before the window expires"
        )


class AuthorizationDeniedError(TeamAuthError):
    """The identity provider redirected back with an error instead of a code."""

    def __init__(self, error: str, description: Optional[str] = None):
        self.error = error
        self.description = description
        message = f"authorization failed: {error}"
        if description:
            message += f" ({description})"
        super().__init__(message)


class ListenerBindError(TeamAuthError):
    """The loopback listener could not bind its port."""

    def __init__(self, host: str, port: int, cause: OSError):
        self.host = host
        self.port = port
        super().__init__(
            f"could not listen on {host}:{port}: {cause}; "
            f"check that no other process (or another team-cli login) is using port {port}"
        )


class DeviceCodeCancelledError(TeamAuthError):
    """The user did not provide a device code."""


# ========================================
# Token endpoint
# ========================================


class TokenRequestError(TeamAuthError):
    """The token request could not be sent or no response was received."""


class TokenExchangeError(TeamAuthError):
    """The token endpoint answered with an unexpected response."""

    def __init__(self, status_code: int, body: str, message: str = "unexpected token status code"):
        self.status_code = status_code
        self.body = body
        super().__init__(f"{message}: {status_code} {body!r}")


# ========================================
# Identity token decoding
# ========================================


class IdentityTokenError(TeamAuthError):
    """Base exception for identity token decoding failures."""


class MalformedTokenError(IdentityTokenError):
    """The token is not made of three dot separated segments."""


class EncodingError(IdentityTokenError):
    """The claims segment is not valid unpadded base64url."""


class DecodeError(IdentityTokenError):
    """The claims segment does not hold a JSON object."""
