"""
TEAM OAuth authentication module

Obtains, refreshes and exposes the tokens that authorize team-cli calls.
"""
from .constants import (
    AUTHORIZE_PATH,
    TOKEN_PATH,
    GRANT_AUTHORIZATION_CODE,
    GRANT_REFRESH_TOKEN,
    GRANT_DEVICE_CODE,
)
from .exceptions import (
    TeamAuthError,
    ConfigInvalidError,
    ConfigFileError,
    AuthorizationTimeoutError,
    AuthorizationDeniedError,
    ListenerBindError,
    DeviceCodeCancelledError,
    TokenRequestError,
    TokenExchangeError,
    IdentityTokenError,
    MalformedTokenError,
    EncodingError,
    DecodeError,
)
from .models import (
    RemoteConfig,
    AuthToken,
    IdentityClaims,
    PKCEPair,
    AuthorizationFlow,
)
from .pkce import random_string, create_state, generate_challenge
from .authorization import build_authorization_url, create_authorization_flow
from .jwt_utils import decode_claims, parse_identity_claims
from .token_exchange import (
    request_token,
    exchange_authorization_code,
    exchange_refresh_token,
    exchange_device_code,
)
from .callback_server import LoopbackListener, fetch_token
from .device_code import fetch_token_via_device_code
from .storage import CliConfig, ConfigStore
from .token_manager import TokenManager, TokenState, classify_token, acquire_valid_token

__all__ = [
    # Constants
    "AUTHORIZE_PATH",
    "TOKEN_PATH",
    "GRANT_AUTHORIZATION_CODE",
    "GRANT_REFRESH_TOKEN",
    "GRANT_DEVICE_CODE",
    # Errors
    "TeamAuthError",
    "ConfigInvalidError",
    "ConfigFileError",
    "AuthorizationTimeoutError",
    "AuthorizationDeniedError",
    "ListenerBindError",
    "DeviceCodeCancelledError",
    "TokenRequestError",
    "TokenExchangeError",
    "IdentityTokenError",
    "MalformedTokenError",
    "EncodingError",
    "DecodeError",
    # Models
    "RemoteConfig",
    "AuthToken",
    "IdentityClaims",
    "PKCEPair",
    "AuthorizationFlow",
    # PKCE / Authorization
    "random_string",
    "create_state",
    "generate_challenge",
    "build_authorization_url",
    "create_authorization_flow",
    # ID token
    "decode_claims",
    "parse_identity_claims",
    # Token Exchange
    "request_token",
    "exchange_authorization_code",
    "exchange_refresh_token",
    "exchange_device_code",
    # Login flows
    "LoopbackListener",
    "fetch_token",
    "fetch_token_via_device_code",
    # Storage / lifecycle
    "CliConfig",
    "ConfigStore",
    "TokenManager",
    "TokenState",
    "classify_token",
    "acquire_valid_token",
]
