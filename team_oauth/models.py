"""Data models for TEAM OAuth authentication"""

import datetime
from dataclasses import dataclass, field
from typing import Any, Dict, List, NamedTuple, Optional

from .exceptions import ConfigInvalidError


def utcnow() -> datetime.datetime:
    """Current time as a timezone-aware UTC datetime"""
    return datetime.datetime.now(datetime.timezone.utc)


def _parse_timestamp(value: str) -> datetime.datetime:
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    parsed = datetime.datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=datetime.timezone.utc)
    return parsed.astimezone(datetime.timezone.utc)


@dataclass(frozen=True)
class RemoteConfig:
    """TEAM server configuration needed to authenticate

    Attributes:
        oauth_domain: Host of the OAuth hosted UI (no scheme)
        user_pool_client_id: OAuth client identifier
        oauth_response_type: Authorization response type, "code" enables PKCE
        oauth_scopes: Requested scopes, in order
        graphql_endpoint: TEAM GraphQL API endpoint
        device_code_redirect_uri: Hosted page that shows the user a code to
            type into the CLI (device code flow only)
    """
    oauth_domain: str
    user_pool_client_id: str
    oauth_response_type: str = "code"
    oauth_scopes: List[str] = field(default_factory=list)
    graphql_endpoint: str = ""
    device_code_redirect_uri: Optional[str] = None

    def validate(self) -> None:
        """Raise ConfigInvalidError unless authentication can be attempted"""
        if not self.oauth_domain:
            raise ConfigInvalidError(
                "no OAuth domain configured; run `team-cli configure` first"
            )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "oauth_domain": self.oauth_domain,
            "user_pool_client_id": self.user_pool_client_id,
            "oauth_response_type": self.oauth_response_type,
            "oauth_scopes": list(self.oauth_scopes),
            "graphql_endpoint": self.graphql_endpoint,
            "device_code_redirect_uri": self.device_code_redirect_uri,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RemoteConfig":
        return cls(
            oauth_domain=data.get("oauth_domain", ""),
            user_pool_client_id=data.get("user_pool_client_id", ""),
            oauth_response_type=data.get("oauth_response_type", "code"),
            oauth_scopes=list(data.get("oauth_scopes") or []),
            graphql_endpoint=data.get("graphql_endpoint", ""),
            device_code_redirect_uri=data.get("device_code_redirect_uri"),
        )


@dataclass(frozen=True)
class AuthToken:
    """Tokens issued by the identity provider

    Attributes:
        id_token: Compact JWT identifying the user
        access_token: Bearer token for the TEAM API
        refresh_token: Token for refreshing, empty if none was issued
        expires_at: Absolute expiry instant (UTC)
        token_type: Token type label, usually "Bearer"
    """
    id_token: str
    access_token: str
    refresh_token: str
    expires_at: datetime.datetime
    token_type: str = "Bearer"

    def expires_within(self, delta: datetime.timedelta, now: Optional[datetime.datetime] = None) -> bool:
        """Check whether the token expires within `delta` of `now`"""
        now = now or utcnow()
        return not now + delta < self.expires_at

    def identity_claims(self) -> "IdentityClaims":
        """Decode the (unverified) claims of the ID token"""
        from .jwt_utils import parse_identity_claims

        return parse_identity_claims(self.id_token)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for storage"""
        return {
            "id_token": self.id_token,
            "access_token": self.access_token,
            "refresh_token": self.refresh_token,
            "expires_at": self.expires_at.isoformat(),
            "token_type": self.token_type,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AuthToken":
        """Load from dictionary"""
        return cls(
            id_token=data.get("id_token", ""),
            access_token=data.get("access_token", ""),
            refresh_token=data.get("refresh_token") or "",
            expires_at=_parse_timestamp(data["expires_at"]),
            token_type=data.get("token_type") or "Bearer",
        )


@dataclass(frozen=True)
class IdentityClaims:
    """Unverified claims decoded from an ID token

    Attributes:
        user_id: TEAM user identifier (`userId` claim)
        group_ids: Group identifiers (`groupIds` claim)
        email: Provider dependent; may be a string, a list or absent
        raw: Every claim in the payload
    """
    user_id: Optional[str]
    group_ids: Optional[Any]
    email: Optional[Any]
    raw: Dict[str, Any] = field(default_factory=dict)


class PKCEPair(NamedTuple):
    """PKCE code verifier and challenge pair"""
    verifier: str
    challenge: str


class AuthorizationFlow(NamedTuple):
    """OAuth authorization attempt data"""
    state: str
    pkce: Optional[PKCEPair]
    url: str
