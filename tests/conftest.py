import base64
import datetime
import io
import json
import socket
from typing import Any, Dict, List

import httpx
import pytest
from rich.console import Console

from team_oauth import AuthToken, RemoteConfig
from team_oauth.models import utcnow


def b64url(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).decode("ascii").rstrip("=")


def make_id_token(claims: Dict[str, Any]) -> str:
    """Build an unsigned compact JWT carrying `claims`"""
    header = b64url(json.dumps({"alg": "RS256", "typ": "JWT"}).encode())
    payload = b64url(json.dumps(claims).encode())
    return f"{header}.{payload}.c2lnbmF0dXJl"


def make_token(
    expires_in: datetime.timedelta = datetime.timedelta(hours=1),
    refresh_token: str = "refresh-old",
    claims: Dict[str, Any] = None,
) -> AuthToken:
    return AuthToken(
        id_token=make_id_token(claims or {"userId": "user-1", "groupIds": "g1,g2", "email": "me@example.com"}),
        access_token="access-old",
        refresh_token=refresh_token,
        expires_at=utcnow() + expires_in,
        token_type="Bearer",
    )


class TokenEndpoint:
    """Fake token endpoint recording every request it receives"""

    def __init__(self, responses: List[httpx.Response] = None):
        self.requests: List[httpx.Request] = []
        self.responses = list(responses or [])

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.responses:
            return self.responses.pop(0)
        return token_response()

    @property
    def calls(self) -> int:
        return len(self.requests)

    def form(self, index: int = -1) -> Dict[str, str]:
        from urllib.parse import parse_qsl

        return dict(parse_qsl(self.requests[index].content.decode()))


def token_response(**overrides) -> httpx.Response:
    body = {
        "id_token": make_id_token({"userId": "user-1", "groupIds": "g1", "email": "me@example.com"}),
        "access_token": "access-new",
        "refresh_token": "refresh-new",
        "expires_in": 3600,
        "token_type": "Bearer",
    }
    body.update(overrides)
    body = {k: v for k, v in body.items() if v is not None}
    return httpx.Response(200, json=body)


@pytest.fixture
def remote() -> RemoteConfig:
    return RemoteConfig(
        oauth_domain="auth.example.com",
        user_pool_client_id="client-123",
        oauth_response_type="code",
        oauth_scopes=["openid", "email", "profile"],
        graphql_endpoint="https://api.example.com/graphql",
    )


@pytest.fixture
def token_endpoint() -> TokenEndpoint:
    return TokenEndpoint()


@pytest.fixture
async def http_client(token_endpoint):
    async with httpx.AsyncClient(transport=httpx.MockTransport(token_endpoint)) as client:
        yield client


@pytest.fixture
def console_output():
    """A rich console writing into a buffer, and a getter for its text"""
    buffer = io.StringIO()
    console = Console(file=buffer, width=200, color_system=None)
    return console, buffer.getvalue


@pytest.fixture
def free_port() -> int:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


def port_is_free(port: int) -> bool:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        try:
            sock.bind(("127.0.0.1", port))
        except OSError:
            return False
    return True
