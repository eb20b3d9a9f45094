"""Tests for the token lifecycle"""

import datetime
import logging
from dataclasses import replace
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from team_oauth import (
    AuthorizationTimeoutError,
    CliConfig,
    ConfigInvalidError,
    ConfigStore,
    RemoteConfig,
    TokenManager,
    TokenState,
    acquire_valid_token,
    classify_token,
)
from team_oauth.models import utcnow
from tests.conftest import TokenEndpoint, make_token, token_response

MINUTES = datetime.timedelta(minutes=1)


def mock_client(endpoint):
    return httpx.AsyncClient(transport=httpx.MockTransport(endpoint))


def fresh_login_token():
    return make_token(expires_in=60 * MINUTES, refresh_token="refresh-login")


# ========================================
# classify_token
# ========================================


def test_token_with_time_left_is_valid():
    assert classify_token(make_token(expires_in=10 * MINUTES)) is TokenState.VALID


def test_token_inside_margin_needs_refresh():
    assert classify_token(make_token(expires_in=4 * MINUTES)) is TokenState.REFRESHABLE
    assert classify_token(make_token(expires_in=-10 * MINUTES)) is TokenState.REFRESHABLE


def test_margin_boundary_is_not_valid():
    now = utcnow()
    token = replace(make_token(), expires_at=now + 5 * MINUTES)

    assert classify_token(token, now) is TokenState.REFRESHABLE
    assert classify_token(token, now - datetime.timedelta(seconds=1)) is TokenState.VALID


def test_expired_without_refresh_token():
    assert classify_token(make_token(expires_in=-MINUTES, refresh_token="")) is TokenState.EXPIRED_NO_REFRESH
    assert classify_token(None) is TokenState.EXPIRED_NO_REFRESH


# ========================================
# acquire_valid_token
# ========================================


async def test_valid_token_is_reused_without_network(remote):
    endpoint = TokenEndpoint()
    save = MagicMock()
    cached = make_token(expires_in=10 * MINUTES)

    with patch("team_oauth.token_manager.reauthenticate", new=AsyncMock()) as reauth:
        async with mock_client(endpoint) as client:
            token = await acquire_valid_token(remote, cached, save=save, client=client)

    assert token is cached
    assert endpoint.calls == 0
    reauth.assert_not_called()
    save.assert_not_called()


async def test_expired_token_is_refreshed_once(remote):
    endpoint = TokenEndpoint()
    save = MagicMock()
    cached = make_token(expires_in=-MINUTES, refresh_token="refresh-old")

    with patch("team_oauth.token_manager.reauthenticate", new=AsyncMock()) as reauth:
        async with mock_client(endpoint) as client:
            token = await acquire_valid_token(remote, cached, save=save, client=client)

    assert endpoint.calls == 1
    assert endpoint.form()["grant_type"] == "refresh_token"
    assert endpoint.form()["refresh_token"] == "refresh-old"
    assert token.access_token == "access-new"
    reauth.assert_not_called()
    save.assert_called_once_with(token)


async def test_failed_refresh_falls_back_to_one_login(remote, caplog):
    caplog.set_level(logging.WARNING, logger="team_oauth.token_manager")
    endpoint = TokenEndpoint([httpx.Response(400, content=b'{"error":"invalid_grant"}')])
    save = MagicMock()
    login_token = fresh_login_token()
    cached = make_token(expires_in=-MINUTES)

    with patch("team_oauth.token_manager.reauthenticate", new=AsyncMock(return_value=login_token)) as reauth:
        async with mock_client(endpoint) as client:
            token = await acquire_valid_token(remote, cached, save=save, client=client)

    assert token is login_token
    assert endpoint.calls == 1
    reauth.assert_awaited_once()
    save.assert_called_once_with(login_token)
    assert "Failed to refresh token" in caplog.text


async def test_unreachable_refresh_falls_back_to_login(remote):
    def refuse(request):
        raise httpx.ConnectError("connection refused", request=request)

    login_token = fresh_login_token()

    with patch("team_oauth.token_manager.reauthenticate", new=AsyncMock(return_value=login_token)) as reauth:
        async with mock_client(refuse) as client:
            token = await acquire_valid_token(remote, make_token(expires_in=-MINUTES), save=MagicMock(), client=client)

    assert token is login_token
    reauth.assert_awaited_once()


async def test_no_refresh_token_goes_straight_to_login(remote):
    endpoint = TokenEndpoint()
    login_token = fresh_login_token()

    with patch("team_oauth.token_manager.reauthenticate", new=AsyncMock(return_value=login_token)) as reauth:
        async with mock_client(endpoint) as client:
            token = await acquire_valid_token(
                remote,
                make_token(expires_in=-MINUTES, refresh_token=""),
                use_device_code=True,
                save=MagicMock(),
                client=client,
            )

    assert token is login_token
    assert endpoint.calls == 0
    assert reauth.await_args.args == (remote, True)


async def test_missing_token_goes_to_login(remote):
    login_token = fresh_login_token()
    save = MagicMock()

    with patch("team_oauth.token_manager.reauthenticate", new=AsyncMock(return_value=login_token)):
        token = await acquire_valid_token(remote, None, save=save)

    assert token is login_token
    save.assert_called_once_with(login_token)


async def test_login_failure_propagates_without_save(remote):
    save = MagicMock()

    with patch(
        "team_oauth.token_manager.reauthenticate",
        new=AsyncMock(side_effect=AuthorizationTimeoutError(300)),
    ):
        with pytest.raises(AuthorizationTimeoutError):
            await acquire_valid_token(remote, None, save=save)

    save.assert_not_called()


async def test_save_failure_propagates(remote):
    save = MagicMock(side_effect=PermissionError("read-only"))

    async with mock_client(TokenEndpoint()) as client:
        with pytest.raises(PermissionError):
            await acquire_valid_token(remote, make_token(expires_in=-MINUTES), save=save, client=client)


async def test_missing_domain_is_rejected_before_anything():
    save = MagicMock()

    with patch("team_oauth.token_manager.reauthenticate", new=AsyncMock()) as reauth:
        with pytest.raises(ConfigInvalidError):
            await acquire_valid_token(RemoteConfig(oauth_domain="", user_pool_client_id="c"), None, save=save)

    reauth.assert_not_called()
    save.assert_not_called()


# ========================================
# reauthenticate
# ========================================


async def test_reauthenticate_dispatches_on_flow(remote):
    from team_oauth.token_manager import reauthenticate

    login_token = fresh_login_token()
    prompt = MagicMock(return_value="DEV-1")

    with patch("team_oauth.token_manager.fetch_token", new=AsyncMock(return_value=login_token)) as browser, \
            patch("team_oauth.token_manager.fetch_token_via_device_code", new=AsyncMock(return_value=login_token)) as device:
        await reauthenticate(remote, False, no_browser=True)
        await reauthenticate(remote, True, prompt_device_code=prompt)

    browser.assert_awaited_once()
    assert browser.await_args.kwargs["no_browser"] is True
    device.assert_awaited_once()
    assert device.await_args.args == (remote, prompt)


async def test_device_flow_needs_a_prompt(remote):
    from team_oauth.token_manager import reauthenticate

    with pytest.raises(ValueError):
        await reauthenticate(remote, True)


# ========================================
# TokenManager
# ========================================


@pytest.fixture
def store(tmp_path):
    return ConfigStore(tmp_path / "team-cli" / "config.json")


async def test_manager_persists_refreshed_token(store, remote):
    store.save(CliConfig(server_config=remote, auth_token=make_token(expires_in=-MINUTES)))

    async with mock_client(TokenEndpoint([token_response(access_token="access-refreshed")])) as client:
        config = await TokenManager(store, client=client).ensure_authenticated()

    assert config.auth_token.access_token == "access-refreshed"
    assert store.load().auth_token.access_token == "access-refreshed"
    assert store.load().server_config == remote


async def test_manager_returns_valid_config_untouched(store, remote):
    cached = make_token(expires_in=60 * MINUTES)
    store.save(CliConfig(server_config=remote, auth_token=cached, no_browser=True))

    config = await TokenManager(store).ensure_authenticated()

    assert config.auth_token == cached
    assert config.no_browser is True


async def test_manager_passes_stored_flow_options(store, remote):
    store.save(CliConfig(server_config=remote, use_device_code=True, no_browser=True))
    prompt = MagicMock(return_value="DEV-1")
    login_token = fresh_login_token()

    with patch("team_oauth.token_manager.reauthenticate", new=AsyncMock(return_value=login_token)) as reauth:
        config = await TokenManager(store, prompt_device_code=prompt).ensure_authenticated()

    assert config.auth_token == login_token
    assert reauth.await_args.args == (remote, True)
    assert reauth.await_args.kwargs["no_browser"] is True
    assert reauth.await_args.kwargs["prompt_device_code"] is prompt


async def test_manager_needs_server_config(store):
    with pytest.raises(ConfigInvalidError, match="configure"):
        await TokenManager(store).ensure_authenticated()


async def test_manager_login_replaces_valid_token(store, remote):
    store.save(CliConfig(server_config=remote, auth_token=make_token(expires_in=60 * MINUTES)))
    login_token = fresh_login_token()

    with patch("team_oauth.token_manager.reauthenticate", new=AsyncMock(return_value=login_token)) as reauth:
        config = await TokenManager(store).login()

    reauth.assert_awaited_once()
    assert config.auth_token == login_token
    assert store.load().auth_token.refresh_token == "refresh-login"


def test_manager_identity_and_logout(store, remote):
    store.save(CliConfig(server_config=remote, auth_token=make_token(claims={"userId": "u-7"})))
    manager = TokenManager(store)

    assert manager.identity_claims().user_id == "u-7"
    assert manager.logout() is True
    assert manager.identity_claims() is None
    assert manager.logout() is False
    assert store.load().server_config == remote
