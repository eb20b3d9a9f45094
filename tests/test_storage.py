"""Tests for the config file store"""

import datetime
import json
import os
import platform

import pytest

from team_oauth import AuthToken, CliConfig, ConfigFileError, ConfigStore, RemoteConfig
from tests.conftest import make_token


@pytest.fixture
def config_file(tmp_path):
    return tmp_path / "team-cli" / "config.json"


def test_missing_file_is_empty_config(config_file):
    config = ConfigStore(config_file).load()

    assert config == CliConfig()
    assert config.server_config is None
    assert config.auth_token is None


def test_round_trip(config_file, remote):
    store = ConfigStore(config_file)
    config = CliConfig(server_config=remote, auth_token=make_token(), use_device_code=True, no_browser=True)

    store.save(config)

    assert store.load() == config


def test_file_layout(config_file, remote):
    token = make_token()
    ConfigStore(config_file).save(CliConfig(server_config=remote, auth_token=token))

    data = json.loads(config_file.read_text())
    assert set(data) == {"server_config", "auth_token", "use_device_code", "no_browser"}
    assert data["server_config"]["oauth_domain"] == "auth.example.com"
    assert data["server_config"]["user_pool_client_id"] == "client-123"
    assert data["auth_token"]["refresh_token"] == "refresh-old"
    assert data["auth_token"]["expires_at"] == token.expires_at.isoformat()


@pytest.mark.skipif(platform.system() == "Windows", reason="POSIX permissions")
def test_file_is_owner_only(config_file, remote):
    ConfigStore(config_file).save(CliConfig(server_config=remote))

    assert os.stat(config_file).st_mode & 0o777 == 0o600
    assert os.stat(config_file.parent).st_mode & 0o777 == 0o700


def test_corrupt_file_is_config_file_error(config_file):
    config_file.parent.mkdir(parents=True)
    config_file.write_text("{not json")

    with pytest.raises(ConfigFileError, match="failed to parse config file"):
        ConfigStore(config_file).load()


def test_token_without_expiry_is_config_file_error(config_file):
    config_file.parent.mkdir(parents=True)
    config_file.write_text(json.dumps({"auth_token": {"access_token": "a"}}))

    with pytest.raises(ConfigFileError):
        ConfigStore(config_file).load()


def test_zulu_and_naive_timestamps_are_utc():
    zulu = AuthToken.from_dict({"expires_at": "2024-05-01T12:00:00Z"})
    naive = AuthToken.from_dict({"expires_at": "2024-05-01T12:00:00"})

    expected = datetime.datetime(2024, 5, 1, 12, 0, tzinfo=datetime.timezone.utc)
    assert zulu.expires_at == expected
    assert naive.expires_at == expected
    assert zulu.token_type == "Bearer"
    assert zulu.refresh_token == ""


def test_partial_server_config_loads_with_defaults(config_file):
    config_file.parent.mkdir(parents=True)
    config_file.write_text(json.dumps({"server_config": {"oauth_domain": "auth.example.com"}}))

    remote = ConfigStore(config_file).load().server_config

    assert remote == RemoteConfig(oauth_domain="auth.example.com", user_pool_client_id="")
    assert remote.oauth_response_type == "code"
