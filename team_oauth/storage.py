"""Config file storage for team-cli"""

import json
import logging
import os
import platform
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Union

from settings import CONFIG_FILE

from .exceptions import ConfigFileError
from .models import AuthToken, RemoteConfig


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CliConfig:
    """Everything team-cli keeps between runs

    Attributes:
        server_config: TEAM server to authenticate against
        auth_token: Cached tokens, None before the first login
        use_device_code: Log in with the device code flow
        no_browser: Never open a browser automatically
    """
    server_config: Optional[RemoteConfig] = None
    auth_token: Optional[AuthToken] = None
    use_device_code: bool = False
    no_browser: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "server_config": self.server_config.to_dict() if self.server_config else None,
            "auth_token": self.auth_token.to_dict() if self.auth_token else None,
            "use_device_code": self.use_device_code,
            "no_browser": self.no_browser,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CliConfig":
        server_config = data.get("server_config")
        auth_token = data.get("auth_token")
        return cls(
            server_config=RemoteConfig.from_dict(server_config) if server_config else None,
            auth_token=AuthToken.from_dict(auth_token) if auth_token else None,
            use_device_code=bool(data.get("use_device_code", False)),
            no_browser=bool(data.get("no_browser", False)),
        )


class ConfigStore:
    """Reads and writes the team-cli config file (owner-only permissions)"""

    def __init__(self, config_file: Optional[Union[str, Path]] = None):
        """Initialize config storage

        Args:
            config_file: Path to config file (default: ~/.config/team-cli/config.json)
        """
        self.config_file = Path(config_file if config_file else CONFIG_FILE)

    def _ensure_secure_directory(self) -> None:
        """Create parent directory with secure permissions"""
        parent_dir = self.config_file.parent
        if not parent_dir.exists():
            parent_dir.mkdir(parents=True, exist_ok=True)
            # Set directory permissions to 700 on Unix-like systems
            if platform.system() != "Windows":
                os.chmod(parent_dir, 0o700)

    def load(self) -> CliConfig:
        """Load the config, an empty config if the file does not exist

        Raises:
            ConfigFileError: File exists but is not a valid config
            OSError: File exists but cannot be read
        """
        if not self.config_file.exists():
            logger.debug(f"No config file at {self.config_file}")
            return CliConfig()

        try:
            data = json.loads(self.config_file.read_text())
            return CliConfig.from_dict(data)
        except (json.JSONDecodeError, KeyError, TypeError, ValueError, AttributeError) as e:
            raise ConfigFileError(f"failed to parse config file {self.config_file}: {e}") from e

    def save(self, config: CliConfig) -> None:
        """Write the config file

        Raises:
            OSError: Directory or file cannot be written
        """
        self._ensure_secure_directory()

        self.config_file.write_text(json.dumps(config.to_dict(), indent=4))

        # Set file permissions to 600 on Unix-like systems
        if platform.system() != "Windows":
            os.chmod(self.config_file, 0o600)

        logger.debug(f"Saved config to {self.config_file}")
