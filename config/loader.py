"""Configuration loader for team-cli

Settings come from, in order of precedence:
1. Environment variables
2. A .env file (the working directory, then ~/.config/team-cli/.env)
3. Defaults in settings.py
"""

import logging
import os
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Sequence
from dotenv import load_dotenv

logger = logging.getLogger(__name__)

USER_ENV_FILE = Path.home() / ".config" / "team-cli" / ".env"

_TRUE_VALUES = ("true", "1", "yes", "on")


class ConfigLoader:
    """Typed lookups of TEAM_CLI_* settings"""

    def __init__(self, env_path: Optional[str] = None):
        """Initialize the config loader

        Args:
            env_path: Explicit .env file. When omitted, `.env` in the working
                     directory and the per-user file are tried; values from the
                     first one win because python-dotenv never overrides.
        """
        if env_path:
            self.env_paths: Sequence[Path] = (Path(env_path),)
        else:
            self.env_paths = (Path(".env"), USER_ENV_FILE)
        self.loaded_from: List[Path] = []
        self._load_env_files()

    def _load_env_files(self) -> None:
        for path in self.env_paths:
            if path.is_file():
                load_dotenv(dotenv_path=path, override=False)
                self.loaded_from.append(path)
                logger.debug(f"Loaded environment variables from {path}")
        if not self.loaded_from:
            logger.debug("No .env file found, using environment variables and defaults only")

    def get(self, env_var: str, default: Any) -> Any:
        """Look up `env_var`, converted to the type of `default`

        Unparseable numbers fall back to the default with a warning.
        """
        raw = os.getenv(env_var)
        if raw is None:
            return default

        # bool before int: bool is a subclass of int
        for kind in (bool, int, float, list):
            if isinstance(default, kind):
                return self._coerce(env_var, raw, kind, default)
        return raw

    def _coerce(self, env_var: str, raw: str, kind: type, default: Any) -> Any:
        converters: Dict[type, Callable[[str], Any]] = {
            bool: lambda value: value.strip().lower() in _TRUE_VALUES,
            int: int,
            float: float,
            list: str.split,
        }
        try:
            return converters[kind](raw)
        except ValueError:
            logger.warning(f"Failed to parse {env_var}={raw!r} as {kind.__name__}, using default: {default}")
            return default

    def get_list(self, env_var: str, default: List[str]) -> List[str]:
        """Whitespace separated list, e.g. OAuth scopes"""
        return list(self.get(env_var, list(default)))

    def get_path(self, env_var: str, default: str) -> str:
        """Path setting with `~` expanded"""
        return str(Path(self.get(env_var, default)).expanduser())


_config_loader: Optional[ConfigLoader] = None


def get_config_loader() -> ConfigLoader:
    """Shared ConfigLoader, created on first use"""
    global _config_loader
    if _config_loader is None:
        _config_loader = ConfigLoader()
    return _config_loader
