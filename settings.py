from pathlib import Path
from config.loader import get_config_loader

# Get the config loader instance
config = get_config_loader()

# Logging
LOG_LEVEL = config.get("TEAM_CLI_LOG_LEVEL", "warning")

# Local config file holding the server config and the cached token
CONFIG_FILE = config.get_path(
    "TEAM_CLI_CONFIG_FILE",
    str(Path.home() / ".config" / "team-cli" / "config.json"),
)

# Loopback callback listener (hardcoded port - the identity provider only
# accepts this exact redirect URI)
CALLBACK_HOST = config.get("TEAM_CLI_CALLBACK_HOST", "localhost")
CALLBACK_PORT = 43672
LOCALHOST_REDIRECT = f"http://localhost:{CALLBACK_PORT}/"

# Timeouts (seconds)
# Token endpoint round trip
TOKEN_REQUEST_TIMEOUT = config.get("TEAM_CLI_TOKEN_REQUEST_TIMEOUT", 30.0)
# How long the user has to finish the browser login
AUTHORIZATION_TIMEOUT = config.get("TEAM_CLI_AUTHORIZATION_TIMEOUT", 300.0)
# Grace period for in-flight connections when the listener is torn down
SHUTDOWN_GRACE_PERIOD = 30.0

# A cached token is reused only while it has more than this left
TOKEN_EXPIRY_MARGIN = 5 * 60

# Default OAuth values used by `team-cli configure` when not given
DEFAULT_RESPONSE_TYPE = "code"
DEFAULT_SCOPES = config.get_list(
    "TEAM_CLI_DEFAULT_SCOPES",
    ["openid", "email", "profile", "aws.cognito.signin.user.admin"],
)
