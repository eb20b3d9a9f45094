"""
OAuth constants for the TEAM identity provider (Cognito hosted UI)
"""

# Endpoint paths, relative to https://{oauth_domain}
AUTHORIZE_PATH = "/oauth2/authorize"
TOKEN_PATH = "/oauth2/token"

# Grant types
GRANT_AUTHORIZATION_CODE = "authorization_code"
GRANT_REFRESH_TOKEN = "refresh_token"
GRANT_DEVICE_CODE = "urn:ietf:params:oauth:grant-type:device_code"

# The only response type that carries a PKCE challenge
RESPONSE_TYPE_CODE = "code"
CODE_CHALLENGE_METHOD = "S256"

DEFAULT_TOKEN_TYPE = "Bearer"

CALLBACK_PAGE = """<html>
<head>
</head>
<body>
You can close this window now.

<script>
  setTimeout(function() {
      window.close()
  }, 1000);
</script>
</body>
</html>
"""
