"""
ID token claim decoding
"""
import base64
import binascii
import json
import re
from typing import Any, Dict

from .exceptions import DecodeError, EncodingError, MalformedTokenError
from .models import IdentityClaims

_BASE64URL_RE = re.compile(r"[A-Za-z0-9_-]*")


def decode_claims(token: str) -> Dict[str, Any]:
    """
    Decode the payload of a compact JWT without verification.

    Note: This only decodes the payload, it does not verify the signature
    or the expiry. The result must not be treated as a verified identity.

    Args:
        token: Compact JWT (header.payload.signature)

    Returns:
        Decoded payload as dictionary

    Raises:
        MalformedTokenError: Token does not have exactly 3 parts
        EncodingError: Payload is not unpadded base64url
        DecodeError: Payload is not a JSON object
    """
    parts = token.split(".")
    if len(parts) != 3:
        raise MalformedTokenError(f"invalid token format: expected 3 parts, got {len(parts)}")

    payload = parts[1]

    # JWT uses base64url without padding; urlsafe_b64decode silently
    # drops unknown characters so check the alphabet first
    if not _BASE64URL_RE.fullmatch(payload):
        raise EncodingError("failed to decode: invalid base64url characters in payload")

    try:
        raw = base64.urlsafe_b64decode(payload + "=" * (-len(payload) % 4))
    except (binascii.Error, ValueError) as e:
        raise EncodingError(f"failed to decode: {e}") from e

    try:
        claims = json.loads(raw.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise DecodeError(f"failed to unmarshal: {e}") from e

    if not isinstance(claims, dict):
        raise DecodeError(f"failed to unmarshal: expected an object, got {type(claims).__name__}")

    return claims


def parse_identity_claims(token: str) -> IdentityClaims:
    """
    Decode the identity claims of an ID token.

    Args:
        token: ID token from an AuthToken

    Returns:
        IdentityClaims with the user, groups and (provider dependent) email
    """
    claims = decode_claims(token)
    return IdentityClaims(
        user_id=claims.get("userId"),
        group_ids=claims.get("groupIds"),
        email=claims.get("email"),
        raw=claims,
    )
