"""PKCE (Proof Key for Code Exchange) and state generation"""

import base64
import hashlib
import secrets
import string

from .models import PKCEPair

RANDOM_ALPHABET = string.digits + string.ascii_lowercase + string.ascii_uppercase


def _b64url(data: bytes) -> str:
    """Base64url encoding without padding"""
    return base64.urlsafe_b64encode(data).decode("ascii").rstrip("=")


def random_string(length: int) -> str:
    """
    Random alphanumeric string.

    Args:
        length: Number of characters

    Returns:
        str: `length` characters drawn uniformly from [0-9a-zA-Z]
    """
    return "".join(secrets.choice(RANDOM_ALPHABET) for _ in range(length))


def create_state() -> str:
    """
    Generate random state parameter for the authorization request.

    Returns:
        str: 32 character random state string
    """
    return random_string(32)


def challenge_for(verifier: str) -> str:
    """SHA-256 challenge of a verifier, base64url encoded without padding"""
    return _b64url(hashlib.sha256(verifier.encode("ascii")).digest())


def generate_challenge() -> PKCEPair:
    """
    Generate PKCE code verifier and challenge.

    The verifier is the base64url encoding of 32 random characters and is
    what the token endpoint receives; the challenge is the S256 hash of
    that encoded verifier. The identity provider is configured for this
    exact encode-then-hash order.

    Returns:
        PKCEPair: Tuple of (verifier, challenge)
    """
    verifier = _b64url(random_string(32).encode("ascii"))
    return PKCEPair(verifier=verifier, challenge=challenge_for(verifier))
