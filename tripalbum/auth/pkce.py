"""PKCE (RFC 7636, S256) verifier/challenge and CSRF state generation.

Randomness comes from :mod:`secrets`, which reads the OS CSPRNG and raises
instead of falling back to a weaker generator.
"""

import base64
import hashlib
import secrets

VERIFIER_BYTES = 32
STATE_BYTES = 16


def base64url_encode(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")


def generate_verifier() -> str:
    """43-character URL-safe code verifier (256 bits of entropy)."""
    return base64url_encode(secrets.token_bytes(VERIFIER_BYTES))


def derive_challenge(verifier: str) -> str:
    digest = hashlib.sha256(verifier.encode("utf-8")).digest()
    return base64url_encode(digest)


def generate_state() -> str:
    return base64url_encode(secrets.token_bytes(STATE_BYTES))


def generate_pkce() -> tuple[str, str]:
    """Return ``(verifier, challenge)`` for one login attempt."""
    verifier = generate_verifier()
    return verifier, derive_challenge(verifier)
