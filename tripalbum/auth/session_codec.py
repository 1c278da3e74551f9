"""Authenticated encryption of the session record for cookie storage.

Wire format: ``base64url(nonce || AES-256-GCM ciphertext+tag)`` without
padding. A fresh 12-byte nonce is drawn for every encryption.
"""

import base64
import secrets

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.hkdf import HKDF

from tripalbum.auth.exceptions import SessionDecryptError
from tripalbum.schemas.auth import SessionData

KEY_BYTES = 32
NONCE_BYTES = 12
TAG_BYTES = 16
HKDF_INFO = b"tripalbum-session-v1"


def derive_key(secret: str, method: str = "pad") -> bytes:
    """Turn the operator secret into a 256-bit AES key.

    ``pad`` right-pads the UTF-8 secret with ``"0"`` and truncates to 32 bytes,
    the same key older deployments derived. Their cookies still decrypt, but
    their payload field names differ so they read as logged out. ``hkdf`` runs the
    secret through HKDF-SHA256 and should be preferred for new deployments.
    """
    raw = secret.encode("utf-8")
    if method == "hkdf":
        return HKDF(
            algorithm=hashes.SHA256(),
            length=KEY_BYTES,
            salt=None,
            info=HKDF_INFO,
        ).derive(raw)
    if method != "pad":
        raise ValueError(f"Unknown session key derivation: {method}")
    return raw.ljust(KEY_BYTES, b"0")[:KEY_BYTES]


def _b64encode(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")


def _b64decode(value: str) -> bytes:
    padded = value + "=" * (-len(value) % 4)
    return base64.urlsafe_b64decode(padded.encode("ascii"))


class SessionCodec:
    def __init__(self, secret: str, key_derivation: str = "pad"):
        self._aead = AESGCM(derive_key(secret, key_derivation))

    def encrypt(self, session: SessionData) -> str:
        nonce = secrets.token_bytes(NONCE_BYTES)
        plaintext = session.model_dump_json().encode("utf-8")
        ciphertext = self._aead.encrypt(nonce, plaintext, None)
        return _b64encode(nonce + ciphertext)

    def decrypt(self, token: str) -> SessionData:
        try:
            combined = _b64decode(token)
        except (ValueError, UnicodeEncodeError):
            raise SessionDecryptError("Session cookie is not valid base64") from None

        if len(combined) < NONCE_BYTES + TAG_BYTES:
            raise SessionDecryptError("Session cookie is truncated")

        nonce, ciphertext = combined[:NONCE_BYTES], combined[NONCE_BYTES:]
        try:
            plaintext = self._aead.decrypt(nonce, ciphertext, None)
        except InvalidTag:
            raise SessionDecryptError("Session cookie failed authentication") from None

        try:
            return SessionData.model_validate_json(plaintext)
        except ValueError:
            raise SessionDecryptError("Session cookie payload is malformed") from None


def encrypt_session(session: SessionData, secret: str, key_derivation: str = "pad") -> str:
    return SessionCodec(secret, key_derivation).encrypt(session)


def decrypt_session(token: str, secret: str, key_derivation: str = "pad") -> SessionData:
    return SessionCodec(secret, key_derivation).decrypt(token)
