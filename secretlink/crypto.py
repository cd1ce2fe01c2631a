"""
Authenticated encryption of link payloads.

Tokens are Fernet tokens (AES-128-CBC with an HMAC-SHA256 tag) keyed from
the application key. Fernet output is URL-safe base64, so a token can be
carried as a query parameter as-is.
"""

import base64
import binascii
import hashlib
import hmac

from cryptography.fernet import Fernet, InvalidToken

from .errors import TokenError


def app_key_bytes(app_key: str) -> bytes:
    """Return the raw key material. ``base64:`` prefixed keys are decoded."""
    if app_key.startswith("base64:"):
        try:
            return base64.b64decode(app_key[len("base64:"):], validate=True)
        except binascii.Error as e:
            raise ValueError("APP_KEY has an invalid base64 value") from e
    return app_key.encode("utf-8")


def derive_key(app_key: str, purpose: str) -> bytes:
    """Derive a 32-byte sub-key so encryption and signing never share a key."""
    return hmac.new(app_key_bytes(app_key), purpose.encode("utf-8"), hashlib.sha256).digest()


class TokenCipher:
    def __init__(self, app_key: str):
        self._fernet = Fernet(base64.urlsafe_b64encode(derive_key(app_key, "secretlink.encrypt")))

    def encrypt(self, plaintext: str) -> str:
        return self._fernet.encrypt(plaintext.encode("utf-8")).decode("ascii")

    def decrypt(self, token: str) -> str:
        """Decrypt *token*. Raises ``TokenError`` on any failure."""
        try:
            return self._fernet.decrypt(token.encode("ascii")).decode("utf-8")
        except (InvalidToken, UnicodeError) as e:
            raise TokenError("Token could not be decrypted") from e
