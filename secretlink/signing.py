"""
Expiring signed URLs.

``sign`` appends ``expires`` (unix timestamp) and ``signature`` to the query
string. The signature is an HMAC-SHA256 over the complete URL, query
included, as it stands before ``signature`` is appended. Any change to the
scheme, host, path or a query byte invalidates it.
"""

import hashlib
import hmac
import time
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from .crypto import derive_key

EXPIRES_PARAM = "expires"
SIGNATURE_PARAM = "signature"


class UrlSigner:
    def __init__(self, app_key: str):
        self._key = derive_key(app_key, "secretlink.sign")

    def _digest(self, url: str) -> str:
        return hmac.new(self._key, url.encode("utf-8"), hashlib.sha256).hexdigest()

    @staticmethod
    def _normalize(scheme: str, netloc: str, path: str, query: str) -> str:
        # scheme and host are case-insensitive
        return urlunsplit((scheme.lower(), netloc.lower(), path, query, ""))

    def sign(self, base_url: str, expires_at: int, params: dict) -> str:
        """Return *base_url* with *params*, ``expires`` and ``signature`` in the query."""
        query = [(k, str(v)) for k, v in params.items()]
        query.append((EXPIRES_PARAM, str(int(expires_at))))
        parts = urlsplit(base_url)
        unsigned = self._normalize(parts.scheme, parts.netloc, parts.path, urlencode(query))
        return f"{unsigned}&{urlencode({SIGNATURE_PARAM: self._digest(unsigned)})}"

    def verify(self, url: str, now: float | None = None) -> bool:
        """Check the signature and expiry of *url*."""
        try:
            parts = urlsplit(url)
        except ValueError:
            return False

        pairs = parse_qsl(parts.query, keep_blank_values=True)
        signatures = [v for k, v in pairs if k == SIGNATURE_PARAM]
        if len(signatures) != 1:
            return False

        remaining = [(k, v) for k, v in pairs if k != SIGNATURE_PARAM]
        unsigned = self._normalize(parts.scheme, parts.netloc, parts.path, urlencode(remaining))
        if not hmac.compare_digest(self._digest(unsigned).encode(), signatures[0].encode("utf-8")):
            return False

        expires = expires_of(url)
        if expires is None:
            return False
        now = time.time() if now is None else now
        return now <= expires


def expires_of(url: str) -> int | None:
    """Return the ``expires`` timestamp carried by *url*, if any."""
    try:
        pairs = parse_qsl(urlsplit(url).query, keep_blank_values=True)
    except ValueError:
        return None
    for key, value in pairs:
        if key == EXPIRES_PARAM:
            try:
                return int(value)
            except ValueError:
                return None
    return None
