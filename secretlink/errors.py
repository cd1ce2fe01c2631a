class SecretLinkError(Exception):
    """Base class for all secretlink errors."""


class TokenError(SecretLinkError):
    """The token could not be decrypted (wrong key, tampered or truncated)."""


class StorageError(SecretLinkError):
    """Base class for storage backend failures."""


class UnknownDiskError(StorageError):
    """The requested disk is not configured."""


class PathOutsideDiskError(StorageError):
    """The requested path resolves outside of the disk root."""


class RedemptionError(SecretLinkError):
    """Redemption stopped with an HTTP status.

    ``reason`` is for logs only and is never sent to the client.
    """

    def __init__(self, status_code: int, reason: str = ""):
        super().__init__(f"{status_code}: {reason}" if reason else str(status_code))
        self.status_code = status_code
        self.reason = reason
