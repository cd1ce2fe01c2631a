from .payload import StoragePayload, UrlPayload, SecretPayload, dump_payload, parse_payload
from .settings import SecretSettings
from .links import IssueRejection, IssuedLink, RedemptionRequest

__all__ = [
    # Payload
    "StoragePayload",
    "UrlPayload",
    "SecretPayload",
    "dump_payload",
    "parse_payload",
    # Settings
    "SecretSettings",
    # Links
    "IssueRejection",
    "IssuedLink",
    "RedemptionRequest",
]
