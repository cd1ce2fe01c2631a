from enum import Enum

from pydantic import BaseModel


class IssueRejection(str, Enum):
    """Why a target was refused at issuance."""
    BLANK_TARGET = "blank_target"
    NO_APP_HOST = "no_app_host"
    UNPARSABLE_HOST = "unparsable_host"
    FOREIGN_HOST = "foreign_host"
    PATH_TRAVERSAL = "path_traversal"
    ENCRYPTION_FAILED = "encryption_failed"


class IssuedLink(BaseModel):
    """Result of an issuance attempt."""
    url: str | None = None
    reason: IssueRejection | None = None
    mode: str | None = None
    expires_at: int | None = None

    @property
    def ok(self) -> bool:
        return self.url is not None

    @classmethod
    def rejected(cls, reason: IssueRejection) -> "IssuedLink":
        return cls(reason=reason)


class RedemptionRequest(BaseModel):
    """The parts of an incoming request the redeemer needs."""
    url: str  # full URL as received, query included
    token: str | None = None
    host: str  # request host, no port
    origin: str  # scheme://host[:port]
