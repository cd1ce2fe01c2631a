"""
Link issuance.

Turns a target into a temporary signed link:

    storage path ("media/report.pdf")      -> storage mode, streamed download
    internal URL ("https://app/x", "/x")   -> url mode, proxied or redirected

The payload is encrypted into an opaque token and carried as the ``t`` query
parameter of a signed URL that expires after the requested number of minutes.
"""

import hmac
import logging
import time

from . import utils
from .crypto import TokenCipher
from .models import IssuedLink, IssueRejection, SecretSettings, StoragePayload, UrlPayload, dump_payload
from .signing import UrlSigner

logger = logging.getLogger(__name__)

# Used when neither the caller nor the settings give a positive lifetime
FALLBACK_EXPIRY_MINUTES = 60
TOKEN_PARAM = "t"


class LinkIssuer:
    def __init__(self, settings: SecretSettings, cipher: TokenCipher, signer: UrlSigner, default_disk: str):
        self.settings = settings
        self.cipher = cipher
        self.signer = signer
        # storage subsystem default, used when settings.default_disk is empty
        self.default_disk = default_disk

    @property
    def endpoint(self) -> str:
        return self.settings.app_url.rstrip("/") + self.settings.route_path

    def resolve_minutes(self, minutes) -> int:
        if minutes is not None:
            try:
                minutes = int(minutes)
            except (TypeError, ValueError, OverflowError):
                minutes = 0
            if minutes > 0:
                return minutes
        if self.settings.default_expiry > 0:
            return self.settings.default_expiry
        return FALLBACK_EXPIRY_MINUTES

    def _check_host(self, target: str) -> IssueRejection | None:
        app_host = utils.url_host(self.settings.app_url) if self.settings.app_url else None
        if not app_host:
            return IssueRejection.NO_APP_HOST
        host = utils.url_host(target)
        if not host:
            return IssueRejection.UNPARSABLE_HOST
        if not hmac.compare_digest(app_host.encode("utf-8"), host.encode("utf-8")):
            return IssueRejection.FOREIGN_HOST
        return None

    def issue(self, target, minutes=None, delete=None, disk=None) -> IssuedLink:
        """Build a signed link for *target*.

        Never raises; a refused target comes back as ``IssuedLink.rejected``.
        """
        target = str(target if target is not None else "").strip()
        if not target:
            return IssuedLink.rejected(IssueRejection.BLANK_TARGET)

        minutes = self.resolve_minutes(minutes)

        if utils.is_absolute_url(target) or target.startswith("/"):
            # Relative app paths can't leave this host, only absolute URLs are checked
            if utils.is_absolute_url(target):
                rejection = self._check_host(target)
                if rejection is not None:
                    logger.debug("Refused url target: %s", rejection.value)
                    return IssuedLink.rejected(rejection)
            payload = UrlPayload(url=target)
        else:
            # Substring match, "a..b" is refused too
            if ".." in target:
                logger.debug("Refused storage target: path traversal")
                return IssuedLink.rejected(IssueRejection.PATH_TRAVERSAL)
            disk = disk or self.settings.default_disk or self.default_disk
            if delete is None:
                delete = self.settings.delete_after_download
            payload = StoragePayload(path=target, disk=str(disk), delete_after_download=bool(delete))

        try:
            token = self.cipher.encrypt(dump_payload(payload))
        except Exception:
            logger.exception("Failed to encrypt secret link payload")
            return IssuedLink.rejected(IssueRejection.ENCRYPTION_FAILED)

        expires_at = int(time.time()) + minutes * 60
        url = self.signer.sign(self.endpoint, expires_at, {TOKEN_PARAM: token})
        logger.debug("Issued %s link valid for %s", payload.mode, utils.format_time(minutes))
        return IssuedLink(url=url, mode=payload.mode, expires_at=expires_at)

    def make_secret_link(self, target, minutes=None, delete=None, disk=None) -> str:
        """Template-facing issuance: the link URL, or "" when refused."""
        return self.issue(target, minutes, delete, disk).url or ""
