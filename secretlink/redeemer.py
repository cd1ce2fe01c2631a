"""
Link redemption.

Validation runs in a fixed order and stops at the first failure:

    signature / expiry         -> 403
    missing token              -> 404
    decrypt / parse            -> 404 (same as "not found", no token oracle)
    url mode:   host re-check  -> 403, upstream error -> upstream status or 404
    storage mode: path re-check -> 403, missing file  -> 404

Nothing from issuance is trusted: host and path checks are repeated here
against the live request.

A successful redemption is returned as a ``Redemption`` value holding a lazy
chunk producer. The HTTP adapter pumps it to the client; the producer closes
its file or upstream connection when exhausted or closed early.
"""

import hmac
import logging
import time
from dataclasses import dataclass, field
from functools import partial
from pathlib import PurePosixPath
from typing import AsyncIterator, Awaitable, Callable, Union

import httpx
from fastapi.concurrency import run_in_threadpool

from . import utils
from .crypto import TokenCipher
from .database import ClaimStore
from .errors import PathOutsideDiskError, RedemptionError, TokenError, UnknownDiskError
from .models import RedemptionRequest, SecretSettings, StoragePayload, UrlPayload, parse_payload
from .signing import UrlSigner, expires_of
from .storage import StorageBackend

logger = logging.getLogger(__name__)

DEFAULT_MEDIA_TYPE = "application/octet-stream"


@dataclass
class FileDownload:
    filename: str
    media_type: str
    body: AsyncIterator[bytes] = field(repr=False)


@dataclass
class ProxiedBody:
    media_type: str
    body: AsyncIterator[bytes] = field(repr=False)


@dataclass
class Redirect:
    location: str


Redemption = Union[FileDownload, ProxiedBody, Redirect]


class ClaimedBody:
    """Chunk producer holding a deletion claim.

    A generator that never started skips its ``finally`` on close, so a body
    closed before its first chunk releases the claim here instead.
    """

    def __init__(self, chunks: AsyncIterator[bytes], release: Callable[[], Awaitable[None]]):
        self._chunks = chunks
        self._release = release
        self._started = False

    def __aiter__(self):
        return self

    async def __anext__(self) -> bytes:
        self._started = True
        return await self._chunks.__anext__()

    async def aclose(self):
        if not self._started:
            self._started = True
            await self._release()
            logger.info("Download closed before it started, claim released")
        await self._chunks.aclose()


def _fail(status_code: int, reason: str) -> RedemptionError:
    log = logger.warning if status_code == 403 else logger.info
    log("Secret link refused (%s): %s", status_code, reason)
    return RedemptionError(status_code, reason)


class LinkRedeemer:
    def __init__(
        self,
        settings: SecretSettings,
        cipher: TokenCipher,
        signer: UrlSigner,
        storage: StorageBackend,
        claims: ClaimStore,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.settings = settings
        self.cipher = cipher
        self.signer = signer
        self.storage = storage
        self.claims = claims
        # Only set in tests, to answer upstream fetches without a network
        self.transport = transport

    async def redeem(self, request: RedemptionRequest) -> Redemption:
        """Validate *request* and resolve it to a download, proxied body or redirect.

        Raises ``RedemptionError`` carrying the HTTP status on any failure.
        """
        if not self.signer.verify(request.url):
            raise _fail(403, "invalid or expired signature")

        if not request.token:
            raise _fail(404, "missing token")

        try:
            payload = parse_payload(self.cipher.decrypt(request.token))
        except TokenError:
            raise _fail(404, "token could not be decrypted") from None
        except ValueError:
            raise _fail(404, "malformed payload") from None

        if isinstance(payload, UrlPayload):
            return await self._redeem_url(payload, request)
        return await self._redeem_storage(payload, request)

    # ---- URL mode ----

    async def _redeem_url(self, payload: UrlPayload, request: RedemptionRequest) -> Redemption:
        url = payload.url.strip()
        if not url:
            raise _fail(404, "empty url")

        if utils.is_absolute_url(url):
            host = utils.url_host(url)
            if not host or not self._same_host(host, request.host):
                raise _fail(403, "url host does not match request host")
        else:
            # "/queuedresize/abc" -> "https://this-host/queuedresize/abc"
            if not url.startswith("/"):
                url = "/" + url
            url = request.origin.rstrip("/") + url

        if self.settings.url_strategy == "redirect":
            return Redirect(location=url)
        return await self._proxy(url, request.host)

    @staticmethod
    def _same_host(host: str, request_host: str) -> bool:
        return hmac.compare_digest(host.lower().encode("utf-8"), request_host.lower().encode("utf-8"))

    async def _proxy(self, url: str, request_host: str) -> ProxiedBody:
        # Targets are this same host, certificates are not checked
        client = httpx.AsyncClient(
            verify=False,
            timeout=self.settings.proxy_timeout,
            follow_redirects=True,
            transport=self.transport,
        )
        try:
            upstream = await client.send(client.build_request("GET", url), stream=True)
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            await client.aclose()
            raise _fail(404, f"upstream fetch failed: {e.__class__.__name__}") from None

        if upstream.is_error:
            await upstream.aclose()
            await client.aclose()
            raise _fail(upstream.status_code, "upstream returned an error")

        if not upstream.url.host or not self._same_host(upstream.url.host, request_host):
            await upstream.aclose()
            await client.aclose()
            raise _fail(403, "upstream redirected off host")

        media_type = upstream.headers.get("content-type") or DEFAULT_MEDIA_TYPE
        return ProxiedBody(media_type=media_type, body=self._relay(client, upstream))

    async def _relay(self, client: httpx.AsyncClient, upstream: httpx.Response) -> AsyncIterator[bytes]:
        try:
            async for chunk in upstream.aiter_bytes(self.settings.chunk_size):
                yield chunk
        finally:
            await upstream.aclose()
            await client.aclose()

    # ---- Storage mode ----

    async def _redeem_storage(self, payload: StoragePayload, request: RedemptionRequest) -> FileDownload:
        path = payload.path.strip()
        if not path:
            raise _fail(404, "empty path")

        # Also refused at issuance
        if utils.is_absolute_url(path) or ".." in path:
            raise _fail(403, "unsafe storage path")

        disk = payload.disk or self.storage.default_disk

        try:
            if not self.storage.exists(disk, path):
                raise _fail(404, "file not found")
            media_type = self.storage.mime_type(disk, path) or DEFAULT_MEDIA_TYPE
        except UnknownDiskError:
            raise _fail(404, f"unknown disk {disk}") from None
        except PathOutsideDiskError:
            raise _fail(403, "path escapes disk") from None

        claim = None
        if payload.delete_after_download:
            claim = utils.token_fingerprint(request.token)
            expires_at = expires_of(request.url) or int(time.time())
            if not await self.claims.claim(claim, expires_at):
                raise _fail(404, "download already in progress")

        filename = PurePosixPath(path).name
        body = self._stream_file(disk, path, payload.delete_after_download, claim)
        if claim is not None:
            body = ClaimedBody(body, partial(self.claims.release, claim))
        return FileDownload(filename=filename, media_type=media_type, body=body)

    async def _stream_file(self, disk: str, path: str, delete: bool, claim: str | None) -> AsyncIterator[bytes]:
        completed = False
        try:
            stream = await run_in_threadpool(self.storage.read_stream, disk, path)
            try:
                while True:
                    chunk = await run_in_threadpool(stream.read, self.settings.chunk_size)
                    if not chunk:
                        break
                    yield chunk
            finally:
                await run_in_threadpool(stream.close)
            completed = True
        finally:
            if not completed and claim is not None:
                # Interrupted: keep the file and let the link be retried
                await self.claims.release(claim)
                logger.info("Download of %s on %s interrupted, file kept", path, disk)

        if delete:
            try:
                await run_in_threadpool(self.storage.delete, disk, path)
            except OSError:
                logger.exception("Failed to delete %s on %s after download", path, disk)
                # The file is still there, so the link stays redeemable
                if claim is not None:
                    await self.claims.release(claim)
            else:
                logger.info("Deleted %s on %s after download", path, disk)
