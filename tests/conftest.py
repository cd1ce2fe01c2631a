import json
import time
from pathlib import Path
from urllib.parse import parse_qs, urlsplit

import httpx
import pytest
from fastapi.testclient import TestClient

from secretlink.crypto import TokenCipher
from secretlink.database import ClaimStore
from secretlink.issuer import LinkIssuer
from secretlink.main import create_app
from secretlink.models import RedemptionRequest, SecretSettings
from secretlink.redeemer import LinkRedeemer
from secretlink.signing import UrlSigner
from secretlink.storage import DiskStorage

APP_KEY = "test-app-key-0123456789abcdef"
BASE_URL = "http://testserver"


@pytest.fixture
def settings(tmp_path):
    return SecretSettings(
        app_url=BASE_URL,
        app_key=APP_KEY,
        default_disk="media",
        default_expiry=15,
        delete_after_download=False,
        filesystem_default="local",
        disks={"media": str(tmp_path / "media"), "local": str(tmp_path / "app")},
        data_dir=tmp_path / "data",
    )


class SeededStorage(DiskStorage):
    """DiskStorage that tests can write files into."""

    def put(self, disk: str, path: str, content: bytes) -> Path:
        target = self.resolve(disk, path)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(content)
        return target


@pytest.fixture
def storage(settings):
    return SeededStorage(settings.disks, settings.filesystem_default)


@pytest.fixture
def cipher():
    return TokenCipher(APP_KEY)


@pytest.fixture
def signer():
    return UrlSigner(APP_KEY)


@pytest.fixture
def issuer(settings, cipher, signer, storage):
    return LinkIssuer(settings, cipher, signer, default_disk=storage.default_disk)


@pytest.fixture
def upstream():
    """Responses served to proxied fetches, keyed by absolute URL.

    Values are ``httpx.Response`` objects or exceptions to raise.
    """
    return {}


@pytest.fixture
def transport(upstream):
    def handler(request: httpx.Request) -> httpx.Response:
        answer = upstream.get(str(request.url))
        if answer is None:
            return httpx.Response(404, content=b"no upstream")
        if isinstance(answer, Exception):
            raise answer
        return answer

    return httpx.MockTransport(handler)


@pytest.fixture
def claims(settings):
    return ClaimStore(settings.database_path)


@pytest.fixture
def redeemer(settings, cipher, signer, storage, claims, transport):
    return LinkRedeemer(settings, cipher, signer, storage, claims, transport=transport)


@pytest.fixture
def app(settings, storage, transport):
    return create_app(settings, storage=storage, transport=transport)


@pytest.fixture
def client(app):
    with TestClient(app) as client:
        yield client


@pytest.fixture
def craft(issuer, cipher, signer):
    """Sign an arbitrary payload dict, bypassing the issuer's checks."""
    def _craft(payload, expires_in: int = 600, raw: str | None = None) -> str:
        token = raw if raw is not None else cipher.encrypt(json.dumps(payload))
        return signer.sign(issuer.endpoint, int(time.time()) + expires_in, {"t": token})
    return _craft


def token_of(url: str) -> str:
    return parse_qs(urlsplit(url).query)["t"][0]


def redemption_request(url: str) -> RedemptionRequest:
    return RedemptionRequest(url=url, token=token_of(url), host="testserver", origin=BASE_URL)
