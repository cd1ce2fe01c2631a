import os
import asyncio
import logging
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI

from .cleanup import cleanup_expired
from .crypto import TokenCipher
from .database import ClaimStore
from .issuer import LinkIssuer
from .models import SecretSettings
from .redeemer import LinkRedeemer
from .routes.download import DownloadRouter
from .settings import load_settings
from .signing import UrlSigner
from .storage import DiskStorage, StorageBackend
from .templating import build_environment

VERSION = "1.0.0"

logging.basicConfig(level=os.getenv("LOG_LEVEL", "INFO").upper())
logger = logging.getLogger(__name__)


def create_app(
    settings: SecretSettings | None = None,
    storage: StorageBackend | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> FastAPI:
    settings = settings or load_settings()
    storage = storage or DiskStorage(settings.disks, settings.filesystem_default)

    cipher = TokenCipher(settings.app_key)
    signer = UrlSigner(settings.app_key)
    claims = ClaimStore(settings.database_path)

    issuer = LinkIssuer(settings, cipher, signer, default_disk=storage.default_disk)
    redeemer = LinkRedeemer(settings, cipher, signer, storage, claims, transport=transport)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Initialise the SQLite database
        settings.data_dir.mkdir(parents=True, exist_ok=True)
        await claims.init()

        # Start background cleanup task
        cleanup_task = asyncio.create_task(cleanup_expired(claims, settings.cleanup_interval))
        logger.info("Secret links served at %s%s", settings.app_url.rstrip("/"), settings.route_path)

        yield

        # Cancel cleanup task on shutdown
        cleanup_task.cancel()
        try:
            await cleanup_task
        except asyncio.CancelledError:
            pass

    app = FastAPI(title="Secret Link API", version=VERSION, lifespan=lifespan)
    app.state.settings = settings
    app.state.issuer = issuer
    app.state.templates = build_environment(issuer)

    app.include_router(DownloadRouter(redeemer, settings.route_path).router)

    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        return {"status": "ok", "version": VERSION}

    return app


app = create_app()
