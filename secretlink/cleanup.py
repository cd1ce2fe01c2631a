import asyncio
import logging

from .database import ClaimStore

logger = logging.getLogger(__name__)


async def cleanup_expired(claims: ClaimStore, interval: int = 300):
    """
    Background task that periodically purges deletion claims whose link
    has expired.

    Runs every ``interval`` seconds (default: 5 minutes).
    """
    while True:
        try:
            await asyncio.sleep(interval)

            purged = await claims.purge_expired()
            if purged:
                logger.info("Purged %d expired download claim(s)", purged)

        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("Error in cleanup task")
            continue
