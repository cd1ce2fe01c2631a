"""
SQLite store for deletion claims.

A delete-after-download link may be redeemed by several requests at once.
Before streaming, a redemption claims the token fingerprint; only one
request can hold a claim, the others get a 404 as if the file were already
gone. A failed stream releases its claim so the link can be retried, a
successful one keeps it until the link itself expires.
"""

import time
from pathlib import Path

import aiosqlite

SCHEMA = """
CREATE TABLE IF NOT EXISTS claims (
    token_hash  TEXT PRIMARY KEY,
    claimed_at  INTEGER NOT NULL,
    expires_at  INTEGER NOT NULL
);

CREATE INDEX IF NOT EXISTS claims_expires_at ON claims (expires_at);
"""


class ClaimStore:
    def __init__(self, path: Path):
        self.path = Path(path)

    async def init(self) -> None:
        """Create the database directory and tables if they don't exist."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        async with aiosqlite.connect(self.path) as db:
            await db.executescript(SCHEMA)
            await db.commit()

    async def claim(self, token_hash: str, expires_at: int) -> bool:
        """Claim a token. Returns False if another request holds the claim."""
        now = int(time.time())
        async with aiosqlite.connect(self.path) as db:
            # A claim left over from an expired link must not block a new one
            await db.execute("DELETE FROM claims WHERE token_hash = ? AND expires_at < ?", (token_hash, now))
            cursor = await db.execute(
                "INSERT OR IGNORE INTO claims (token_hash, claimed_at, expires_at) VALUES (?, ?, ?)",
                (token_hash, now, int(expires_at)),
            )
            await db.commit()
            return cursor.rowcount > 0

    async def release(self, token_hash: str) -> None:
        async with aiosqlite.connect(self.path) as db:
            await db.execute("DELETE FROM claims WHERE token_hash = ?", (token_hash,))
            await db.commit()

    async def is_claimed(self, token_hash: str) -> bool:
        async with aiosqlite.connect(self.path) as db:
            cursor = await db.execute("SELECT 1 FROM claims WHERE token_hash = ?", (token_hash,))
            return await cursor.fetchone() is not None

    async def purge_expired(self, now: int | None = None) -> int:
        """Delete claims whose link has expired. Returns the count of deleted claims."""
        now = int(time.time()) if now is None else int(now)
        async with aiosqlite.connect(self.path) as db:
            cursor = await db.execute("DELETE FROM claims WHERE expires_at < ?", (now,))
            await db.commit()
            return cursor.rowcount
