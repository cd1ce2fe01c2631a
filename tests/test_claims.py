import asyncio
import time


class TestClaimStore:

    def test_claim_is_exclusive(self, claims):
        async def scenario():
            await claims.init()
            expires = int(time.time()) + 600
            return await claims.claim("abc", expires), await claims.claim("abc", expires)

        assert asyncio.run(scenario()) == (True, False)

    def test_release(self, claims):
        async def scenario():
            await claims.init()
            expires = int(time.time()) + 600
            await claims.claim("abc", expires)
            await claims.release("abc")
            return await claims.is_claimed("abc"), await claims.claim("abc", expires)

        assert asyncio.run(scenario()) == (False, True)

    def test_expired_claim_does_not_block(self, claims):
        async def scenario():
            await claims.init()
            await claims.claim("abc", int(time.time()) - 10)
            return await claims.claim("abc", int(time.time()) + 600)

        assert asyncio.run(scenario()) is True

    def test_purge_expired(self, claims):
        async def scenario():
            await claims.init()
            now = int(time.time())
            await claims.claim("old", now - 10)
            await claims.claim("new", now + 600)
            purged = await claims.purge_expired(now)
            return purged, await claims.is_claimed("old"), await claims.is_claimed("new")

        assert asyncio.run(scenario()) == (1, False, True)
