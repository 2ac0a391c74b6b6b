"""VerificationCodeStore: Redis-backed one-time codes with a TTL.

Codes survive process restarts and are shared by every worker. Delivery is
someone else's job; this store only issues and checks.
"""

import hmac
import secrets

import redis.asyncio as redis
import structlog

logger = structlog.get_logger(__name__)

KEY_PREFIX = "verification:code:"


def _key(email: str) -> str:
    return f"{KEY_PREFIX}{email.strip().lower()}"


class VerificationCodeStore:
    def __init__(self, client: redis.Redis, ttl_seconds: int):
        self.client = client
        self.ttl_seconds = ttl_seconds

    async def issue(self, email: str) -> str:
        """Store a fresh 6-digit code for ``email``, replacing any pending one."""
        code = f"{secrets.randbelow(1_000_000):06d}"
        await self.client.set(_key(email), code, ex=self.ttl_seconds)
        logger.info("verification_code_issued", ttl_seconds=self.ttl_seconds)
        return code

    async def verify(self, email: str, code: str) -> bool:
        """Check ``code`` in constant time; a matching code is consumed.

        Only the caller whose DELETE removes the key wins, so a code cannot
        be redeemed twice by concurrent requests.
        """
        key = _key(email)
        stored = await self.client.get(key)
        if stored is None:
            logger.info("verification_code_missing")
            return False
        if not hmac.compare_digest(str(stored), str(code)):
            logger.info("verification_code_mismatch")
            return False
        consumed = await self.client.delete(key)
        if not consumed:
            return False
        logger.info("verification_code_verified")
        return True
