import asyncio
import logging
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional, Sequence

from ..core.principals import AdminPrincipal, UserPrincipal
from ..core.security import generate_token
from ..repositories.token_repository import TokenRepository

logger = logging.getLogger(__name__)

def utcnow() -> datetime:
    return datetime.now(timezone.utc)

class TokenService:
    """
    Opaque bearer tokens for one principal table.

    A principal holds at most one live token; issuing a new one replaces the
    previous session.
    """

    def __init__(
        self,
        token_repo: TokenRepository,
        ttl: timedelta,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.token_repo = token_repo
        self.ttl = ttl
        self.clock = clock

    def new_token(self):
        """A fresh token and its expiry, for callers that persist it themselves."""
        return generate_token(), self.clock() + self.ttl

    async def issue_token(self, principal_id: int) -> str:
        token, expires_at = self.new_token()
        await self.token_repo.set_token(principal_id, token, expires_at)
        return token

    async def validate(self, token: Optional[str]):
        if not token:
            return None

        row = await self.token_repo.get_by_token(token)
        if row is None:
            return None

        expires_at = row.get("token_expires")
        if expires_at is not None and self.clock() > expires_at:
            await self.token_repo.clear_token(row["id"])
            logger.info("Expired token cleared", extra={"detail": f"{self.token_repo.table}:{row['id']}"})
            return None

        if self.token_repo.table == "users":
            return UserPrincipal(id=row["id"], username=row["username"], email=row["email"])
        return AdminPrincipal(id=row["id"], username=row["username"])

    async def revoke(self, principal_id: int) -> None:
        await self.token_repo.clear_token(principal_id)

    async def sweep_expired(self) -> int:
        return await self.token_repo.clear_expired(self.clock())


async def run_token_sweeper(services: Sequence[TokenService], interval_seconds: float) -> None:
    """
    Clear expired tokens every ``interval_seconds`` until cancelled.

    Each table is swept independently; a failure on one is logged and does
    not stop the others or the loop.
    """
    while True:
        await asyncio.sleep(interval_seconds)
        for service in services:
            table = service.token_repo.table
            try:
                cleared = await service.sweep_expired()
            except Exception:
                logger.exception(f"Failed to sweep expired {table} tokens")
            else:
                logger.info(f"Swept expired {table} tokens", extra={"detail": {"cleared": cleared}})
