import logging
from typing import Awaitable, Callable, Optional, TypeVar

import asyncpg
from asyncpg import Connection, Pool

from .config import settings

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Global state for connections
class AppState:
    pg_pool: Optional[Pool] = None

state = AppState()

async def init_resources():
    """Initialize the shared connection pool"""
    state.pg_pool = await asyncpg.create_pool(
        settings.DATABASE_URL,
        min_size=settings.DB_POOL_MIN_SIZE,
        max_size=settings.DB_POOL_MAX_SIZE,
        command_timeout=settings.DB_COMMAND_TIMEOUT,
    )
    logger.info("Database pool initialized")

async def close_resources():
    """Close the shared connection pool"""
    if state.pg_pool:
        await state.pg_pool.close()
        state.pg_pool = None

async def get_db_pool() -> Pool:
    return state.pg_pool

async def run_in_transaction(pool: Pool, work: Callable[[Connection], Awaitable[T]]) -> T:
    """
    Run ``work(conn)`` inside a single transaction.

    Commits when ``work`` returns, rolls back and re-raises on any exception,
    so callers never observe partially applied multi-statement writes.
    """
    async with pool.acquire() as conn:
        async with conn.transaction():
            return await work(conn)

def affected_rows(status: Optional[str]) -> int:
    """Row count from an asyncpg command tag such as ``"DELETE 42"``."""
    try:
        return int(str(status).rsplit(" ", 1)[-1])
    except (ValueError, IndexError):
        return 0
