"""
Create tables and indexes on startup.

The SQLAlchemy models are only the source of truth for DDL; everything at
runtime talks to Postgres through asyncpg with plain SQL.
"""
import logging
from typing import List

from asyncpg import Pool
from sqlalchemy.dialects import postgresql
from sqlalchemy.schema import CreateIndex, CreateTable

from .models.base import Base
# register tables on Base.metadata
from .models import catalog, log, user  # noqa: F401

logger = logging.getLogger(__name__)

_dialect = postgresql.dialect()


def build_ddl() -> List[str]:
    statements = []
    for table in Base.metadata.sorted_tables:
        statements.append(str(CreateTable(table, if_not_exists=True).compile(dialect=_dialect)))
        for index in sorted(table.indexes, key=lambda i: i.name):
            statements.append(str(CreateIndex(index, if_not_exists=True).compile(dialect=_dialect)))
    return statements


async def ensure_schema(pool: Pool) -> None:
    async with pool.acquire() as conn:
        async with conn.transaction():
            for statement in build_ddl():
                await conn.execute(statement)
    logger.info("Database schema ready")
