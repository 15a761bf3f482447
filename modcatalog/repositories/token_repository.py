from datetime import datetime
from typing import Optional

from asyncpg import Pool

from ..db import affected_rows

PRINCIPAL_TABLES = ("users", "admins")

class TokenRepository:
    """
    Token columns of one principal table.

    ``users`` and ``admins`` share the same token shape, so one repository
    serves both; the table name is fixed at construction and never taken
    from request input.
    """

    def __init__(self, db: Pool, table: str):
        if table not in PRINCIPAL_TABLES:
            raise ValueError(f"Unknown principal table: {table}")
        self.db = db
        self.table = table

    async def set_token(self, principal_id: int, token: str, expires_at: datetime) -> None:
        query = f"UPDATE {self.table} SET token = $1, token_expires = $2 WHERE id = $3"
        await self.db.execute(query, token, expires_at, principal_id)

    async def get_by_token(self, token: str) -> Optional[dict]:
        columns = "id, username, email, token_expires" if self.table == "users" else "id, username, token_expires"
        query = f"SELECT {columns} FROM {self.table} WHERE token = $1"
        row = await self.db.fetchrow(query, token)
        return dict(row) if row else None

    async def clear_token(self, principal_id: int) -> None:
        query = f"UPDATE {self.table} SET token = NULL, token_expires = NULL WHERE id = $1"
        await self.db.execute(query, principal_id)

    async def clear_expired(self, now: datetime) -> int:
        query = f"""
            UPDATE {self.table}
            SET token = NULL, token_expires = NULL
            WHERE token_expires IS NOT NULL AND token_expires < $1
        """
        status = await self.db.execute(query, now)
        # asyncpg returns the command tag, e.g. "UPDATE 3"
        return affected_rows(status)
