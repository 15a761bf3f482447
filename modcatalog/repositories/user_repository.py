
from asyncpg import Pool
from datetime import datetime
from typing import Optional

class UserRepository:
    def __init__(self, db: Pool):
        self.db = db

    async def get_by_username(self, username: str) -> Optional[dict]:
        query = "SELECT id, username, email, password FROM users WHERE username = $1 LIMIT 1"
        row = await self.db.fetchrow(query, username)
        return dict(row) if row else None

    async def get_by_email(self, email: str) -> Optional[dict]:
        query = "SELECT id, username, email FROM users WHERE email = $1 LIMIT 1"
        row = await self.db.fetchrow(query, email)
        return dict(row) if row else None

    async def create_user(
        self,
        username: str,
        email: str,
        hashed_password: str,
        token: str,
        token_expires: datetime,
    ) -> int:
        query = """
            INSERT INTO users (username, email, password, token, token_expires)
            VALUES ($1, $2, $3, $4, $5)
            RETURNING id
        """
        user_id = await self.db.fetchval(query, username, email, hashed_password, token, token_expires)
        return user_id

class AdminRepository:
    def __init__(self, db: Pool):
        self.db = db

    async def get_by_username(self, username: str) -> Optional[dict]:
        query = "SELECT id, username, password FROM admins WHERE username = $1 LIMIT 1"
        row = await self.db.fetchrow(query, username)
        return dict(row) if row else None

    async def count(self) -> int:
        return await self.db.fetchval("SELECT COUNT(*) FROM admins")

    async def create_admin(self, username: str, hashed_password: str) -> int:
        query = """
            INSERT INTO admins (username, password)
            VALUES ($1, $2)
            RETURNING id
        """
        return await self.db.fetchval(query, username, hashed_password)
