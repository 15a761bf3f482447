from typing import Dict, List, Optional

from asyncpg import Pool

class RatingRepository:
    def __init__(self, db: Pool):
        self.db = db

    async def list_for_mod(self, mod_id: int) -> List[Dict]:
        query = """
            SELECT id, mod_id, user_id, username, rating, created_at
            FROM ratings
            WHERE mod_id = $1
            ORDER BY id
        """
        rows = await self.db.fetch(query, mod_id)
        return [dict(row) for row in rows]

    async def get_user_rating(self, mod_id: int, user_id: int) -> Optional[Dict]:
        query = "SELECT id, rating FROM ratings WHERE mod_id = $1 AND user_id = $2 LIMIT 1"
        row = await self.db.fetchrow(query, mod_id, user_id)
        return dict(row) if row else None

    async def insert_rating(self, mod_id: int, user_id: int, username: str, rating: int) -> int:
        query = """
            INSERT INTO ratings (mod_id, user_id, username, rating)
            VALUES ($1, $2, $3, $4)
            RETURNING id
        """
        return await self.db.fetchval(query, mod_id, user_id, username, rating)

    async def average_for_mod(self, mod_id: int) -> float:
        query = "SELECT ROUND(AVG(rating)::numeric, 1) FROM ratings WHERE mod_id = $1"
        average = await self.db.fetchval(query, mod_id)
        return float(average) if average is not None else 0.0
