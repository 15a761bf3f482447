from typing import Dict, List, Optional

from asyncpg import Pool

CATEGORY_COLUMNS = "id, name, icon, description"

class CategoryRepository:
    def __init__(self, db: Pool):
        self.db = db

    async def list_categories(self) -> List[Dict]:
        rows = await self.db.fetch(f"SELECT {CATEGORY_COLUMNS} FROM categories ORDER BY id")
        return [dict(row) for row in rows]

    async def get_category(self, category_id: int) -> Optional[Dict]:
        query = f"SELECT {CATEGORY_COLUMNS} FROM categories WHERE id = $1"
        row = await self.db.fetchrow(query, category_id)
        return dict(row) if row else None

    async def name_exists(self, name: str) -> bool:
        return await self.db.fetchval("SELECT EXISTS(SELECT 1 FROM categories WHERE name = $1)", name)

    async def create_category(self, name: str, icon: Optional[str], description: Optional[str]) -> Dict:
        query = f"""
            INSERT INTO categories (name, icon, description)
            VALUES ($1, $2, $3)
            RETURNING {CATEGORY_COLUMNS}
        """
        row = await self.db.fetchrow(query, name, icon, description)
        return dict(row)

    async def update_category(
        self, category_id: int, name: str, icon: Optional[str], description: Optional[str]
    ) -> Optional[Dict]:
        query = f"""
            UPDATE categories SET name = $1, icon = $2, description = $3
            WHERE id = $4
            RETURNING {CATEGORY_COLUMNS}
        """
        row = await self.db.fetchrow(query, name, icon, description, category_id)
        return dict(row) if row else None

    async def lock_category(self, category_id: int) -> bool:
        """Row-lock a category for the rest of the transaction; False if it does not exist."""
        row = await self.db.fetchrow("SELECT id FROM categories WHERE id = $1 FOR UPDATE", category_id)
        return row is not None

    async def share_lock_by_name(self, name: str) -> None:
        # blocks a concurrent delete of this category until the transaction ends
        await self.db.execute("SELECT 1 FROM categories WHERE name = $1 FOR SHARE", name)

    async def get_with_mod_count(self, category_id: int) -> Optional[Dict]:
        query = """
            SELECT c.id, c.name, c.icon, c.description, COUNT(m.id) AS mod_count
            FROM categories c
            LEFT JOIN mods m ON c.name = m.category
            WHERE c.id = $1
            GROUP BY c.id
        """
        row = await self.db.fetchrow(query, category_id)
        return dict(row) if row else None

    async def delete_category(self, category_id: int) -> None:
        await self.db.execute("DELETE FROM categories WHERE id = $1", category_id)

    async def count(self) -> int:
        return await self.db.fetchval("SELECT COUNT(*) FROM categories")
