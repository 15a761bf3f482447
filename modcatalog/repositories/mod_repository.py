import json
from typing import Any, Dict, List, Optional

from asyncpg import Pool

MOD_COLUMNS = """
    id, name, description, category, tags, rating, downloads, icon,
    cloud_link, source_link, background_image, created_at
"""

# Whitelisted ORDER BY clauses; never interpolate user input directly
SORT_CLAUSES = {
    "default": "id",
    "rating": "rating DESC, id",
    "downloads": "downloads DESC, id",
    "name": "LOWER(name), id",
}


def serialize_tags(tags: Optional[List[str]]) -> str:
    return json.dumps(list(tags or []), ensure_ascii=False)


def deserialize_tags(raw: Optional[str]) -> List[str]:
    if not raw:
        return []
    try:
        tags = json.loads(raw)
    except ValueError:
        return []
    return [str(tag) for tag in tags] if isinstance(tags, list) else []


def _to_mod(row) -> Dict[str, Any]:
    mod = dict(row)
    mod["tags"] = deserialize_tags(mod.get("tags"))
    return mod


class ModRepository:
    def __init__(self, db: Pool):
        self.db = db

    async def list_mods(self, category: Optional[str] = None, sort_by: str = "default") -> List[Dict]:
        order_by = SORT_CLAUSES[sort_by]
        if category:
            query = f"SELECT {MOD_COLUMNS} FROM mods WHERE category = $1 ORDER BY {order_by}"
            rows = await self.db.fetch(query, category)
        else:
            query = f"SELECT {MOD_COLUMNS} FROM mods ORDER BY {order_by}"
            rows = await self.db.fetch(query)
        return [_to_mod(row) for row in rows]

    async def get_mod(self, mod_id: int) -> Optional[Dict]:
        query = f"SELECT {MOD_COLUMNS} FROM mods WHERE id = $1"
        row = await self.db.fetchrow(query, mod_id)
        return _to_mod(row) if row else None

    async def create_mod(self, fields: Dict[str, Any]) -> Dict:
        query = f"""
            INSERT INTO mods (
                name, description, category, tags, rating, downloads, icon,
                cloud_link, source_link, background_image
            ) VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10)
            RETURNING {MOD_COLUMNS}
        """
        row = await self.db.fetchrow(
            query,
            fields["name"],
            fields["description"],
            fields["category"],
            serialize_tags(fields.get("tags")),
            fields.get("rating") or 0,
            fields.get("downloads") or 0,
            fields.get("icon"),
            fields.get("cloud_link"),
            fields.get("source_link"),
            fields.get("background_image"),
        )
        return _to_mod(row)

    async def update_mod(self, mod_id: int, fields: Dict[str, Any]) -> Optional[Dict]:
        query = f"""
            UPDATE mods SET
                name = $1,
                description = $2,
                category = $3,
                tags = $4,
                rating = CASE
                    WHEN $5::float8 IS NULL
                      OR EXISTS(SELECT 1 FROM ratings WHERE mod_id = $11) THEN rating
                    ELSE $5::float8
                END,
                downloads = GREATEST(downloads, COALESCE($6::int, 0)),
                icon = $7,
                cloud_link = $8,
                source_link = $9,
                background_image = $10
            WHERE id = $11
            RETURNING {MOD_COLUMNS}
        """
        row = await self.db.fetchrow(
            query,
            fields["name"],
            fields["description"],
            fields["category"],
            serialize_tags(fields.get("tags")),
            fields.get("rating"),
            fields.get("downloads"),
            fields.get("icon"),
            fields.get("cloud_link"),
            fields.get("source_link"),
            fields.get("background_image"),
            mod_id,
        )
        return _to_mod(row) if row else None

    async def delete_mod(self, mod_id: int) -> Optional[Dict]:
        query = f"DELETE FROM mods WHERE id = $1 RETURNING {MOD_COLUMNS}"
        row = await self.db.fetchrow(query, mod_id)
        return _to_mod(row) if row else None

    async def increment_downloads(self, mod_id: int) -> Optional[int]:
        # single statement; concurrent increments never lose an update
        query = "UPDATE mods SET downloads = downloads + 1 WHERE id = $1 RETURNING downloads"
        return await self.db.fetchval(query, mod_id)

    async def lock_mod(self, mod_id: int) -> bool:
        """Row-lock a mod for the rest of the transaction; False if it does not exist."""
        row = await self.db.fetchrow("SELECT id FROM mods WHERE id = $1 FOR UPDATE", mod_id)
        return row is not None

    async def set_rating(self, mod_id: int, rating: float) -> None:
        await self.db.execute("UPDATE mods SET rating = $1 WHERE id = $2", rating, mod_id)

    async def count(self) -> int:
        return await self.db.fetchval("SELECT COUNT(*) FROM mods")
