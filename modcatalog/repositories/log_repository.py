from datetime import datetime
from typing import Any, AsyncIterator, Dict, List, Optional, Tuple

from asyncpg import Pool

from ..db import affected_rows
from ..schemas.logs import LogFilters

LOG_COLUMNS = """
    id, method, path, ip, user_agent, status_code, response_time,
    user_id, username, admin_id, admin_name, request_body, error, created_at
"""

class LogRepository:
    def __init__(self, db: Pool):
        self.db = db

    async def insert_log(self, entry: Dict[str, Any]) -> None:
        query = """
            INSERT INTO api_logs (
                method,
                path,
                ip,
                user_agent,
                status_code,
                response_time,
                user_id,
                username,
                admin_id,
                admin_name,
                request_body,
                error,
                created_at
            ) VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10, $11, $12, NOW())
        """
        await self.db.execute(
            query,
            entry["method"],
            entry["path"],
            entry.get("ip"),
            entry.get("user_agent"),
            entry.get("status_code"),
            entry.get("response_time"),
            entry.get("user_id"),
            entry.get("username"),
            entry.get("admin_id"),
            entry.get("admin_name"),
            entry.get("request_body"),
            entry.get("error"),
        )

    @staticmethod
    def _where(filters: LogFilters) -> Tuple[str, List[Any]]:
        conditions = []
        params: List[Any] = []

        def add(clause: str, value: Any) -> None:
            params.append(value)
            conditions.append(clause.format(n=len(params)))

        if filters.method:
            add("method = ${n}", filters.method)
        if filters.path:
            add("path LIKE ${n}", f"%{filters.path}%")
        if filters.status_code is not None:
            add("status_code = ${n}", filters.status_code)
        if filters.user_id is not None:
            add("user_id = ${n}", filters.user_id)
        if filters.admin_id is not None:
            add("admin_id = ${n}", filters.admin_id)

        where = f"WHERE {' AND '.join(conditions)}" if conditions else ""
        return where, params

    async def list_logs(self, filters: LogFilters, limit: int, offset: int) -> Tuple[int, List[Dict]]:
        where, params = self._where(filters)

        total = await self.db.fetchval(f"SELECT COUNT(*) FROM api_logs {where}", *params)

        query = f"""
            SELECT id, method, path, ip, user_agent, status_code, response_time,
                   user_id, username, admin_id, admin_name,
                   SUBSTR(request_body, 1, 500) AS request_body_preview,
                   SUBSTR(error, 1, 500) AS error_preview,
                   created_at
            FROM api_logs
            {where}
            ORDER BY created_at DESC, id DESC
            LIMIT ${len(params) + 1} OFFSET ${len(params) + 2}
        """
        rows = await self.db.fetch(query, *params, limit, offset)
        return total, [dict(row) for row in rows]

    async def get_log(self, log_id: int) -> Optional[Dict]:
        query = f"SELECT {LOG_COLUMNS} FROM api_logs WHERE id = $1"
        row = await self.db.fetchrow(query, log_id)
        return dict(row) if row else None

    async def get_overall_stats(self) -> Dict:
        query = """
            SELECT
                COUNT(*) AS "total",
                ROUND(AVG(response_time)::numeric, 2) AS "avgResponseTime",
                MAX(response_time) AS "maxResponseTime",
                MIN(response_time) AS "minResponseTime",
                COUNT(CASE WHEN status_code >= 400 THEN 1 END) AS "errorCount"
            FROM api_logs
        """
        row = await self.db.fetchrow(query)
        return dict(row) if row else {
            "total": 0,
            "avgResponseTime": None,
            "maxResponseTime": None,
            "minResponseTime": None,
            "errorCount": 0,
        }

    async def get_method_stats(self) -> List[Dict]:
        query = """
            SELECT method, COUNT(*) AS "count"
            FROM api_logs
            GROUP BY method
            ORDER BY "count" DESC
        """
        return [dict(row) for row in await self.db.fetch(query)]

    async def get_top_paths(self, limit: int = 10) -> List[Dict]:
        query = """
            SELECT
                SUBSTR(path, 1, 100) AS path,
                COUNT(*) AS "count",
                ROUND(AVG(response_time)::numeric, 2) AS "avgResponseTime"
            FROM api_logs
            GROUP BY SUBSTR(path, 1, 100)
            ORDER BY "count" DESC
            LIMIT $1
        """
        return [dict(row) for row in await self.db.fetch(query, limit)]

    async def get_top_ips(self, limit: int = 10) -> List[Dict]:
        query = """
            SELECT ip, COUNT(*) AS "count"
            FROM api_logs
            GROUP BY ip
            ORDER BY "count" DESC
            LIMIT $1
        """
        return [dict(row) for row in await self.db.fetch(query, limit)]

    async def iter_recent(self, limit: int) -> AsyncIterator[Dict]:
        """Newest-first rows through a server-side cursor."""
        query = f"""
            SELECT {LOG_COLUMNS}
            FROM api_logs
            ORDER BY created_at DESC, id DESC
            LIMIT $1
        """
        async with self.db.acquire() as conn:
            # asyncpg cursors only live inside a transaction
            async with conn.transaction():
                async for row in conn.cursor(query, limit, prefetch=500):
                    yield dict(row)

    async def delete_older_than(self, cutoff: datetime) -> int:
        status = await self.db.execute("DELETE FROM api_logs WHERE created_at < $1", cutoff)
        return affected_rows(status)

    async def vacuum(self) -> None:
        # VACUUM cannot run inside a transaction block
        await self.db.execute("VACUUM api_logs")
