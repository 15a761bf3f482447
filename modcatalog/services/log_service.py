import csv
import io
import json
import logging
import math
import re
from datetime import datetime, timedelta, timezone
from typing import AsyncIterator, Dict, Optional

from asyncpg import Pool

from ..db import run_in_transaction
from ..exceptions import NotFoundError, ValidationError
from ..repositories.log_repository import LogRepository
from ..schemas.logs import LogFilters

logger = logging.getLogger(__name__)

VALID_METHODS = ("GET", "POST", "PUT", "DELETE", "PATCH")
MAX_PAGE_SIZE = 200
MAX_EXPORT_ROWS = 10000
MAX_PATH_FILTER_LENGTH = 500
VACUUM_THRESHOLD = 1000
CSV_CHUNK_SIZE = 100_000

# Characters stripped from the path filter before it becomes a LIKE pattern
_PATH_STRIP = re.compile(r"[%;'\"]")

EXPORT_FIELDS = (
    "id",
    "method",
    "path",
    "ip",
    "user_agent",
    "status_code",
    "response_time",
    "user_id",
    "username",
    "admin_id",
    "admin_name",
    "request_body",
    "error",
    "created_at",
)
EXPORT_HEADERS = (
    "ID",
    "Method",
    "Path",
    "IP",
    "User Agent",
    "Status Code",
    "Response Time",
    "User ID",
    "Username",
    "Admin ID",
    "Admin Name",
    "Request Body",
    "Error",
    "Created At",
)


def build_filters(
    method: Optional[str] = None,
    path: Optional[str] = None,
    status_code: Optional[int] = None,
    user_id: Optional[int] = None,
    admin_id: Optional[int] = None,
) -> LogFilters:
    if method:
        method = method.upper()
        if method not in VALID_METHODS:
            raise ValidationError("Invalid request method")
    else:
        method = None

    if path:
        path = _PATH_STRIP.sub("", path.strip())
        if len(path) > MAX_PATH_FILTER_LENGTH:
            raise ValidationError("Path filter must be at most 500 characters")
    path = path or None

    if status_code is not None and not 100 <= status_code <= 599:
        raise ValidationError("Invalid status code")
    if user_id is not None and user_id < 1:
        raise ValidationError("Invalid user id")
    if admin_id is not None and admin_id < 1:
        raise ValidationError("Invalid admin id")

    return LogFilters(
        method=method,
        path=path,
        status_code=status_code,
        user_id=user_id,
        admin_id=admin_id,
    )


def _csv_value(value):
    if value is None:
        return ""
    if isinstance(value, datetime):
        return value.isoformat()
    return value


def _json_default(value):
    if isinstance(value, datetime):
        return value.isoformat()
    return str(value)


class LogService:
    def __init__(self, db: Pool):
        self.db = db
        self.log_repo = LogRepository(db)

    async def list_logs(self, filters: LogFilters, page: int = 1, limit: int = 50) -> Dict:
        if page < 1 or limit < 1 or limit > MAX_PAGE_SIZE:
            raise ValidationError("Invalid pagination parameters")

        offset = (page - 1) * limit
        total, logs = await self.log_repo.list_logs(filters, limit, offset)
        return {
            "logs": logs,
            "pagination": {
                "page": page,
                "limit": limit,
                "total": total,
                "total_pages": math.ceil(total / limit),
            },
        }

    async def get_log_stats(self) -> Dict:
        return {
            "overall": await self.log_repo.get_overall_stats(),
            "by_method": await self.log_repo.get_method_stats(),
            "top_paths": await self.log_repo.get_top_paths(10),
            "top_ips": await self.log_repo.get_top_ips(10),
        }

    async def get_log_detail(self, log_id: int) -> Dict:
        if log_id < 1:
            raise ValidationError("Invalid log id")
        log = await self.log_repo.get_log(log_id)
        if log is None:
            raise NotFoundError("Log not found")
        return log

    @staticmethod
    def check_export_params(limit: int, export_format: str) -> None:
        if not 1 <= limit <= MAX_EXPORT_ROWS:
            raise ValidationError("Export limit must be between 1 and 10000")
        if export_format not in ("csv", "json"):
            raise ValidationError("Export format must be csv or json")

    async def export_csv(self, limit: int) -> AsyncIterator[str]:
        """
        Yield CSV text in chunks of roughly ``CSV_CHUNK_SIZE`` characters.
        """
        buffer = io.StringIO()
        writer = csv.writer(buffer, lineterminator="\n")
        writer.writerow(EXPORT_HEADERS)

        async for row in self.log_repo.iter_recent(limit):
            writer.writerow([_csv_value(row.get(field)) for field in EXPORT_FIELDS])
            if buffer.tell() >= CSV_CHUNK_SIZE:
                yield buffer.getvalue()
                buffer.seek(0)
                buffer.truncate(0)

        if buffer.tell():
            yield buffer.getvalue()

    async def export_json(self, limit: int) -> AsyncIterator[str]:
        """Yield a JSON array, one element per chunk."""
        yield "["
        first = True
        async for row in self.log_repo.iter_recent(limit):
            prefix = "" if first else ","
            first = False
            yield prefix + json.dumps(row, default=_json_default, ensure_ascii=False)
        yield "]"

    async def cleanup(self, days: int = 30, now: Optional[datetime] = None) -> Dict:
        if not 1 <= days <= 365:
            raise ValidationError("Days must be between 1 and 365")

        cutoff = (now or datetime.now(timezone.utc)) - timedelta(days=days)

        async def work(conn) -> int:
            return await LogRepository(conn).delete_older_than(cutoff)

        deleted = await run_in_transaction(self.db, work)

        # VACUUM runs after commit, outside any transaction block
        if deleted > VACUUM_THRESHOLD:
            try:
                await self.log_repo.vacuum()
            except Exception:
                logger.exception("VACUUM after log cleanup failed")

        logger.info("Old logs cleaned up", extra={"detail": {"deleted": deleted, "cutoff": cutoff}})
        return {
            "message": f"Removed {deleted} log entries",
            "deleted_count": deleted,
            "cutoff_date": cutoff,
        }
