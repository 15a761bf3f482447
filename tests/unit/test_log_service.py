import csv
import io
import json
import pytest
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock

from modcatalog.exceptions import NotFoundError, ValidationError
from modcatalog.repositories.log_repository import LogRepository
from modcatalog.schemas.logs import LogFilters
from modcatalog.services.log_service import LogService, build_filters

NOW = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


def log_row(log_id, **overrides):
    row = {
        "id": log_id,
        "method": "GET",
        "path": "/api/mods",
        "ip": "10.0.0.1",
        "user_agent": "pytest",
        "status_code": 200,
        "response_time": 12,
        "user_id": None,
        "username": None,
        "admin_id": None,
        "admin_name": None,
        "request_body": None,
        "error": None,
        "created_at": NOW,
    }
    row.update(overrides)
    return row


async def collect(chunks):
    return "".join([chunk async for chunk in chunks])


def test_build_filters_normalizes_input():
    filters = build_filters(method="get", path=" /api/mods%'; ", status_code=404, user_id=3)

    assert filters == LogFilters(method="GET", path="/api/mods", status_code=404, user_id=3)


@pytest.mark.parametrize(
    "kwargs",
    [
        {"method": "TRACE"},
        {"path": "x" * 501},
        {"status_code": 99},
        {"status_code": 600},
        {"user_id": 0},
        {"admin_id": -1},
    ],
)
def test_build_filters_rejects_bad_input(kwargs):
    with pytest.raises(ValidationError):
        build_filters(**kwargs)


def test_where_clause_numbers_placeholders():
    where, params = LogRepository._where(LogFilters(method="POST", path="mods", admin_id=1))

    assert where == "WHERE method = $1 AND path LIKE $2 AND admin_id = $3"
    assert params == ["POST", "%mods%", 1]


def test_where_clause_empty_filters():
    assert LogRepository._where(LogFilters()) == ("", [])


@pytest.mark.asyncio
async def test_list_logs_pagination(mock_db_pool):
    service = LogService(mock_db_pool)
    service.log_repo = AsyncMock()
    service.log_repo.list_logs.return_value = (101, [log_row(1)])

    result = await service.list_logs(LogFilters(), page=3, limit=50)

    service.log_repo.list_logs.assert_awaited_once_with(LogFilters(), 50, 100)
    assert result["pagination"] == {"page": 3, "limit": 50, "total": 101, "total_pages": 3}


@pytest.mark.asyncio
@pytest.mark.parametrize("page,limit", [(0, 50), (1, 0), (1, 201)])
async def test_list_logs_invalid_pagination(mock_db_pool, page, limit):
    service = LogService(mock_db_pool)

    with pytest.raises(ValidationError):
        await service.list_logs(LogFilters(), page=page, limit=limit)


@pytest.mark.asyncio
async def test_get_log_detail(mock_db_pool):
    service = LogService(mock_db_pool)
    service.log_repo = AsyncMock()

    with pytest.raises(ValidationError):
        await service.get_log_detail(0)

    service.log_repo.get_log.return_value = None
    with pytest.raises(NotFoundError):
        await service.get_log_detail(5)


@pytest.mark.parametrize("limit,fmt", [(0, "csv"), (10001, "csv"), (10, "xml")])
def test_check_export_params(limit, fmt):
    with pytest.raises(ValidationError):
        LogService.check_export_params(limit, fmt)


@pytest.mark.asyncio
async def test_export_csv_escapes_fields(mock_db_pool):
    rows = [
        log_row(5, request_body='{"name": "a, \\"b\\""}', error="line1\nline2"),
        log_row(4, user_id=7, username="steve"),
        log_row(3),
        log_row(2),
        log_row(1),
    ]

    async def iter_recent(limit):
        for row in rows[:limit]:
            yield row

    service = LogService(mock_db_pool)
    service.log_repo.iter_recent = iter_recent

    parsed = list(csv.reader(io.StringIO(await collect(service.export_csv(5)))))

    assert parsed[0][:3] == ["ID", "Method", "Path"]
    assert len(parsed) == 6
    assert parsed[1][0] == "5"
    assert parsed[1][11] == '{"name": "a, \\"b\\""}'
    assert parsed[1][12] == "line1\nline2"
    assert parsed[1][13] == NOW.isoformat()
    assert parsed[2][7:9] == ["7", "steve"]
    assert parsed[3][7] == ""


@pytest.mark.asyncio
async def test_export_json_is_an_array(mock_db_pool):
    async def iter_recent(limit):
        yield log_row(2)
        yield log_row(1)

    service = LogService(mock_db_pool)
    service.log_repo.iter_recent = iter_recent

    data = json.loads(await collect(service.export_json(2)))

    assert [entry["id"] for entry in data] == [2, 1]
    assert data[0]["created_at"] == NOW.isoformat()


@pytest.mark.asyncio
async def test_export_json_empty(mock_db_pool):
    async def iter_recent(limit):
        return
        yield

    service = LogService(mock_db_pool)
    service.log_repo.iter_recent = iter_recent

    assert json.loads(await collect(service.export_json(10))) == []


@pytest.mark.asyncio
async def test_cleanup_small_delete_skips_vacuum(mock_db_pool, mock_conn):
    mock_conn.execute.return_value = "DELETE 10"
    service = LogService(mock_db_pool)

    result = await service.cleanup(30, now=NOW)

    assert result["deleted_count"] == 10
    assert result["cutoff_date"] == NOW - timedelta(days=30)
    mock_conn.execute.assert_awaited_once_with("DELETE FROM api_logs WHERE created_at < $1", NOW - timedelta(days=30))
    mock_db_pool.execute.assert_not_called()


@pytest.mark.asyncio
async def test_cleanup_large_delete_vacuums_after_commit(mock_db_pool, mock_conn):
    mock_conn.execute.return_value = "DELETE 1001"
    service = LogService(mock_db_pool)

    result = await service.cleanup(7, now=NOW)

    assert result["deleted_count"] == 1001
    mock_db_pool.execute.assert_awaited_once_with("VACUUM api_logs")


@pytest.mark.asyncio
async def test_cleanup_vacuum_failure_does_not_fail_cleanup(mock_db_pool, mock_conn):
    mock_conn.execute.return_value = "DELETE 5000"
    mock_db_pool.execute.side_effect = RuntimeError("vacuum failed")
    service = LogService(mock_db_pool)

    result = await service.cleanup(7, now=NOW)

    assert result["deleted_count"] == 5000


@pytest.mark.asyncio
@pytest.mark.parametrize("days", [0, 366])
async def test_cleanup_rejects_days_out_of_range(mock_db_pool, days):
    with pytest.raises(ValidationError):
        await LogService(mock_db_pool).cleanup(days)
