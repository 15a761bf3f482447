import csv
import io
import pytest
from datetime import datetime, timezone
from httpx import AsyncClient
from unittest.mock import AsyncMock

from modcatalog.dependencies import get_log_service
from modcatalog.main import app
from modcatalog.services.log_service import LogService

NOW = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


def summary_row(log_id):
    return {
        "id": log_id,
        "method": "GET",
        "path": "/api/mods",
        "ip": "10.0.0.1",
        "user_agent": "pytest",
        "status_code": 200,
        "response_time": 5,
        "user_id": None,
        "username": None,
        "admin_id": None,
        "admin_name": None,
        "request_body_preview": None,
        "error_preview": None,
        "created_at": NOW,
    }


@pytest.mark.asyncio
async def test_logs_require_admin(client: AsyncClient, mock_db_pool: AsyncMock):
    mock_db_pool.fetchrow.return_value = None

    response = await client.get("/api/logs", headers={"Authorization": "not-an-admin-token"})

    assert response.status_code == 401


@pytest.mark.asyncio
async def test_list_logs(client: AsyncClient, mock_db_pool: AsyncMock, as_admin):
    mock_db_pool.fetchval.return_value = 120
    mock_db_pool.fetch.return_value = [summary_row(2), summary_row(1)]

    response = await client.get("/api/logs", params={"page": 2, "limit": 50, "method": "get", "statusCode": 200})

    assert response.status_code == 200
    body = response.json()
    assert [log["id"] for log in body["logs"]] == [2, 1]
    assert body["pagination"] == {"page": 2, "limit": 50, "total": 120, "totalPages": 3}
    count_query, method, status_code = mock_db_pool.fetchval.call_args.args
    assert "WHERE method = $1 AND status_code = $2" in count_query
    assert (method, status_code) == ("GET", 200)
    assert mock_db_pool.fetch.call_args.args[-2:] == (50, 50)


@pytest.mark.asyncio
async def test_list_logs_bad_limit(client: AsyncClient, as_admin):
    response = await client.get("/api/logs", params={"limit": 500})

    assert response.status_code == 400
    assert response.json()["error"] == "Invalid pagination parameters"


@pytest.mark.asyncio
async def test_list_logs_bad_method(client: AsyncClient, as_admin):
    response = await client.get("/api/logs", params={"method": "TRACE"})

    assert response.status_code == 400


@pytest.mark.asyncio
async def test_log_stats(client: AsyncClient, mock_db_pool: AsyncMock, as_admin):
    mock_db_pool.fetchrow.return_value = {
        "total": 10, "avgResponseTime": 12.5, "maxResponseTime": 40, "minResponseTime": 1, "errorCount": 2
    }

    async def fetch(query, *args):
        if "GROUP BY method" in query:
            return [{"method": "GET", "count": 8}]
        if "GROUP BY ip" in query:
            return [{"ip": "10.0.0.1", "count": 10}]
        return [{"path": "/api/mods", "count": 8, "avgResponseTime": 10.0}]

    mock_db_pool.fetch.side_effect = fetch

    response = await client.get("/api/logs/stats")

    assert response.status_code == 200
    body = response.json()
    assert body["overall"]["errorCount"] == 2
    assert body["byMethod"] == [{"method": "GET", "count": 8}]
    assert body["topPaths"][0]["avgResponseTime"] == 10.0
    assert body["topIPs"] == [{"ip": "10.0.0.1", "count": 10}]


@pytest.mark.asyncio
async def test_log_detail_not_found(client: AsyncClient, mock_db_pool: AsyncMock, as_admin):
    mock_db_pool.fetchrow.return_value = None

    response = await client.get("/api/logs/999")

    assert response.status_code == 404


@pytest.mark.asyncio
async def test_export_csv(client: AsyncClient, mock_db_pool: AsyncMock, as_admin):
    async def iter_recent(limit):
        for log_id in range(limit, 0, -1):
            yield {"id": log_id, "method": "GET", "path": "/api/mods", "created_at": NOW}

    service = LogService(mock_db_pool)
    service.log_repo.iter_recent = iter_recent
    app.dependency_overrides[get_log_service] = lambda: service

    response = await client.get("/api/logs/export", params={"limit": 5, "format": "csv"})

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/csv")
    assert "attachment; filename=logs_" in response.headers["content-disposition"]
    assert response.headers["content-disposition"].endswith(".csv")
    rows = list(csv.reader(io.StringIO(response.text)))
    assert len(rows) == 6
    assert [row[0] for row in rows[1:]] == ["5", "4", "3", "2", "1"]


@pytest.mark.asyncio
async def test_export_rejects_unknown_format(client: AsyncClient, as_admin):
    response = await client.get("/api/logs/export", params={"format": "xml"})

    assert response.status_code == 400


@pytest.mark.asyncio
async def test_cleanup(client: AsyncClient, mock_conn: AsyncMock, as_admin):
    mock_conn.execute.return_value = "DELETE 12"

    response = await client.delete("/api/logs/cleanup", params={"days": 30})

    assert response.status_code == 200
    body = response.json()
    assert body["deletedCount"] == 12
    assert "cutoffDate" in body


@pytest.mark.asyncio
async def test_cleanup_days_out_of_range(client: AsyncClient, as_admin):
    response = await client.delete("/api/logs/cleanup", params={"days": 0})

    assert response.status_code == 400
