import json
import pytest
from datetime import datetime, timedelta, timezone
from httpx import AsyncClient
from unittest.mock import AsyncMock

from modcatalog.db import state


def inserted_entries(pool: AsyncMock):
    return [call.args for call in pool.execute.call_args_list if "INSERT INTO api_logs" in call.args[0]]


@pytest.mark.asyncio
async def test_successful_request_is_logged(client: AsyncClient, mock_db_pool: AsyncMock):
    state.pg_pool = mock_db_pool

    response = await client.get("/health", headers={"X-Forwarded-For": "203.0.113.9, 10.0.0.1"})

    assert response.status_code == 200
    assert "X-Request-ID" in response.headers
    [args] = inserted_entries(mock_db_pool)
    _, method, path, ip, user_agent, status_code = args[:6]
    assert (method, path, ip, status_code) == ("GET", "/health", "203.0.113.9", 200)
    assert args[12] is None


@pytest.mark.asyncio
async def test_failed_login_logs_body_without_password(client: AsyncClient, mock_db_pool: AsyncMock):
    state.pg_pool = mock_db_pool
    mock_db_pool.fetchrow.return_value = None

    response = await client.post("/api/auth/login", json={"username": "steve", "password": "hunter22"})

    assert response.status_code == 401
    # the replayed body reaches the client intact
    assert response.json()["error"] == "Incorrect username or password"
    [args] = inserted_entries(mock_db_pool)
    assert args[5] == 401
    assert json.loads(args[11]) == {"username": "steve"}
    assert "Incorrect username or password" in args[12]


@pytest.mark.asyncio
async def test_admin_actions_record_the_admin(client: AsyncClient, mock_db_pool: AsyncMock, mock_conn: AsyncMock):
    state.pg_pool = mock_db_pool
    mock_db_pool.fetchrow.return_value = {
        "id": 1, "username": "admin", "token_expires": datetime.now(timezone.utc) + timedelta(days=1)
    }
    mock_conn.fetchrow.return_value = {"id": 3, "name": "magic", "icon": None, "description": None, "mod_count": 0}

    response = await client.delete("/api/categories/3", headers={"Authorization": "a" * 64})

    assert response.status_code == 200
    [args] = inserted_entries(mock_db_pool)
    assert args[9:11] == (1, "admin")
    assert args[7:9] == (None, None)


@pytest.mark.asyncio
async def test_log_viewer_requests_are_not_logged(client: AsyncClient, mock_db_pool: AsyncMock, as_admin):
    state.pg_pool = mock_db_pool
    mock_db_pool.fetchrow.return_value = None

    await client.get("/api/logs/5")

    assert inserted_entries(mock_db_pool) == []


@pytest.mark.asyncio
async def test_log_write_failure_does_not_break_response(client: AsyncClient, mock_db_pool: AsyncMock):
    state.pg_pool = mock_db_pool
    mock_db_pool.execute.side_effect = RuntimeError("disk full")

    response = await client.get("/health")

    assert response.status_code == 200
