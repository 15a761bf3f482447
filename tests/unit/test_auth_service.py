
import pytest
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock
from asyncpg.exceptions import UniqueViolationError
from modcatalog.core.principals import UserPrincipal
from modcatalog.core.security import hash_password
from modcatalog.exceptions import AuthError, ConflictError
from modcatalog.schemas.auth import AdminLogin, UserCreate, UserLogin
from modcatalog.services.auth_service import AdminAuthService, AuthService

EXPIRES = datetime(2024, 5, 8, tzinfo=timezone.utc)


def make_token_service():
    token_service = MagicMock()
    token_service.new_token.return_value = ("t" * 64, EXPIRES)
    token_service.issue_token = AsyncMock(return_value="n" * 64)
    token_service.revoke = AsyncMock()
    return token_service


@pytest.mark.asyncio
async def test_register_user_success():
    # Arrange
    mock_repo = AsyncMock()
    mock_repo.get_by_username.return_value = None
    mock_repo.get_by_email.return_value = None
    mock_repo.create_user.return_value = 1

    service = AuthService(mock_repo, make_token_service())
    user_data = UserCreate(username="testuser", email="test@example.com", password="password123")

    # Act
    user = await service.register_user(user_data)

    # Assert
    assert user == {"id": 1, "username": "testuser", "email": "test@example.com", "token": "t" * 64}
    args = mock_repo.create_user.call_args.args
    assert args[0] == "testuser"
    assert args[2] != "password123"
    assert args[3:] == ("t" * 64, EXPIRES)


@pytest.mark.asyncio
async def test_register_user_already_exists_username():
    mock_repo = AsyncMock()
    mock_repo.get_by_username.return_value = {"id": 1, "username": "testuser"}

    service = AuthService(mock_repo, make_token_service())
    user_data = UserCreate(username="testuser", email="test@example.com", password="password123")

    with pytest.raises(ConflictError) as exc:
        await service.register_user(user_data)
    assert exc.value.status_code == 400
    assert exc.value.message == "Username already registered"
    mock_repo.create_user.assert_not_called()


@pytest.mark.asyncio
async def test_register_user_already_exists_email():
    mock_repo = AsyncMock()
    mock_repo.get_by_username.return_value = None
    mock_repo.get_by_email.return_value = {"id": 2}

    service = AuthService(mock_repo, make_token_service())
    user_data = UserCreate(username="testuser", email="test@example.com", password="password123")

    with pytest.raises(ConflictError) as exc:
        await service.register_user(user_data)
    assert exc.value.message == "Email already registered"


@pytest.mark.asyncio
async def test_register_user_concurrent_duplicate_email():
    mock_repo = AsyncMock()
    mock_repo.get_by_username.return_value = None
    mock_repo.get_by_email.return_value = None
    violation = UniqueViolationError("duplicate key")
    violation.constraint_name = "users_email_key"
    mock_repo.create_user.side_effect = violation

    service = AuthService(mock_repo, make_token_service())
    user_data = UserCreate(username="testuser", email="test@example.com", password="password123")

    with pytest.raises(ConflictError) as exc:
        await service.register_user(user_data)
    assert exc.value.message == "Email already registered"


@pytest.mark.asyncio
async def test_authenticate_user_success():
    mock_repo = AsyncMock()
    mock_repo.get_by_username.return_value = {
        "id": 1,
        "username": "testuser",
        "email": "test@example.com",
        "password": hash_password("password123"),
    }
    token_service = make_token_service()

    service = AuthService(mock_repo, token_service)
    user = await service.authenticate_user(UserLogin(username="testuser", password="password123"))

    assert user["token"] == "n" * 64
    assert "password" not in user
    token_service.issue_token.assert_awaited_once_with(1)


@pytest.mark.asyncio
async def test_authenticate_user_invalid_password():
    mock_repo = AsyncMock()
    mock_repo.get_by_username.return_value = {
        "id": 1,
        "username": "testuser",
        "email": "test@example.com",
        "password": hash_password("password123"),
    }
    token_service = make_token_service()

    service = AuthService(mock_repo, token_service)
    with pytest.raises(AuthError) as exc:
        await service.authenticate_user(UserLogin(username="testuser", password="wrongpassword"))
    assert exc.value.status_code == 401
    token_service.issue_token.assert_not_called()


@pytest.mark.asyncio
async def test_authenticate_unknown_user_same_message():
    mock_repo = AsyncMock()
    mock_repo.get_by_username.return_value = None

    service = AuthService(mock_repo, make_token_service())
    with pytest.raises(AuthError) as exc:
        await service.authenticate_user(UserLogin(username="nobody", password="whatever"))
    assert exc.value.message == "Incorrect username or password"


@pytest.mark.asyncio
async def test_logout_revokes_token():
    token_service = make_token_service()
    service = AuthService(AsyncMock(), token_service)

    await service.logout(UserPrincipal(id=5, username="steve", email="steve@example.com"))

    token_service.revoke.assert_awaited_once_with(5)


@pytest.mark.asyncio
async def test_admin_login():
    mock_repo = AsyncMock()
    mock_repo.get_by_username.return_value = {"id": 1, "username": "admin", "password": hash_password("s3cret!")}

    service = AdminAuthService(mock_repo, make_token_service())
    admin = await service.authenticate_admin(AdminLogin(username="admin", password="s3cret!"))
    assert admin == {"id": 1, "username": "admin", "token": "n" * 64}

    with pytest.raises(AuthError):
        await service.authenticate_admin(AdminLogin(username="admin", password="wrong"))
