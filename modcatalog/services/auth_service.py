
import logging

from asyncpg.exceptions import UniqueViolationError

from ..core.principals import AdminPrincipal, UserPrincipal
from ..core.security import hash_password, verify_password
from ..exceptions import AuthError, ConflictError
from ..repositories.user_repository import AdminRepository, UserRepository
from ..schemas.auth import AdminLogin, UserCreate, UserLogin
from .token_service import TokenService

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = "Incorrect username or password"

class AuthService:
    def __init__(self, user_repo: UserRepository, token_service: TokenService):
        self.user_repo = user_repo
        self.token_service = token_service

    async def register_user(self, user_data: UserCreate) -> dict:
        # Check if user exists
        if await self.user_repo.get_by_username(user_data.username):
            raise ConflictError("Username already registered")
        if await self.user_repo.get_by_email(user_data.email):
            raise ConflictError("Email already registered")

        hashed_password = hash_password(user_data.password)
        token, expires_at = self.token_service.new_token()
        try:
            user_id = await self.user_repo.create_user(
                user_data.username, user_data.email, hashed_password, token, expires_at
            )
        except UniqueViolationError as exc:
            # lost a race with a concurrent registration
            if "email" in (exc.constraint_name or ""):
                raise ConflictError("Email already registered") from exc
            raise ConflictError("Username already registered") from exc

        logger.info("User registered", extra={"detail": {"user_id": user_id}})
        return {"id": user_id, "username": user_data.username, "email": user_data.email, "token": token}

    async def authenticate_user(self, login_data: UserLogin) -> dict:
        user = await self.user_repo.get_by_username(login_data.username)
        if not user or not verify_password(login_data.password, user["password"]):
            raise AuthError(INVALID_CREDENTIALS)

        token = await self.token_service.issue_token(user["id"])
        return {"id": user["id"], "username": user["username"], "email": user["email"], "token": token}

    async def logout(self, user: UserPrincipal) -> None:
        await self.token_service.revoke(user.id)


class AdminAuthService:
    def __init__(self, admin_repo: AdminRepository, token_service: TokenService):
        self.admin_repo = admin_repo
        self.token_service = token_service

    async def authenticate_admin(self, login_data: AdminLogin) -> dict:
        admin = await self.admin_repo.get_by_username(login_data.username)
        if not admin or not verify_password(login_data.password, admin["password"]):
            logger.warning("Failed admin login", extra={"detail": {"username": login_data.username}})
            raise AuthError(INVALID_CREDENTIALS)

        token = await self.token_service.issue_token(admin["id"])
        return {"id": admin["id"], "username": admin["username"], "token": token}

    async def logout(self, admin: AdminPrincipal) -> None:
        await self.token_service.revoke(admin.id)
