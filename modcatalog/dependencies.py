from datetime import timedelta
from typing import Optional

from fastapi import Depends, Header, Request

from .config import settings
from .core.principals import AdminPrincipal, UserPrincipal
from .db import get_db_pool
from .exceptions import AuthError
from .repositories.token_repository import TokenRepository
from .repositories.user_repository import AdminRepository, UserRepository
from .services.auth_service import AdminAuthService, AuthService
from .services.catalog_service import CatalogService
from .services.log_service import LogService
from .services.rating_service import RatingService
from .services.token_service import TokenService

MISSING_TOKEN = "Authentication token not provided"
INVALID_TOKEN = "Invalid or expired authentication token"

# Services

def build_user_token_service(db) -> TokenService:
    return TokenService(TokenRepository(db, "users"), timedelta(days=settings.USER_TOKEN_TTL_DAYS))

def build_admin_token_service(db) -> TokenService:
    return TokenService(TokenRepository(db, "admins"), timedelta(days=settings.ADMIN_TOKEN_TTL_DAYS))

async def get_user_token_service(db = Depends(get_db_pool)) -> TokenService:
    return build_user_token_service(db)

async def get_admin_token_service(db = Depends(get_db_pool)) -> TokenService:
    return build_admin_token_service(db)

async def get_auth_service(
    db = Depends(get_db_pool),
    token_service: TokenService = Depends(get_user_token_service),
) -> AuthService:
    return AuthService(UserRepository(db), token_service)

async def get_admin_auth_service(
    db = Depends(get_db_pool),
    token_service: TokenService = Depends(get_admin_token_service),
) -> AdminAuthService:
    return AdminAuthService(AdminRepository(db), token_service)

async def get_catalog_service(db = Depends(get_db_pool)) -> CatalogService:
    return CatalogService(db)

async def get_rating_service(db = Depends(get_db_pool)) -> RatingService:
    return RatingService(db)

async def get_log_service(db = Depends(get_db_pool)) -> LogService:
    return LogService(db)

# Principals

async def require_user(
    request: Request,
    authorization: Optional[str] = Header(None),
    token_service: TokenService = Depends(get_user_token_service),
) -> UserPrincipal:
    """Resolve the calling user from the raw token in ``Authorization``."""
    if not authorization:
        raise AuthError(MISSING_TOKEN)
    user = await token_service.validate(authorization.strip())
    if user is None:
        raise AuthError(INVALID_TOKEN)
    # read back only by the audit log middleware
    request.state.principal = user
    return user

async def require_admin(
    request: Request,
    authorization: Optional[str] = Header(None),
    token_service: TokenService = Depends(get_admin_token_service),
) -> AdminPrincipal:
    """Resolve the calling admin from the raw token in ``Authorization``."""
    if not authorization:
        raise AuthError(MISSING_TOKEN)
    admin = await token_service.validate(authorization.strip())
    if admin is None:
        raise AuthError(INVALID_TOKEN)
    request.state.principal = admin
    return admin
