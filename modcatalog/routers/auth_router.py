
from fastapi import APIRouter, Depends, status

from ..core.principals import UserPrincipal
from ..dependencies import get_auth_service, require_user
from ..limiter import limiter
from ..schemas.auth import AuthResponse, UserCreate, UserLogin, VerifyResponse
from ..schemas.common import MessageResponse
from ..services.auth_service import AuthService

router = APIRouter(prefix="/api/auth", tags=["auth"])

@router.post(
    "/register",
    status_code=status.HTTP_201_CREATED,
    response_model=AuthResponse,
    dependencies=[Depends(limiter.limit(scope="auth:register"))],
)
async def register(
    user_data: UserCreate,
    service: AuthService = Depends(get_auth_service)
):
    """Register a new user and sign them in"""
    user = await service.register_user(user_data)
    return {"message": "Registration successful", "user": user}

@router.post(
    "/login",
    response_model=AuthResponse,
    dependencies=[Depends(limiter.limit(scope="auth:login"))],
)
async def login(
    login_data: UserLogin,
    service: AuthService = Depends(get_auth_service)
):
    """Exchange username and password for a fresh token"""
    user = await service.authenticate_user(login_data)
    return {"message": "Login successful", "user": user}

@router.get("/verify", response_model=VerifyResponse)
async def verify(user: UserPrincipal = Depends(require_user)):
    return {"user": {"id": user.id, "username": user.username, "email": user.email}}

@router.post("/logout", response_model=MessageResponse)
async def logout(
    user: UserPrincipal = Depends(require_user),
    service: AuthService = Depends(get_auth_service)
):
    await service.logout(user)
    return {"message": "Logout successful"}
