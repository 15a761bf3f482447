from fastapi import APIRouter, Depends

from ..core.principals import AdminPrincipal
from ..dependencies import get_admin_auth_service, require_admin
from ..limiter import limiter
from ..schemas.auth import AdminAuthResponse, AdminLogin
from ..schemas.common import MessageResponse
from ..services.auth_service import AdminAuthService

router = APIRouter(prefix="/api/admin", tags=["admin"])

@router.post(
    "/login",
    response_model=AdminAuthResponse,
    dependencies=[Depends(limiter.limit(scope="admin:login"))],
)
async def admin_login(
    login_data: AdminLogin,
    service: AdminAuthService = Depends(get_admin_auth_service)
):
    admin = await service.authenticate_admin(login_data)
    return {"message": "Login successful", "admin": admin}

@router.post("/logout", response_model=MessageResponse)
async def admin_logout(
    admin: AdminPrincipal = Depends(require_admin),
    service: AdminAuthService = Depends(get_admin_auth_service)
):
    await service.logout(admin)
    return {"message": "Logout successful"}
