from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import StreamingResponse

from ..dependencies import get_log_service, require_admin
from ..schemas.logs import CleanupResponse, LogDetail, LogListResponse, LogStats
from ..services.log_service import LogService, build_filters

router = APIRouter(prefix="/api/logs", tags=["logs"], dependencies=[Depends(require_admin)])

@router.get("", response_model=LogListResponse)
async def list_logs(
    page: int = 1,
    limit: int = 50,
    method: Optional[str] = None,
    path: Optional[str] = None,
    status_code: Optional[int] = Query(None, alias="statusCode"),
    user_id: Optional[int] = Query(None, alias="userId"),
    admin_id: Optional[int] = Query(None, alias="adminId"),
    service: LogService = Depends(get_log_service)
):
    """Newest-first page of API logs"""
    filters = build_filters(method, path, status_code, user_id, admin_id)
    return await service.list_logs(filters, page, limit)

# Static segments are registered before /{log_id}

@router.get("/stats", response_model=LogStats)
async def log_stats(service: LogService = Depends(get_log_service)):
    return await service.get_log_stats()

@router.get("/export")
async def export_logs(
    limit: int = 1000,
    format: str = "csv",
    service: LogService = Depends(get_log_service)
):
    """Stream up to ``limit`` newest log rows as CSV or JSON"""
    service.check_export_params(limit, format)

    filename = f"logs_{date.today().isoformat()}.{format}"
    headers = {"Content-Disposition": f"attachment; filename={filename}"}
    if format == "json":
        return StreamingResponse(
            service.export_json(limit),
            media_type="application/json; charset=utf-8",
            headers=headers,
        )
    return StreamingResponse(
        service.export_csv(limit),
        media_type="text/csv; charset=utf-8",
        headers=headers,
    )

@router.delete("/cleanup", response_model=CleanupResponse)
async def cleanup_logs(days: int = 30, service: LogService = Depends(get_log_service)):
    """Delete log rows older than ``days`` (1-365)"""
    return await service.cleanup(days)

@router.get("/{log_id}", response_model=LogDetail)
async def get_log(log_id: int, service: LogService = Depends(get_log_service)):
    return await service.get_log_detail(log_id)
