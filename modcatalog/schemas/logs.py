from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

@dataclass(frozen=True)
class LogFilters:
    """Already validated and normalized list filters."""
    method: Optional[str] = None
    path: Optional[str] = None
    status_code: Optional[int] = None
    user_id: Optional[int] = None
    admin_id: Optional[int] = None

class LogSummary(BaseModel):
    id: int
    method: str
    path: str
    ip: Optional[str] = None
    user_agent: Optional[str] = None
    status_code: Optional[int] = None
    response_time: Optional[int] = None
    user_id: Optional[int] = None
    username: Optional[str] = None
    admin_id: Optional[int] = None
    admin_name: Optional[str] = None
    request_body_preview: Optional[str] = None
    error_preview: Optional[str] = None
    created_at: datetime

class LogDetail(BaseModel):
    id: int
    method: str
    path: str
    ip: Optional[str] = None
    user_agent: Optional[str] = None
    status_code: Optional[int] = None
    response_time: Optional[int] = None
    user_id: Optional[int] = None
    username: Optional[str] = None
    admin_id: Optional[int] = None
    admin_name: Optional[str] = None
    request_body: Optional[str] = None
    error: Optional[str] = None
    created_at: datetime

class Pagination(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    page: int
    limit: int
    total: int
    total_pages: int = Field(..., alias="totalPages")

class LogListResponse(BaseModel):
    logs: List[LogSummary]
    pagination: Pagination

class OverallStats(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    total: int = 0
    avg_response_time: Optional[float] = Field(None, alias="avgResponseTime")
    max_response_time: Optional[int] = Field(None, alias="maxResponseTime")
    min_response_time: Optional[int] = Field(None, alias="minResponseTime")
    error_count: int = Field(0, alias="errorCount")

class MethodCount(BaseModel):
    method: str
    count: int

class PathStat(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    path: str
    count: int
    avg_response_time: Optional[float] = Field(None, alias="avgResponseTime")

class IpCount(BaseModel):
    ip: Optional[str] = None
    count: int

class LogStats(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    overall: OverallStats
    by_method: List[MethodCount] = Field(..., alias="byMethod")
    top_paths: List[PathStat] = Field(..., alias="topPaths")
    top_ips: List[IpCount] = Field(..., alias="topIPs")

class CleanupResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    message: str
    deleted_count: int = Field(..., alias="deletedCount")
    cutoff_date: datetime = Field(..., alias="cutoffDate")
