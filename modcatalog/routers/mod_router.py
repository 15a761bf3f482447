from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status

from ..core.principals import UserPrincipal
from ..dependencies import get_catalog_service, get_rating_service, require_admin, require_user
from ..schemas.catalog import (
    DownloadResponse,
    ModCreate,
    ModOut,
    ModUpdate,
    RatedResponse,
    RateRequest,
    RateResponse,
    RatingOut,
)
from ..services.catalog_service import CatalogService
from ..services.rating_service import RatingService

router = APIRouter(prefix="/api/mods", tags=["mods"])

@router.get("", response_model=List[ModOut])
async def list_mods(
    category: Optional[str] = None,
    sort_by: Optional[str] = Query(None, alias="sortBy"),
    service: CatalogService = Depends(get_catalog_service)
):
    """
    Browse the catalog, optionally filtered by category name and sorted by
    ``default``, ``rating``, ``downloads`` or ``name``
    """
    return await service.list_mods(category, sort_by)

@router.get("/{mod_id}", response_model=ModOut)
async def get_mod(mod_id: int, service: CatalogService = Depends(get_catalog_service)):
    return await service.get_mod(mod_id)

@router.post("/{mod_id}/download", response_model=DownloadResponse)
async def download_mod(mod_id: int, service: CatalogService = Depends(get_catalog_service)):
    downloads = await service.increment_downloads(mod_id)
    return {"success": True, "downloads": downloads}

@router.post(
    "",
    status_code=status.HTTP_201_CREATED,
    response_model=ModOut,
    dependencies=[Depends(require_admin)],
)
async def create_mod(data: ModCreate, service: CatalogService = Depends(get_catalog_service)):
    return await service.create_mod(data)

@router.put("/{mod_id}", response_model=ModOut, dependencies=[Depends(require_admin)])
async def update_mod(
    mod_id: int,
    data: ModUpdate,
    service: CatalogService = Depends(get_catalog_service)
):
    return await service.update_mod(mod_id, data)

@router.delete("/{mod_id}", response_model=ModOut, dependencies=[Depends(require_admin)])
async def delete_mod(mod_id: int, service: CatalogService = Depends(get_catalog_service)):
    return await service.delete_mod(mod_id)

# Ratings

@router.get("/{mod_id}/ratings", response_model=List[RatingOut])
async def list_ratings(mod_id: int, service: RatingService = Depends(get_rating_service)):
    return await service.list_ratings(mod_id)

@router.get("/{mod_id}/rated", response_model=RatedResponse)
async def has_rated(
    mod_id: int,
    user: UserPrincipal = Depends(require_user),
    service: RatingService = Depends(get_rating_service)
):
    return await service.has_rated(mod_id, user)

@router.post("/{mod_id}/rate", response_model=RateResponse)
async def rate_mod(
    mod_id: int,
    data: RateRequest,
    user: UserPrincipal = Depends(require_user),
    service: RatingService = Depends(get_rating_service)
):
    """Rate a mod once, 1 to 5; the mod's mean rating is recomputed"""
    rating = await service.rate(mod_id, user, data.rating)
    return {"success": True, "rating": rating}
