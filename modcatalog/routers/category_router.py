from typing import List

from fastapi import APIRouter, Depends, status

from ..dependencies import get_catalog_service, require_admin
from ..schemas.catalog import CategoryIn, CategoryOut
from ..services.catalog_service import CatalogService

router = APIRouter(prefix="/api/categories", tags=["categories"])

@router.get("", response_model=List[CategoryOut])
async def list_categories(service: CatalogService = Depends(get_catalog_service)):
    return await service.list_categories()

@router.get("/{category_id}", response_model=CategoryOut)
async def get_category(category_id: int, service: CatalogService = Depends(get_catalog_service)):
    return await service.get_category(category_id)

@router.post(
    "",
    status_code=status.HTTP_201_CREATED,
    response_model=CategoryOut,
    dependencies=[Depends(require_admin)],
)
async def create_category(data: CategoryIn, service: CatalogService = Depends(get_catalog_service)):
    return await service.create_category(data)

@router.put("/{category_id}", response_model=CategoryOut, dependencies=[Depends(require_admin)])
async def update_category(
    category_id: int,
    data: CategoryIn,
    service: CatalogService = Depends(get_catalog_service)
):
    return await service.update_category(category_id, data)

@router.delete("/{category_id}", response_model=CategoryOut, dependencies=[Depends(require_admin)])
async def delete_category(category_id: int, service: CatalogService = Depends(get_catalog_service)):
    """Delete an unused category; refused while any mod still belongs to it"""
    return await service.delete_category(category_id)
