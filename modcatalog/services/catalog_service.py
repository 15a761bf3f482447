import logging
from typing import Dict, List, Optional

from asyncpg import Pool
from asyncpg.exceptions import UniqueViolationError

from ..core.validation import is_valid_category_filter
from ..db import run_in_transaction
from ..exceptions import ConflictError, NotFoundError, ValidationError
from ..repositories.category_repository import CategoryRepository
from ..repositories.mod_repository import SORT_CLAUSES, ModRepository
from ..schemas.catalog import CategoryIn, ModCreate, ModUpdate

logger = logging.getLogger(__name__)

ALL_CATEGORIES = "all"

class CatalogService:
    """
    Mods and categories.

    Every input check happens before the first query that depends on it, so
    a bad ``sortBy`` or category never produces a partial result.
    """

    def __init__(self, db: Pool):
        self.db = db
        self.mod_repo = ModRepository(db)
        self.category_repo = CategoryRepository(db)

    # ---- mods ----

    async def list_mods(self, category: Optional[str] = None, sort_by: Optional[str] = None) -> List[Dict]:
        sort_by = sort_by or "default"
        if sort_by not in SORT_CLAUSES:
            raise ValidationError("Invalid sort option")

        if not category or category == ALL_CATEGORIES:
            category = None
        if category is not None:
            if not is_valid_category_filter(category):
                raise ValidationError("Invalid category parameter")
            if not await self.category_repo.name_exists(category):
                raise ValidationError("Unknown category")

        return await self.mod_repo.list_mods(category, sort_by)

    async def get_mod(self, mod_id: int) -> Dict:
        mod = await self.mod_repo.get_mod(mod_id)
        if mod is None:
            raise NotFoundError("Mod not found")
        return mod

    async def create_mod(self, data: ModCreate) -> Dict:
        async def work(conn) -> Dict:
            await CategoryRepository(conn).share_lock_by_name(data.category)
            return await ModRepository(conn).create_mod(data.model_dump())

        mod = await run_in_transaction(self.db, work)
        logger.info("Mod created", extra={"detail": {"mod_id": mod["id"]}})
        return mod

    async def update_mod(self, mod_id: int, data: ModUpdate) -> Dict:
        async def work(conn) -> Optional[Dict]:
            await CategoryRepository(conn).share_lock_by_name(data.category)
            return await ModRepository(conn).update_mod(mod_id, data.model_dump())

        mod = await run_in_transaction(self.db, work)
        if mod is None:
            raise NotFoundError("Mod not found")
        return mod

    async def delete_mod(self, mod_id: int) -> Dict:
        mod = await self.mod_repo.delete_mod(mod_id)
        if mod is None:
            raise NotFoundError("Mod not found")
        logger.info("Mod deleted", extra={"detail": {"mod_id": mod_id}})
        return mod

    async def increment_downloads(self, mod_id: int) -> int:
        downloads = await self.mod_repo.increment_downloads(mod_id)
        if downloads is None:
            raise NotFoundError("Mod not found")
        return downloads

    # ---- categories ----

    async def list_categories(self) -> List[Dict]:
        return await self.category_repo.list_categories()

    async def get_category(self, category_id: int) -> Dict:
        category = await self.category_repo.get_category(category_id)
        if category is None:
            raise NotFoundError("Category not found")
        return category

    async def create_category(self, data: CategoryIn) -> Dict:
        try:
            return await self.category_repo.create_category(data.name, data.icon, data.description)
        except UniqueViolationError as exc:
            raise ConflictError("Category name already exists") from exc

    async def update_category(self, category_id: int, data: CategoryIn) -> Dict:
        try:
            category = await self.category_repo.update_category(
                category_id, data.name, data.icon, data.description
            )
        except UniqueViolationError as exc:
            raise ConflictError("Category name already exists") from exc
        if category is None:
            raise NotFoundError("Category not found")
        return category

    async def delete_category(self, category_id: int) -> Dict:
        async def work(conn) -> Dict:
            repo = CategoryRepository(conn)
            # mod writes share-lock the category, so the count below is final
            if not await repo.lock_category(category_id):
                raise NotFoundError("Category not found")
            found = await repo.get_with_mod_count(category_id)
            mod_count = found.pop("mod_count")
            if mod_count > 0:
                raise ConflictError(f"Category still has {mod_count} mods and cannot be deleted")
            await repo.delete_category(category_id)
            return found

        category = await run_in_transaction(self.db, work)
        logger.info("Category deleted", extra={"detail": {"category_id": category_id}})
        return category
