import logging
from typing import Dict, List

from asyncpg import Pool
from asyncpg.exceptions import UniqueViolationError

from ..core.principals import UserPrincipal
from ..db import run_in_transaction
from ..exceptions import ConflictError, NotFoundError
from ..repositories.mod_repository import ModRepository
from ..repositories.rating_repository import RatingRepository

logger = logging.getLogger(__name__)

ALREADY_RATED = "You have already rated this mod"

class RatingService:
    """
    One rating per (mod, user); the mod's mean rating is rewritten in the
    same transaction as every insert.
    """

    def __init__(self, db: Pool):
        self.db = db
        self.rating_repo = RatingRepository(db)

    async def list_ratings(self, mod_id: int) -> List[Dict]:
        return await self.rating_repo.list_for_mod(mod_id)

    async def has_rated(self, mod_id: int, user: UserPrincipal) -> Dict:
        existing = await self.rating_repo.get_user_rating(mod_id, user.id)
        return {
            "has_rated": existing is not None,
            "rating": existing["rating"] if existing else None,
        }

    async def rate(self, mod_id: int, user: UserPrincipal, value: int) -> Dict:
        async def work(conn) -> Dict:
            ratings = RatingRepository(conn)
            mods = ModRepository(conn)

            # serializes concurrent ratings of the same mod
            if not await mods.lock_mod(mod_id):
                raise NotFoundError("Mod not found")
            if await ratings.get_user_rating(mod_id, user.id):
                raise ConflictError(ALREADY_RATED)

            rating_id = await ratings.insert_rating(mod_id, user.id, user.username, value)
            average = await ratings.average_for_mod(mod_id)
            await mods.set_rating(mod_id, average)
            return {"id": rating_id, "mod_id": mod_id, "user_id": user.id, "rating": value, "average": average}

        try:
            result = await run_in_transaction(self.db, work)
        except UniqueViolationError as exc:
            # concurrent submission for the same pair won the insert
            raise ConflictError(ALREADY_RATED) from exc

        logger.info(
            "Mod rated",
            extra={"detail": {"mod_id": mod_id, "user_id": user.id, "average": result.pop("average")}},
        )
        return result
