import asyncio
import logging

import asyncpg
from asyncpg import Pool

from .config import settings
from .core.security import generate_password, hash_password
from .repositories.category_repository import CategoryRepository
from .repositories.mod_repository import ModRepository
from .repositories.user_repository import AdminRepository

logger = logging.getLogger(__name__)

DEFAULT_ADMIN_USERNAME = "admin"

CATEGORIES = [
    {"name": "adventure", "icon": "⚔️", "description": "Adventure and exploration"},
    {"name": "technology", "icon": "⚡", "description": "Technology and automation"},
    {"name": "magic", "icon": "✨", "description": "Magic and fantasy"},
    {"name": "decoration", "icon": "🏠", "description": "Building and decoration"},
    {"name": "utility", "icon": "🔧", "description": "Utilities and tools"},
]

MODS = [
    {
        "name": "Industrial Age",
        "description": "A complete industrial system with automated production lines",
        "category": "technology",
        "tags": ["technology", "automation"],
        "rating": 4.8,
        "downloads": 15000,
        "icon": "⚡",
        "cloud_link": "https://pan.baidu.com/s/example1",
    },
    {
        "name": "Thaumic Age",
        "description": "Explore the secrets of magic and learn powerful spells",
        "category": "magic",
        "tags": ["magic", "exploration"],
        "rating": 5.0,
        "downloads": 25000,
        "icon": "✨",
        "cloud_link": "https://pan.baidu.com/s/example2",
    },
    {
        "name": "Twilight Forest",
        "description": "A brand new dimension to explore, with powerful bosses",
        "category": "adventure",
        "tags": ["adventure", "boss"],
        "rating": 4.9,
        "downloads": 30000,
        "icon": "🗡️",
        "cloud_link": "https://pan.baidu.com/s/example3",
    },
    {
        "name": "Architecture Craft",
        "description": "Detailed decorative blocks for the perfect build",
        "category": "decoration",
        "tags": ["decoration", "building"],
        "rating": 4.7,
        "downloads": 12000,
        "icon": "🏠",
        "cloud_link": "https://pan.baidu.com/s/example4",
    },
    {
        "name": "JEI Item Manager",
        "description": "Powerful item lookup and recipe viewer",
        "category": "utility",
        "tags": ["utility", "tools"],
        "rating": 4.9,
        "downloads": 50000,
        "icon": "🔧",
        "cloud_link": "https://pan.baidu.com/s/example5",
    },
    {
        "name": "Applied Energistics 2",
        "description": "An advanced energy and storage network",
        "category": "technology",
        "tags": ["technology", "energy"],
        "rating": 4.9,
        "downloads": 20000,
        "icon": "🔬",
        "cloud_link": "https://pan.baidu.com/s/example6",
    },
    {
        "name": "The Aether",
        "description": "A sky dimension full of floating islands to explore",
        "category": "adventure",
        "tags": ["adventure", "dimension"],
        "rating": 4.8,
        "downloads": 18000,
        "icon": "🏰",
        "cloud_link": "https://pan.baidu.com/s/example7",
    },
    {
        "name": "Blood Magic",
        "description": "Powerful magic paid for with your own life force",
        "category": "magic",
        "tags": ["magic", "dark"],
        "rating": 4.7,
        "downloads": 22000,
        "icon": "🌙",
        "cloud_link": "https://pan.baidu.com/s/example8",
    },
]

async def seed_admin(pool: Pool) -> None:
    """
    Create the single admin account on first boot.

    The generated password is printed once and only its hash is stored.
    """
    admins = AdminRepository(pool)
    if await admins.count() > 0:
        return

    password = generate_password()
    await admins.create_admin(DEFAULT_ADMIN_USERNAME, hash_password(password))
    logger.info("Default admin account created")
    print("=================================")
    print("Default admin account:")
    print(f"  username: {DEFAULT_ADMIN_USERNAME}")
    print(f"  password: {password}")
    print("=================================")

async def seed_catalog(pool: Pool) -> None:
    categories = CategoryRepository(pool)
    if await categories.count() == 0:
        for category in CATEGORIES:
            await categories.create_category(category["name"], category["icon"], category["description"])
        logger.info(f"Seeded {len(CATEGORIES)} categories")

    mods = ModRepository(pool)
    if await mods.count() == 0:
        for mod in MODS:
            await mods.create_mod(mod)
        logger.info(f"Seeded {len(MODS)} mods")

async def seed_data(pool: Pool) -> None:
    await seed_admin(pool)
    await seed_catalog(pool)

async def main():
    from .logging_config import setup_logging
    from .schema import ensure_schema

    setup_logging(settings.LOG_LEVEL)
    pool = await asyncpg.create_pool(settings.DATABASE_URL, min_size=1, max_size=2)
    try:
        await ensure_schema(pool)
        await seed_data(pool)
    finally:
        await pool.close()

if __name__ == "__main__":
    asyncio.run(main())
