import asyncio
import logging

from storycatalog.infrastructure.database import async_session_factory
from storycatalog.services.rating_service import RatingService


async def rebuild_cache():
    async with async_session_factory() as session:
        # Recompute every story's cached rating from its rating rows
        refreshed = await RatingService(session).rebuild_all_cached_ratings()
        print(f"Rating cache rebuilt for {refreshed} stories.")


logging.basicConfig(level=logging.INFO)
asyncio.run(rebuild_cache())
