"""Season settings: picks deadline and the one-way picks reveal."""

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from outwit.models.models import SeasonConfig

logger = logging.getLogger(__name__)


async def get_season_config(db: AsyncSession) -> SeasonConfig:
    result = await db.execute(select(SeasonConfig).where(SeasonConfig.id == 1))
    config = result.scalar_one_or_none()
    if config is None:
        config = SeasonConfig(id=1, picks_revealed=False, current_episode=0)
        db.add(config)
        await db.flush()
    return config


async def update_season(db: AsyncSession, **fields) -> SeasonConfig:
    """Apply commissioner edits (season name, picks deadline). A None deadline clears it."""
    config = await get_season_config(db)
    for name, value in fields.items():
        setattr(config, name, value)
    await db.flush()
    logger.info("Season config updated: %s", ", ".join(sorted(fields)) or "no changes")
    return config


async def reveal_picks(db: AsyncSession) -> SeasonConfig:
    """
    Make every player's picks and prophecy answers public. There is no way
    back: revealing twice is a no-op.
    """
    config = await get_season_config(db)
    if not config.picks_revealed:
        config.picks_revealed = True
        await db.flush()
        logger.info("Picks revealed")
    return config
