"""
Seed script: creates the cast, the season config and the default players.
Run with: python -m outwit.scripts.seed
"""
import asyncio

from sqlalchemy import select
from outwit.core.database import AsyncSessionLocal, engine, Base
from outwit.models.models import Castaway, Player
from outwit.services.season import get_season_config

CASTAWAY_TRIBES = {
    "VATU": ["Colby", "Genevieve", "Rizzo", "Angelina", "Q", "Stephenie", "Kyle", "Aubry"],
    "CILA": ["Joe", "Savannah", "Christian", "Cirie", "Ozzy", "Emily", "Rick", "Jenna"],
    "KALO": ["Jonathan", "Dee", "Mike", "Kamilla", "Charlie", "Tiffany", "Coach", "Chrissy"],
}

PLAYERS = [
    {"display_name": "Commissioner", "is_commissioner": True},
]


async def seed(db_engine=engine, session_factory=AsyncSessionLocal):
    # Create tables if they don't exist
    async with db_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with session_factory() as db:
        for tribe, names in CASTAWAY_TRIBES.items():
            for name in names:
                result = await db.execute(select(Castaway).where(Castaway.name == name))
                if result.scalar_one_or_none():
                    print(f"  Castaway '{name}' already exists, skipping.")
                    continue
                db.add(Castaway(name=name, original_tribe=tribe, current_tribe=tribe, is_active=True))
                print(f"  Created castaway: {name} ({tribe})")

        for player_data in PLAYERS:
            result = await db.execute(
                select(Player).where(Player.display_name == player_data["display_name"])
            )
            if result.scalar_one_or_none():
                print(f"  Player '{player_data['display_name']}' already exists, skipping.")
                continue
            db.add(Player(**player_data))
            print(f"  Created player: {player_data['display_name']}")

        config = await get_season_config(db)
        print(f"  Season config: {config.season_name}, current episode {config.current_episode}")

        await db.commit()

    print("\nSeed complete!")


if __name__ == "__main__":
    print("Seeding Outwit Open...\n")
    asyncio.run(seed())
