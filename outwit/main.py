import logging
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
from outwit.core.config import get_settings
from outwit.core.database import engine, Base
from outwit.api import castaways, episodes, leaderboard, picks, prophecy, scores, scoring_rules, season

# Import all models so Base.metadata is populated for create_all
import outwit.models.models  # noqa: F401

settings = get_settings()

logging.basicConfig(level=settings.log_level)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Idempotent: create_all skips existing tables
    logger.info("Starting up, creating database tables...")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables ready.")
    yield
    await engine.dispose()


app = FastAPI(
    title=settings.app_name,
    description="Outwit Open scoring engine: Trusted Trio, Icky Pick and Prophecy leaderboards.",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[o.strip() for o in settings.cors_origins.split(",")],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# API routers
app.include_router(scores.router)
app.include_router(leaderboard.router)
app.include_router(picks.router)
app.include_router(episodes.router)
app.include_router(prophecy.router)
app.include_router(castaways.router)
app.include_router(season.router)
app.include_router(scoring_rules.router)


@app.get("/health")
async def health():
    return {"status": "healthy"}
