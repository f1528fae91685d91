from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from starlette.middleware.cors import CORSMiddleware

from arena.config import config, environment
from arena.database import database
from arena.routes import matches, players, teams, tournaments
from arena.utils.alembic import run_startup_migrations
from arena.utils.logging import logger


@asynccontextmanager
async def lifespan(_: FastAPI) -> AsyncIterator[None]:
    logger.info("Starting arena in %s mode", environment.value)
    run_startup_migrations()
    await database.connect()
    yield
    await database.disconnect()


app = FastAPI(title="Arena tournament API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[origin.strip() for origin in config.cors_origins.split(",")],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

for router in (tournaments.router, teams.router, matches.router, players.router):
    app.include_router(router)


@app.get("/ping")
async def ping() -> str:
    return "ping"
