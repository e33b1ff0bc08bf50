from apscheduler.schedulers.asyncio import AsyncIOScheduler
import logging
from fastapi import FastAPI
from contextlib import asynccontextmanager

from citymayor.authentication.session_authentication import SessionAuthentication
from citymayor.db import engine
from citymayor.models.schemas import Base
from citymayor.routers import admin, auth, game
from citymayor.services import catalog_db

session_auth = SessionAuthentication()
scheduler = AsyncIOScheduler()
logging.basicConfig(level=logging.INFO)


@asynccontextmanager
async def lifespan(app):
    """Create the tables and the default catalog.
    This function is called to start the server.
    """
    async with engine.begin() as conn:
        # テーブル作成 (既存テーブルがある場合はスキップされる)
        await conn.run_sync(Base.metadata.create_all)
    await catalog_db.seed_default_catalog()

    # Expired session tokens are useless, delete them
    scheduler.add_job(
        session_auth.delete_expired_sessions,
        "interval",
        hours=1,
    )
    scheduler.start()
    try:
        yield
    finally:
        scheduler.shutdown()
        logging.info("Stop Server")


app = FastAPI(title="City Mayor", lifespan=lifespan)
app.include_router(auth.auth_router)
app.include_router(game.game_router)
app.include_router(admin.admin_router)


# if __name__ == "__main__":
#     uvicorn.run(app, host="0.0.0.0", port=8080, reload=True)
