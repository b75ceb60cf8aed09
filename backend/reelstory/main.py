from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from reelstory.config import get_settings
from reelstory.database import engine, Base
from reelstory.api import admin, dramas, episodes, favorites, public
from reelstory.api.deps import get_auth_client
from reelstory.errors import register_exception_handlers
from reelstory.services.scheduler import start_scheduler, stop_scheduler
import reelstory.models  # noqa: F401  register tables on Base.metadata

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)
settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    logger.info("Starting ReelStory API...")
    try:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
    except Exception as e:
        logger.warning(f"Could not create tables on startup (run migrations?): {e}")

    if not settings.supabase_url:
        logger.warning("SUPABASE_URL is not set; every authenticated request will fail")

    start_scheduler()
    yield
    # Shutdown
    stop_scheduler()
    await get_auth_client().close()
    await engine.dispose()
    logger.info("Shutdown complete")


app = FastAPI(
    title=settings.app_name,
    version="1.0.0",
    lifespan=lifespan,
)

origins = settings.get_cors_origins()
app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=origins != ["*"],  # credentials cannot be combined with "*"
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

# Routers
app.include_router(admin.router)
app.include_router(dramas.router)
app.include_router(episodes.router)
app.include_router(public.router)
app.include_router(favorites.router)


@app.get("/health")
async def health():
    return {"status": "ok", "app": settings.app_name}
