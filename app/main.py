import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from app.api.admin import router as admin_router
from app.api.routes import router
from app.core.config import get_settings
from app.core.database import engine
from app.models.people import create_tables

logging.basicConfig(
    level=get_settings().log_level,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create database tables on startup."""
    create_tables(engine)
    logger.info("Database tables created (if not existing) at %s", engine.url)
    yield

app = FastAPI(title="School QR Identity Service", lifespan=lifespan)
app.include_router(router)
app.include_router(admin_router)
if __name__ == "__main__":
	import uvicorn
	uvicorn.run("app.main:app", host="0.0.0.0", port=8000, reload=True)
