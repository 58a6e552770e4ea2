from fastapi import FastAPI, Request
from listing_engine import config
from listing_engine.db import Base, engine
from listing_engine.api.routes import router as api_router
from listing_engine.utils import get_logger
import listing_engine.models  # noqa: F401 ensure models are imported so tables are known

logger = get_logger(__name__)

# create FastAPI instance
app = FastAPI()
app.include_router(api_router)


@app.middleware("http")
async def owner_from_gateway(request: Request, call_next):
    # the auth gateway in front of this service verifies the caller and
    # forwards the owner id in OWNER_ID_HEADER; write routes read request.state.owner_id
    owner_id = (request.headers.get(config.OWNER_ID_HEADER) or "").strip()
    if owner_id:
        request.state.owner_id = owner_id
    return await call_next(request)


@app.on_event("startup")
def on_startup_create_tables():
    # Ensure database tables are created on startup
    Base.metadata.create_all(bind=engine)
    logger.info("Listing tables ready")
