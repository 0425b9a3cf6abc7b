import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from boardsync.config import settings
from boardsync.database import create_engine
from boardsync.errors import CriticalStepError
from boardsync.middleware import DeliveryMiddleware
from boardsync.routers import events, metrics
from boardsync.services.lifecycle import LifecycleRouter
from boardsync.stores.blobs import BlobStore
from boardsync.stores.mirror import MirrorStore
from boardsync.stores.primary import PrimaryStore
from boardsync.stores.search import SearchIndex

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logging.basicConfig(
        level=settings.LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    # Startup
    engine = create_engine()
    mirror = MirrorStore()
    await mirror.connect()
    blobs = BlobStore()
    search = SearchIndex()
    app.state.lifecycle = LifecycleRouter(PrimaryStore(engine), mirror, blobs, search)
    logger.info("boardsync started (%s)", settings.APP_ENV)
    yield
    # Shutdown
    await search.aclose()
    await blobs.aclose()
    await mirror.disconnect()
    await engine.dispose()


app = FastAPI(
    title="boardsync",
    description="Lifecycle event handlers keeping board, account and upload stores consistent",
    version="1.0.0",
    lifespan=lifespan,
)

# Middleware
app.add_middleware(DeliveryMiddleware)


@app.exception_handler(CriticalStepError)
async def critical_step_handler(request: Request, exc: CriticalStepError):
    # A 5xx makes the trigger source redeliver the whole event.
    return JSONResponse(
        status_code=500,
        content={"detail": str(exc.cause), "event": exc.event, "step": exc.step},
    )


# Routers
app.include_router(events.router)
app.include_router(metrics.router)

@app.get("/health")
async def health():
    return {"status": "healthy", "version": "1.0.0"}
