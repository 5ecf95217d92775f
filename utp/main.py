"""
FastAPI application - entry point of the text pipeline service
"""
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import RedirectResponse

from utp.api.dependencies import build_pipeline
from utp.api.v1.router import api_router
from utp.config import get_settings
from utp.core.logging import get_logger, setup_logging
from utp.infrastructure.storage.content_store import InMemoryContentStore

settings = get_settings()
setup_logging(
    log_level=settings.LOG_LEVEL,
    is_debug=settings.DEBUG,
    log_format=settings.LOG_FORMAT,
    service=settings.APP_NAME,
)
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    FastAPI lifecycle
    Builds the pipeline and the content store on startup, closes backends on shutdown
    """
    logger.info(
        "Starting text pipeline service",
        app_name=settings.APP_NAME,
        version=settings.APP_VERSION,
        debug=settings.DEBUG
    )

    app.state.pipeline = build_pipeline(settings)
    app.state.content_store = InMemoryContentStore()

    yield

    logger.info("Shutting down text pipeline service")
    await app.state.pipeline.close()


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Universal text pipeline - multi-source text detection, merging and speech highlighting",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(api_router)


@app.get("/", include_in_schema=False)
async def root():
    """Redirect to the docs"""
    return RedirectResponse(url="/docs")


@app.get("/ping", include_in_schema=False)
async def ping():
    return {"status": "pong"}


if __name__ == "__main__":
    import uvicorn

    logger.info(
        "Starting server",
        host=settings.HOST,
        port=settings.PORT
    )

    uvicorn.run(
        "utp.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
        log_level=settings.LOG_LEVEL.lower()
    )
