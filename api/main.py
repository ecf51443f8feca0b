import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from core import db, schema, settings
from core.errors import ConflictError, InvalidRequestError, NotFoundError, StorageFailure
from entries import router as entries_router
from hives import router as hives_router

logging.basicConfig(
    level=settings.log_level(),
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_: FastAPI):
    # Initialize the DB pool once per process.
    await db.init_pool()
    try:
        if settings.auto_create_schema():
            await schema.ensure_schema()
        yield
    finally:
        await db.close_pool()


app = FastAPI(title="Beekeeper API", lifespan=lifespan)

# Allow local frontend dev server to call this API from the browser.
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(hives_router.router, prefix="/api", tags=["hives"])
app.include_router(entries_router.logs_router, prefix="/api", tags=["logs"])
app.include_router(entries_router.tasks_router, prefix="/api", tags=["tasks"])


@app.exception_handler(InvalidRequestError)
async def handle_invalid_request(_: Request, exc: InvalidRequestError) -> JSONResponse:
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"detail": str(exc)})


@app.exception_handler(NotFoundError)
async def handle_not_found(_: Request, exc: NotFoundError) -> JSONResponse:
    return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content={"detail": str(exc)})


@app.exception_handler(ConflictError)
async def handle_conflict(_: Request, exc: ConflictError) -> JSONResponse:
    return JSONResponse(status_code=status.HTTP_409_CONFLICT, content={"detail": str(exc)})


@app.exception_handler(StorageFailure)
async def handle_storage_failure(request: Request, exc: StorageFailure) -> JSONResponse:
    logger.error("storage_failure method=%s path=%s", request.method, request.url.path, exc_info=exc)
    # Engine details stay in the log.
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"detail": "Storage is unavailable, try again later."},
    )


@app.get("/health")
def health() -> dict:
    return {"status": "ok"}


@app.get("/")
def root() -> dict:
    return {"message": "beekeeper api"}
