from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.config import get_settings
from app.db import get_engine, init_models, dispose_engine
from app.logging_config import logger
from utils.errors import IngestionError, public_message

settings = get_settings()

@asynccontextmanager
async def lifespan(app: FastAPI):
    engine = get_engine()
    try:
        async with engine.connect() as conn:
            await conn.exec_driver_sql("select 1")
    except Exception:
        logger.exception(
            "DB startup ping failed (url_scheme=%s)",
            str(engine.url).split("://", 1)[0],
        )
        raise  # re-raise so the process manager logs the root error
    # dev-only: create tables
    await init_models()
    yield
    await dispose_engine()

app = FastAPI(title=settings.APP_NAME, lifespan=lifespan)

# Routers: imported after app exists; they must not create engines at import time.
from app.routers import buyers, uploads

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(buyers.router)
app.include_router(uploads.router)


@app.exception_handler(IngestionError)
async def ingestion_error_handler(request: Request, exc: IngestionError):
    logger.warning(f"ingestion ::::: {type(exc).__name__}: {exc.detail}")
    return JSONResponse(
        status_code=exc.status_code,
        content={"message": public_message(exc, get_settings().is_production)},
    )


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"message": exc.detail},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception(f"unhandled error on {request.method} {request.url.path}")
    if get_settings().is_production:
        message = "Internal server error"
    else:
        message = f"An error occurred: {exc}"
    return JSONResponse(status_code=500, content={"message": message})


@app.get("/health")
def health():
    return {"status": "ok", "message": "Server is running", "stage": settings.STAGE}
