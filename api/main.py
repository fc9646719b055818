import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from airports import repository as airports_repository
from airports import router as airports_router
from carry import repository as carry_repository
from carry import router as carry_router
from core import db, settings
from core.log_config import configure_logging

logger = logging.getLogger("api")


@asynccontextmanager
async def lifespan(_: FastAPI):
    configure_logging()
    # Initialize the DB pool once per process, then make sure tables exist.
    await db.init_pool()
    try:
        await carry_repository.ensure_schema()
        await airports_repository.ensure_schema()
        logger.info("schema_ready")
        yield
    finally:
        await db.close_pool()


app = FastAPI(lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(StarletteHTTPException)
async def http_error(_: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": str(exc.detail)},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_error(_: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    first = errors[0] if errors else {}
    location = first.get("loc") or ()
    if location and location[0] == "path":
        message = "Bad id"
    else:
        field = ".".join(str(part) for part in location[1:]) or "body"
        message = f"Bad request: {field}"
    return JSONResponse(status_code=400, content={"error": message})


@app.exception_handler(Exception)
async def unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    # Cause stays in the server log only.
    logger.exception("request_failed method=%s path=%s", request.method, request.url.path, exc_info=exc)
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


app.include_router(carry_router.router, tags=["carry"])
app.include_router(airports_router.router, tags=["airports"])


@app.get("/health")
def health() -> dict:
    return {"status": "ok"}


@app.get("/")
def root() -> dict:
    return {"message": "carry-api"}
