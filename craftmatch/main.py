from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from craftmatch.api.middleware import AuditMiddleware
from craftmatch.api.v1.router import v1_router
from craftmatch.common.exceptions import CraftMatchException
from craftmatch.common.logging import get_logger, setup_logging
from craftmatch.config import settings

logger = get_logger("app")

_FORM_CONTENT_TYPES = ("multipart/form-data", "application/x-www-form-urlencoded")


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    if settings.STORAGE_BACKEND == "local":
        Path(settings.STORAGE_LOCAL_PATH).mkdir(parents=True, exist_ok=True)
    logger.info("CraftMatch API starting (env=%s, storage=%s)", settings.APP_ENV, settings.STORAGE_BACKEND)
    yield


app = FastAPI(
    title="CraftMatch API",
    description="Marketplace connecting furniture clients with artisans",
    version="1.0.0",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

# CORS
origins = settings.ALLOWED_ORIGINS.split(",") if settings.ALLOWED_ORIGINS != "*" else ["*"]
app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(AuditMiddleware)


# --- Error envelope ---


@app.exception_handler(CraftMatchException)
async def craftmatch_exception_handler(request: Request, exc: CraftMatchException):
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    details: dict[str, str] = {}
    json_body_error = False
    is_form = request.headers.get("content-type", "").startswith(_FORM_CONTENT_TYPES)

    for error in exc.errors():
        loc = [str(part) for part in error.get("loc", ())]
        if loc and loc[0] == "body" and not is_form:
            json_body_error = True
        field = ".".join(loc[1:]) or (loc[0] if loc else "request")
        details.setdefault(field, error.get("msg", "Invalid value"))

    status_code = 422 if json_body_error else 400
    return JSONResponse(
        status_code=status_code,
        content={"error": {"code": "VALIDATION_ERROR", "message": "Invalid input data", "details": details}},
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content={"error": {"code": "INTERNAL_SERVER_ERROR", "message": "An unexpected error occurred"}},
    )


# API routes
app.include_router(v1_router, prefix="/api")

# Locally stored uploads
if settings.STORAGE_BACKEND == "local":
    app.mount(
        settings.STORAGE_PUBLIC_PREFIX,
        StaticFiles(directory=settings.STORAGE_LOCAL_PATH, check_dir=False),
        name="storage",
    )


@app.get("/health")
async def health_check():
    return {
        "status": "healthy",
        "service": "craftmatch",
        "version": "1.0.0",
        "env": settings.APP_ENV,
    }
