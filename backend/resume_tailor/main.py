import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from resume_tailor import config
from resume_tailor.db import engine
from resume_tailor.errors import ResumeServiceError
from resume_tailor.models_db import Base
from resume_tailor.telemetry import setup_telemetry

logging.basicConfig(level=config.LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
logger = logging.getLogger(__name__)

from resume_tailor.resume_generator import router as resume_generator_router
from resume_tailor.resume_export import router as resume_export_router
from resume_tailor.profile import router as profile_router
from resume_tailor.settings import router as settings_router
from resume_tailor.cost_estimator import router as cost_estimator_router
from resume_tailor.history import router as history_router
from resume_tailor.admin import router as admin_router


@asynccontextmanager
async def lifespan(app: FastAPI):
    # local SQLite databases are created on the fly; Postgres is managed by alembic
    if engine.dialect.name == "sqlite":
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("SQLite schema ensured")
    yield
    await engine.dispose()


if config.ENABLE_TELEMETRY:
    setup_telemetry()

app = FastAPI(title="Resume Tailor API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(resume_generator_router, prefix="/api", tags=["resume-generator"])
app.include_router(resume_export_router, prefix="/api", tags=["export"])
app.include_router(profile_router, prefix="/api", tags=["profile"])
app.include_router(settings_router, prefix="/api", tags=["settings"])
app.include_router(cost_estimator_router, prefix="/api", tags=["cost"])
app.include_router(history_router, prefix="/api", tags=["history"])
app.include_router(admin_router, prefix="/api")


@app.exception_handler(ResumeServiceError)
async def resume_service_exception_handler(request: Request, exc: ResumeServiceError):
    logger.warning(f"{request.method} {request.url.path} -> {exc.status_code}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.detail},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    logger.error(f"Validation error for {request.url}: {exc.errors()}")
    return JSONResponse(
        status_code=422,
        content={"error": "Invalid request", "detail": jsonable_errors(exc)},
    )


def jsonable_errors(exc: RequestValidationError) -> list:
    # ctx may carry the raw ValueError from a model validator
    return [
        {key: value for key, value in error.items() if key in ("loc", "msg", "type")}
        for error in exc.errors()
    ]


@app.get("/")
def read_root():
    return {"message": "Welcome to the Resume Tailor API"}


@app.get("/health")
def health():
    return {"status": "ok"}
