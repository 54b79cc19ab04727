# src/app.py
import logging
import os
from pathlib import Path
from fastapi import FastAPI, Request, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.staticfiles import StaticFiles
from fastapi.openapi.utils import get_openapi

from routes.auth import router as auth_router
from routes.user import router as user_router
from routes.admin import router as admin_router
from routes.profiles import builder
from routes.property import property
from routes.social.routes import router as social_router
from routes.visit import router as visit_router
from routes.notification import router as notification_router
from routes.chat import router as chat_router
from routes.property_view import router as property_view_router
from routes.city import router as city_router

from config.db import engine, SessionLocal
from config.settings import CORS_ORIGINS, LOG_LEVEL
from model.base import Base
from src.admin_service import create_default_super_admin
from src.builder_workflow import InvalidStatusTransitionError
from src.visit_service import VisitStateError

from model import load_all_models
load_all_models()

logger = logging.getLogger(__name__)


app = FastAPI(title="Zuhaush API", version="1.0.0")

# Local storage backend writes here; S3 deployments simply leave it empty
uploads_dir = Path(os.getenv("UPLOAD_DIR", "uploads"))
uploads_dir.mkdir(parents=True, exist_ok=True)
app.mount("/uploads", StaticFiles(directory=str(uploads_dir)), name="uploads")

def custom_openapi():
    if app.openapi_schema:
        return app.openapi_schema
    openapi_schema = get_openapi(
        title="Zuhaush API",
        version="1.0.0",
        routes=app.routes,
    )
    openapi_schema.setdefault("components", {}).setdefault("securitySchemes", {})["BearerAuth"] = {
        "type": "http",
        "scheme": "bearer",
        "bearerFormat": "JWT",
    }
    # Apply globally so all operations require Bearer unless overridden
    openapi_schema["security"] = [{"BearerAuth": []}]
    app.openapi_schema = openapi_schema
    return app.openapi_schema
app.openapi = custom_openapi

logging.basicConfig(level=getattr(logging, LOG_LEVEL.upper(), logging.INFO))
logger.info("Zuhaush API starting…")

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_methods=["*"],
    allow_headers=["*"],
    allow_credentials=True,
)

app.include_router(auth_router)  # /v1/auth
app.include_router(user_router)  # /v1/users
app.include_router(builder.router)  # /v1/builders
app.include_router(admin_router, prefix="/v1/admins")
app.include_router(property.router)  # /v1/properties
app.include_router(social_router)  # likes and comments under /v1
app.include_router(visit_router)
app.include_router(notification_router)
app.include_router(chat_router)
app.include_router(property_view_router)
app.include_router(city_router)


# --- Exception handlers and security headers ---
@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    logger.warning("Validation error on %s %s: %s", request.method, request.url.path, exc.errors())
    return JSONResponse(status_code=400, content={
        "code": "validation_error",
        "message": "Invalid request",
        "errors": jsonable_encoder(exc.errors()),
    })

@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    # 4xx/5xx raised intentionally in code
    level = logging.WARNING if 400 <= exc.status_code < 500 else logging.ERROR
    logger.log(level, "HTTPException %s on %s %s: %s", exc.status_code, request.method, request.url.path, exc.detail)
    return JSONResponse(status_code=exc.status_code, content={
        "code": "http_error",
        "message": exc.detail,
    }, headers=getattr(exc, "headers", None))

@app.exception_handler(InvalidStatusTransitionError)
@app.exception_handler(VisitStateError)
async def domain_guard_handler(request: Request, exc: Exception):
    logger.warning("Rejected state change on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=400, content={
        "code": "http_error",
        "message": str(exc),
    })

@app.middleware("http")
async def add_security_headers(request: Request, call_next):
    response = await call_next(request)
    response.headers.setdefault("X-Content-Type-Options", "nosniff")
    response.headers.setdefault("X-Frame-Options", "DENY")
    response.headers.setdefault("Referrer-Policy", "strict-origin-when-cross-origin")
    return response


# NOTE: FastAPI recommends lifespan context for newer apps; startup event is fine for dev.
@app.on_event("startup")
def _startup():
    # Optionally ensure schema in dev if explicitly enabled (prefer Alembic normally)
    if os.getenv("ZUHAUSH_DEV_CREATE_SCHEMA") == "1":
        Base.metadata.create_all(engine)
        logger.info("DB metadata ensured via SQLAlchemy (dev mode).")
    else:
        logger.info("Skipping Base.metadata.create_all(); use Alembic migrations for schema.")

    if os.getenv("ZUHAUSH_SEED_ADMIN", "1") == "1":
        db = SessionLocal()
        try:
            create_default_super_admin(db)
        except Exception as e:
            db.rollback()
            logger.warning("Skipping default admin seeding; likely tables not present yet: %s", e)
        finally:
            db.close()

@app.get("/health", openapi_extra={"security": []})
def health():
    return {"ok": True}
