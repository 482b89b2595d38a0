# app/main.py
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app import config
from app.db import Database, check_db_health, get_db
from app.accounts import auth_routes, routes as account_routes
from app.accounts.errors import AuthError, InternalError

VERSION = "1.0.0"

# =========================
# Logging
# =========================
logger = logging.getLogger("drivermate")
logging.basicConfig(level=config.get_log_level(), format="%(asctime)s %(levelname)s %(name)s %(message)s")


# =========================
# App Setup
# =========================
@asynccontextmanager
async def lifespan(app: FastAPI):
    # Refuse to serve with missing secrets
    config.validate_config()
    logger.info("DriverMate auth API %s starting", VERSION)
    yield


app = FastAPI(title="DriverMate Auth API", version=VERSION, lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.get_allowed_origins(),
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(auth_routes.router)
app.include_router(account_routes.router)


# =========================
# Service Endpoints
# =========================
def list_endpoints() -> dict:
    endpoints = {
        "register": "POST /register",
        "login": "POST /login",
        "refreshToken": "POST /refresh-token",
        "profile": "GET /profile",
        "requestOTP": "POST /request-otp",
        "verifyOTP": "POST /verify-otp",
        "changePassword": "POST /change-password",
        "resetPassword": "POST /reset-password",
    }
    if not config.is_refresh_tokens_enabled():
        endpoints.pop("refreshToken")
    return endpoints


@app.get("/")
def root():
    return {
        "status": True,
        "message": "DriverMate API is running",
        "version": VERSION,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "endpoints": list_endpoints(),
    }


@app.get("/health")
def health(db: Database = Depends(get_db)):
    return {"status": "ok", "version": VERSION, **check_db_health(db)}


# =========================
# Error Normalization
# =========================
def error_json(message: str, status: int = 400, **extra) -> JSONResponse:
    return JSONResponse(status_code=status, content={"status": False, "message": message, **extra})


@app.exception_handler(AuthError)
async def auth_error_handler(request: Request, exc: AuthError):
    return error_json(exc.message, exc.status_code)


@app.exception_handler(StarletteHTTPException)
async def http_exc_handler(request: Request, exc: StarletteHTTPException):
    if exc.status_code == 404:
        return error_json("Endpoint not found", 404, path=request.url.path)
    message = exc.detail if isinstance(exc.detail, str) else "Request error"
    return error_json(message, exc.status_code)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc):
    return error_json("Invalid request body", 400)


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.error("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
    fallback = InternalError()
    return error_json(fallback.message, fallback.status_code)
