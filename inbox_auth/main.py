import logging

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from inbox_auth.config import INSECURE_JWT_SECRET, Settings, settings
from inbox_auth.logging_utils import configure_logging
from inbox_auth.routers import auth, health

configure_logging(settings.log_level)
LOGGER = logging.getLogger(__name__)

app = FastAPI(title="Inbox Auth")

app.add_middleware(
    CORSMiddleware,
    allow_origins=list(settings.cors_origins),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health.router)
app.include_router(auth.router, prefix="/api")
app.include_router(auth.router)  # Compatibility for clients calling /auth/* without /api.


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": str(exc.detail)},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_error_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    return JSONResponse(status_code=400, content={"error": "Invalid request body"})


def check_security_settings(config: Settings) -> None:
    if config.uses_insecure_signing_key:
        if config.require_jwt_secret:
            raise RuntimeError("JWT_SECRET must be set when REQUIRE_JWT_SECRET is enabled")
        LOGGER.warning("=== Insecure token signing key ===")
        LOGGER.warning("JWT_SECRET is not set; tokens are signed with %r.", INSECURE_JWT_SECRET)
        LOGGER.warning("Anyone who knows this value can forge tokens. Set JWT_SECRET.")
        LOGGER.warning("==================================")
    if not config.admin_emails:
        LOGGER.warning("ADMIN_EMAILS is empty; any valid email may request an admin code")


@app.on_event("startup")
def startup() -> None:
    check_security_settings(settings)
    LOGGER.info(
        "Verification codes: ttl=%ss cooldown=%ss max_attempts=%s backend=%s",
        settings.code_ttl_seconds,
        settings.resend_cooldown_seconds,
        settings.max_attempts,
        settings.email_backend,
    )


@app.get("/")
def root():
    return {"status": "Backend running"}


def run() -> None:
    uvicorn.run(app, host=settings.host, port=settings.port, log_level=settings.log_level.lower())
