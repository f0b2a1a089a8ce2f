# backend/marketplace/main.py
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.responses import Response

# rate limiting
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware

from marketplace.core.settings import get_settings
from marketplace.db import Database
from marketplace.errors import StoreUnavailable, TooManyAttempts
from marketplace.routers import accounts, auth, products
from marketplace.security.logger import auth_logger as logger
from marketplace.security.passwords import dummy_password_hash
from marketplace.security.rate_limit import limiter, rate_limit_handler
from marketplace.security.tokens import TokenIssuer

# ---- Default security headers ----
SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "Referrer-Policy": "no-referrer",
    "Permissions-Policy": "geolocation=(), microphone=(), camera=()",
    "Content-Security-Policy": "default-src 'none'; frame-ancestors 'none';",
}
# NOTE: HSTS only takes effect when served over HTTPS (enable at your reverse proxy in prod)
STRICT_TRANSPORT_SECURITY = "max-age=31536000; includeSubDomains"

JSON_BODY_METHODS = ("POST", "PUT")


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    database = Database(settings.database_url)
    database.create_all()
    app.state.database = database
    app.state.tokens = TokenIssuer.from_settings(settings)
    app.state.dummy_hash = dummy_password_hash()
    try:
        yield
    finally:
        database.dispose()


def _too_many_attempts_handler(request: Request, exc: TooManyAttempts) -> JSONResponse:
    return JSONResponse(
        status_code=403,
        content={
            "error": "too_many_attempts",
            "detail": "Too many failed login attempts",
            "retry_after": exc.retry_after,
        },
        headers={"Retry-After": str(exc.retry_after)},
    )


def _store_unavailable_handler(request: Request, exc: StoreUnavailable) -> JSONResponse:
    logger.error(f"Store failure on {request.method} {request.url.path}: {exc}")
    return JSONResponse(status_code=503, content={"error": "store_unavailable"})


def create_app() -> FastAPI:
    settings = get_settings()
    app = FastAPI(title="Marketplace API", lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["authorization", "content-type", "x-requested-with"],
        max_age=3600,
    )

    app.state.limiter = limiter
    app.add_middleware(SlowAPIMiddleware)
    app.add_exception_handler(RateLimitExceeded, rate_limit_handler)
    app.add_exception_handler(TooManyAttempts, _too_many_attempts_handler)
    app.add_exception_handler(StoreUnavailable, _store_unavailable_handler)

    # ---- Security headers middleware ----
    @app.middleware("http")
    async def add_security_headers(request: Request, call_next):
        response: Response = await call_next(request)
        for header, value in SECURITY_HEADERS.items():
            response.headers.setdefault(header, value)
        # HSTS (effective only when behind HTTPS)
        response.headers.setdefault("Strict-Transport-Security", STRICT_TRANSPORT_SECURITY)
        return response

    # ---- Request body hardening ----
    @app.middleware("http")
    async def require_json_bodies(request: Request, call_next):
        # Block POST/PUT without application/json (415 Unsupported Media Type)
        if request.method in JSON_BODY_METHODS:
            content_type = request.headers.get("content-type", "")
            if not content_type.lower().startswith("application/json"):
                return JSONResponse(
                    status_code=415,
                    content={"detail": "Unsupported Media Type. Must be application/json"},
                )
        return await call_next(request)

    # ---- Health endpoint (used by tests and curl) ----
    @app.get("/health")
    def health():
        return {"ok": True}

    app.include_router(auth.router)
    app.include_router(accounts.router)
    app.include_router(products.router)
    return app


app = create_app()
