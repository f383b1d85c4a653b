"""
main.py

Application entrypoint for the ReportSonic API.
- Initializes structured logging
- Sets up FastAPI application and middlewares
- Registers the JSON error envelope and all API routers
- Integrates rate limiting via SlowAPI
- Adds common security headers
- Configures CORS
"""

from collections.abc import Awaitable, Callable
from typing import Any

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.middleware.sessions import SessionMiddleware
from starlette.responses import Response

from reportsonic.admin.routes import router as admin_router
from reportsonic.auth.routes import router as auth_router
from reportsonic.billing.routes import router as billing_router
from reportsonic.core.config import settings
from reportsonic.core.exceptions import register_exception_handlers
from reportsonic.core.limiter import limiter
from reportsonic.core.logging import init_logging
from reportsonic.reports.routes import router as reports_router
from reportsonic.users.routes import router as users_router

# -----------------------------
# FastAPI App Initialization
# -----------------------------
init_logging()
app = FastAPI(title=settings.APP_NAME, version="1.0.0")

# -----------------------------
# Error Handling
# -----------------------------
register_exception_handlers(app)

# -----------------------------
# Middleware Configuration
# -----------------------------
app.state.limiter = limiter


async def rate_limit_exceeded_handler(request: Request, exc: Exception) -> Response:
    return _rate_limit_exceeded_handler(request, exc)  # type: ignore[arg-type]


app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)
app.add_middleware(SlowAPIMiddleware)

app.add_middleware(SessionMiddleware, secret_key=settings.SECRET_KEY)


# -----------------------------
# Security Headers Middleware
# -----------------------------
class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """
    Middleware to add common security headers to responses.
    """

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        response: Response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        return response


app.add_middleware(SecurityHeadersMiddleware)

# -----------------------------
# CORSMiddleware Configuration
# -----------------------------
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# -----------------------------
# API Router Registration
# -----------------------------
app.include_router(auth_router)
app.include_router(users_router)
app.include_router(admin_router)
app.include_router(reports_router)
app.include_router(billing_router)


# -----------------------------
# Root / Health Endpoints
# -----------------------------
@app.get("/", tags=["Health"])
async def home() -> dict[str, Any]:
    return {"name": settings.APP_NAME, "status": "ok"}


@app.get("/health", tags=["Health"])
async def health() -> dict[str, str]:
    return {"status": "ok"}
