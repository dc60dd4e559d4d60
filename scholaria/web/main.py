"Scholaria course management API"
from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from scholaria.identity_access.tokens import TokenVerificationError, bearer_token_from_header, verify_access_token

from . import wiring
from .config import ensure_secure_config_on_startup, load_environment
from .errors import install_error_handlers, message_for
from .responses import error

load_environment()

# Minimal production safety checks (fail-fast on insecure config)
ensure_secure_config_on_startup()

SETTINGS = wiring.settings()
API_PREFIX = SETTINGS.api_prefix

logging.basicConfig(level=getattr(logging, SETTINGS.log_level, logging.INFO), format="%(asctime)s %(levelname)s %(name)s: %(message)s")
logger = logging.getLogger("scholaria.web")

app = FastAPI(
    title="Scholaria",
    description="Course management API: courses, announcements, materials and comments",
    version="1.0.0",
    docs_url="/api-docs",
    redoc_url=None,
    openapi_url="/openapi.json",
)

install_error_handlers(app)

from .routes.announcements import announcements_router  # noqa: E402
from .routes.auth import auth_router  # noqa: E402
from .routes.comments import comments_router  # noqa: E402
from .routes.courses import courses_router  # noqa: E402
from .routes.dashboard import dashboard_router  # noqa: E402
from .routes.materials import materials_router, uploads_router  # noqa: E402
from .routes.operations import operations_router  # noqa: E402

# --- Auth Middleware -------------------------------------------------------------

_PUBLIC_API_PATHS = {"/auth/register", "/auth/login", "/health"}


def _is_public_path(path: str) -> bool:
    if path.startswith(API_PREFIX + "/"):
        return path[len(API_PREFIX):] in _PUBLIC_API_PATHS
    # Only the API and uploaded files require a token; everything else is docs or 404.
    return not path.startswith("/uploads/")


@app.middleware("http")
async def auth_enforcement(request: Request, call_next):
    path = request.url.path
    if request.method == "OPTIONS" or _is_public_path(path):
        return await call_next(request)

    token = bearer_token_from_header(request.headers.get("authorization"))
    try:
        claims = verify_access_token(wiring.get_token_config(), token)
    except TokenVerificationError as exc:
        return error(message_for(exc.code), status_code=401)

    # The token subject must still exist; role and name come from the store.
    user = wiring.get_repo().get_user(claims.sub)
    if user is None:
        return error(message_for("user_not_found"), status_code=401)

    # Expose minimal, read-only user context for downstream handlers.
    request.state.user = {"sub": user.id, "role": user.role, "name": user.name, "email": user.email}
    return await call_next(request)


# --- Security Headers Middleware ----------------------------------------------


@app.middleware("http")
async def security_headers(request: Request, call_next):
    response = await call_next(request)
    if request.url.path in ("/api-docs", "/openapi.json"):
        # Swagger UI loads its assets from a CDN.
        csp = "default-src 'self'; script-src 'self' 'unsafe-inline' https://cdn.jsdelivr.net; style-src 'self' 'unsafe-inline' https://cdn.jsdelivr.net; img-src 'self' data: https://fastapi.tiangolo.com"
    else:
        csp = "default-src 'self'; frame-ancestors 'self'"
    response.headers.setdefault("Content-Security-Policy", csp)
    response.headers.setdefault("X-Frame-Options", "SAMEORIGIN")
    response.headers.setdefault("X-Content-Type-Options", "nosniff")
    response.headers.setdefault("Referrer-Policy", "strict-origin-when-cross-origin")
    if SETTINGS.is_prod_like:
        response.headers.setdefault("Strict-Transport-Security", "max-age=31536000; includeSubDomains")
    return response


# Added last so it wraps the auth middleware and decorates its 401 responses too.
app.add_middleware(
    CORSMiddleware,
    allow_origins=list(SETTINGS.cors_origins),
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type"],
)

# --- Routers ------------------------------------------------------------------------

app.include_router(auth_router, prefix=API_PREFIX)
app.include_router(courses_router, prefix=API_PREFIX)
app.include_router(announcements_router, prefix=API_PREFIX)
app.include_router(materials_router, prefix=API_PREFIX)
app.include_router(comments_router, prefix=API_PREFIX)
app.include_router(dashboard_router, prefix=API_PREFIX)
app.include_router(operations_router, prefix=API_PREFIX)
app.include_router(uploads_router)

