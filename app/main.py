import logging
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from postgrest.exceptions import APIError
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded

from app.config import settings
from app.modules.auth import routes as auth_routes
from app.modules.profiles import routes as profiles_routes
from app.modules.groups import routes as groups_routes
from app.modules.posts import routes as posts_routes
from app.modules.engagement import routes as engagement_routes
from app.modules.folders import routes as folders_routes
from app.modules.admin import routes as admin_routes
from app.modules.realtime import routes as realtime_routes

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%Y-%m-%dT%H:%M:%SZ",
)
logger = logging.getLogger(__name__)

limiter = Limiter(key_func=get_remote_address, default_limits=[settings.rate_limit])
app = FastAPI(
    title=settings.app_name,
    debug=settings.debug,
    redirect_slashes=False,
)
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# Postgres error codes surfaced through PostgREST
UNIQUE_VIOLATION = "23505"
INSUFFICIENT_PRIVILEGE = "42501"


@app.exception_handler(APIError)
async def supabase_exception_handler(request: Request, exc: APIError):
    if exc.code == UNIQUE_VIOLATION:
        status_code, generic = 409, "Already exists"
    elif exc.code == INSUFFICIENT_PRIVILEGE:
        status_code, generic = 403, "Permission denied"
    else:
        status_code, generic = 502, "Database request failed"
    logger.error(f"Supabase error on {request.method} {request.url.path}: [{exc.code}] {exc.message}")
    if settings.is_production:
        return JSONResponse(status_code=status_code, content={"detail": generic})
    return JSONResponse(status_code=status_code, content={"detail": exc.message or generic, "code": exc.code})


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled exception: %s", exc)
    if settings.is_production:
        return JSONResponse(status_code=500, content={"detail": "Internal server error"})
    return JSONResponse(status_code=500, content={"detail": str(exc)})


class SecurityHeadersMiddleware:
    def __init__(self, app):
        self.app = app

    async def __call__(self, scope, receive, send):
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        async def send_with_headers(message):
            if message["type"] == "http.response.start":
                message.setdefault("headers", [])
                message["headers"].extend([
                    (b"X-Content-Type-Options", b"nosniff"),
                    (b"X-Frame-Options", b"DENY"),
                    (b"X-XSS-Protection", b"1; mode=block"),
                ])
            await send(message)

        await self.app(scope, receive, send_with_headers)


app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.get_cors_origins_list(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include module routes
app.include_router(auth_routes.router, prefix="/api/v1")
app.include_router(profiles_routes.router, prefix="/api/v1")
app.include_router(groups_routes.router, prefix="/api/v1")
app.include_router(posts_routes.router, prefix="/api/v1")
app.include_router(engagement_routes.router, prefix="/api/v1")
app.include_router(folders_routes.router, prefix="/api/v1")
app.include_router(admin_routes.router, prefix="/api/v1")
app.include_router(realtime_routes.router, prefix="/api/v1")


@app.on_event("startup")
async def startup_event():
    logger.info("Application startup")


@app.on_event("shutdown")
async def shutdown_event():
    logger.info("Application shutdown")


@app.get("/")
async def root():
    return {"message": "Welcome to uninote-backend", "status": "healthy"}


@app.get("/health")
@limiter.exempt
async def health():
    return {"status": "healthy"}


@app.get("/ready")
@limiter.exempt
async def ready():
    """Readiness probe: extend here with a Supabase round trip if needed."""
    return {"status": "ready"}
