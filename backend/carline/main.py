import logging
import os

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from carline.middleware.auth import LocalAuthMiddleware
from carline.rate_limit import limiter
from carline.routers.catalog import router as catalog_router
from carline.routers.view import router as view_router

logger = logging.getLogger(__name__)

app = FastAPI(title="Carline Explorer API", version="0.1.0")

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

app.add_middleware(LocalAuthMiddleware)

# CORS: load origins from env (comma-separated), default to localhost dev server
_cors_env = os.environ.get("CORS_ORIGINS", "http://localhost:5173")
cors_origins = [o.strip() for o in _cors_env.split(",") if o.strip()]

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type", "X-Local-Token", "X-Requested-With"],
)


@app.middleware("http")
async def add_security_headers(request: Request, call_next):
    response = await call_next(request)
    response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"
    response.headers["X-Content-Type-Options"] = "nosniff"
    response.headers["X-Frame-Options"] = "DENY"
    return response


app.include_router(catalog_router)
app.include_router(view_router)


@app.get("/api/health")
async def health() -> dict[str, str]:
    return {"status": "ok"}


# Desktop mode: serve built web app as static files (SPA fallback to index.html)
web_dir = os.environ.get("CARLINE_WEB_DIR")
if web_dir and os.path.isdir(web_dir):
    from starlette.exceptions import HTTPException as StarletteHTTPException
    from starlette.staticfiles import StaticFiles
    from starlette.types import Receive, Scope, Send

    class SPAStaticFiles(StaticFiles):
        async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
            try:
                await super().__call__(scope, receive, send)
            except StarletteHTTPException as e:
                if e.status_code != 404:
                    raise
                # SPA fallback: serve index.html for unknown paths
                scope["path"] = "/"
                await super().__call__(scope, receive, send)

    app.mount("/", SPAStaticFiles(directory=web_dir, html=True), name="static")
    logger.info("Serving web app from %s", web_dir)
