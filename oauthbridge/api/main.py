import logging

from fastapi import FastAPI
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.middleware.cors import CORSMiddleware

from oauthbridge.api.routes_health import router as health_router
from oauthbridge.api.routes_metrics import router as metrics_router
from oauthbridge.api.routes_oauth import router as oauth_router
from oauthbridge.core.config import settings
from oauthbridge.core.errors import register_error_handlers
from oauthbridge.core.logger import init_logging
from oauthbridge.services.oauth.factory import require_state_secret


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request, call_next):  # type: ignore[override]
        response = await call_next(request)
        response.headers.setdefault("Referrer-Policy", "same-origin")
        response.headers.setdefault("X-Frame-Options", "DENY")
        response.headers.setdefault("X-Content-Type-Options", "nosniff")
        # Responses carry provider credentials
        response.headers.setdefault("Cache-Control", "no-store")
        return response


def create_app() -> FastAPI:
    init_logging()
    # Hard startup failure when the state secret is missing
    require_state_secret(settings)

    is_production = settings.ENV.lower() == "prod"
    app = FastAPI(
        title=settings.APP_NAME,
        debug=False,
        docs_url=None if is_production else "/docs",
        redoc_url=None if is_production else "/redoc",
        openapi_url=None if is_production else "/openapi.json",
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ALLOW_ORIGINS,
        allow_credentials=settings.CORS_ALLOW_CREDENTIALS,
        allow_methods=settings.CORS_ALLOW_METHODS,
        allow_headers=settings.CORS_ALLOW_HEADERS,
    )
    app.add_middleware(SecurityHeadersMiddleware)
    register_error_handlers(app)
    app.include_router(oauth_router)
    app.include_router(metrics_router, tags=["metrics"])
    app.include_router(health_router)

    logging.getLogger(__name__).info("OAuthBridge started env=%s", settings.ENV)
    return app


app = create_app()
