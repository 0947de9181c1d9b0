"""cvbot/api.py

FastAPI HTTP interface for the résumé chatbot.

Endpoints:
  GET    /health                 liveness probe
  POST   /api/chat               chat pipeline
  GET    /api/profile            public profile
  GET    /api/bot-config         visitor-safe bot config (cached)
  GET    /api/preview?url=       link preview metadata (cached)
  POST   /api/auth/login         dashboard login, sets the auth cookie
  POST   /api/auth/logout        clears the auth cookie
  GET    /api/auth/check         whether the cookie is valid
  GET|PUT|PATCH   /api/admin/profile
  GET|PUT|PATCH   /api/admin/bot-config
  GET|POST|DELETE /api/admin/api-key
  GET|DELETE      /api/admin/errors
"""

from __future__ import annotations

# Standard Library
import functools
import logging
from dataclasses import dataclass
from typing import Any

# Third-Party Libraries
import uvicorn
from fastapi import Body, Depends, FastAPI, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ValidationError

# Local Modules
from cvbot.auth import AUTH_COOKIE, DashboardAuth
from cvbot.chat import ChatPipeline, ChatStatus
from cvbot.errors import MSG_INVALID_INPUT
from cvbot.gemini import GeminiClient
from cvbot.logs import LogStore, configure_logging
from cvbot.models import BotConfig, Profile, merge_config
from cvbot.orchestrator import ModelOrchestrator
from cvbot.preview import InvalidPreviewURL, LinkPreviewer, PreviewError
from cvbot.rate_limit import RateLimiter
from cvbot.secrets import SecretStore
from cvbot.settings import Settings, check_environment_security
from cvbot.store import DataStore, TTLCache

logger = logging.getLogger(__name__)

VALID_LOG_LEVELS = ("error", "warn", "info")
PUBLIC_CONFIG_KEY = "public-bot-config"


# ---------------------------------------------------------------------------
# Models
# ---------------------------------------------------------------------------


class ChatRequest(BaseModel):
    message: Any = None
    history: list[Any] | None = None


class LoginRequest(BaseModel):
    password: Any = None


# ---------------------------------------------------------------------------
# Wiring
# ---------------------------------------------------------------------------


@dataclass
class Services:
    """Everything the endpoints need, built once per app."""

    settings: Settings
    store: DataStore
    secrets: SecretStore
    auth: DashboardAuth
    pipeline: ChatPipeline
    log_store: LogStore
    previewer: LinkPreviewer
    public_cache: TTLCache


class Unauthorized(Exception):
    """Admin endpoint called without a valid dashboard cookie."""


def build_services(settings: Settings, log_store: LogStore) -> Services:
    store = DataStore(settings.data_dir, cache_ttl=settings.cache_ttl_seconds)
    secrets = SecretStore(store, settings.jwt_secret, env_key=settings.gemini_api_key)
    orchestrator = ModelOrchestrator(
        settings.gemini_models,
        functools.partial(
            GeminiClient, base_url=settings.gemini_base_url, timeout=settings.model_timeout
        ),
        history_turns=settings.history_turns,
    )
    pipeline = ChatPipeline(
        store,
        secrets,
        orchestrator,
        rate_limiter=RateLimiter(settings.rate_limit_per_minute, settings.rate_limit_per_day),
    )
    return Services(
        settings=settings,
        store=store,
        secrets=secrets,
        auth=DashboardAuth(settings.dashboard_password, settings.jwt_secret),
        pipeline=pipeline,
        log_store=log_store,
        previewer=LinkPreviewer(),
        public_cache=TTLCache(settings.cache_ttl_seconds),
    )


def services(request: Request) -> Services:
    return request.app.state.services


def require_admin(request: Request, svc: Services = Depends(services)) -> Services:
    if not svc.auth.verify_token(request.cookies.get(AUTH_COOKIE)):
        logger.warning(
            "Unauthorized access attempt to %s",
            request.url.path,
            extra={"context": {"ip": client_ip(request)}},
        )
        raise Unauthorized()
    return svc


def client_ip(request: Request) -> str:
    forwarded = request.headers.get("x-forwarded-for", "")
    first = forwarded.split(",")[0].strip()
    if first:
        return first
    if request.client is not None:
        return request.client.host
    return "unknown"


def _error(status_code: int, message: str, **extra: Any) -> JSONResponse:
    return JSONResponse({"error": message, **extra}, status_code=status_code)


# ---------------------------------------------------------------------------
# App factory
# ---------------------------------------------------------------------------


def create_app(
    settings: Settings | None = None,
    *,
    services_override: Services | None = None,
) -> FastAPI:
    """Build the FastAPI application.

    Args:
        settings: Runtime settings; read from the environment when omitted.
        services_override: Pre-built services (tests).

    Returns:
        The configured app.
    """
    if services_override is not None:
        svc = services_override
    else:
        settings = settings or Settings()
        log_store = configure_logging(settings.log_level)
        check_environment_security(settings)
        svc = build_services(settings, log_store)

    app = FastAPI(
        title="cvbot",
        version="0.1.0",
        description="Personal website résumé chatbot and its admin API.",
    )
    app.state.services = svc

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(Unauthorized)
    async def _unauthorized(request: Request, exc: Unauthorized) -> JSONResponse:
        return _error(401, "Unauthorized")

    @app.exception_handler(RequestValidationError)
    async def _bad_body(request: Request, exc: RequestValidationError) -> JSONResponse:
        if request.url.path == "/api/chat":
            return JSONResponse({"response": MSG_INVALID_INPUT}, status_code=400)
        return _error(400, "Invalid request body")

    _register_public_routes(app)
    _register_auth_routes(app)
    _register_admin_routes(app)
    return app


# ---------------------------------------------------------------------------
# Public endpoints
# ---------------------------------------------------------------------------


def _register_public_routes(app: FastAPI) -> None:
    @app.get("/health", tags=["meta"])
    def health() -> dict[str, str]:
        """Liveness probe."""
        return {"status": "ok", "server": "cvbot"}

    @app.post("/api/chat", tags=["chat"])
    def chat(
        request: Request, body: ChatRequest, svc: Services = Depends(services)
    ) -> JSONResponse:
        """Answer one visitor message.

        Returns 400 for invalid input, 429 when rate limited and 200 for
        every other outcome, including model failures.
        """
        result = svc.pipeline.handle(body.message, body.history, client_ip(request))
        status_code = {
            ChatStatus.INVALID: 400,
            ChatStatus.RATE_LIMITED: 429,
        }.get(result.status, 200)
        return JSONResponse({"response": result.response}, status_code=status_code)

    @app.get("/api/profile", tags=["public"])
    def public_profile(svc: Services = Depends(services)) -> dict[str, Any]:
        return svc.store.read_profile().to_json_dict()

    @app.get("/api/bot-config", tags=["public"])
    def public_bot_config(svc: Services = Depends(services)) -> dict[str, Any]:
        """Visitor-safe config: persona name, greeting, quick replies, flags."""
        cached = svc.public_cache.get(PUBLIC_CONFIG_KEY)
        if cached is not None:
            return cached
        sanitized = svc.store.read_bot_config().public_view()
        svc.public_cache.set(PUBLIC_CONFIG_KEY, sanitized)
        return sanitized

    @app.get("/api/preview", tags=["public"])
    def preview(url: str | None = Query(None), svc: Services = Depends(services)) -> JSONResponse:
        try:
            return JSONResponse(svc.previewer.preview(url))
        except InvalidPreviewURL as exc:
            return _error(400, str(exc))
        except PreviewError:
            return _error(500, "Failed to fetch preview")


# ---------------------------------------------------------------------------
# Auth endpoints
# ---------------------------------------------------------------------------


def _register_auth_routes(app: FastAPI) -> None:
    @app.post("/api/auth/login", tags=["auth"])
    def login(body: LoginRequest, svc: Services = Depends(services)) -> JSONResponse:
        if not svc.auth.verify_password(body.password):
            return _error(401, "Invalid password")
        response = JSONResponse({"success": True})
        response.set_cookie(
            AUTH_COOKIE,
            svc.auth.create_token(),
            max_age=svc.auth.lifetime,
            httponly=True,
            secure=svc.settings.is_production,
            samesite="lax",
            path="/",
        )
        return response

    @app.post("/api/auth/logout", tags=["auth"])
    def logout() -> JSONResponse:
        response = JSONResponse({"success": True})
        response.delete_cookie(AUTH_COOKIE, path="/")
        return response

    @app.get("/api/auth/check", tags=["auth"])
    def check(request: Request, svc: Services = Depends(services)) -> dict[str, bool]:
        return {"authenticated": svc.auth.verify_token(request.cookies.get(AUTH_COOKIE))}


# ---------------------------------------------------------------------------
# Admin endpoints
# ---------------------------------------------------------------------------


def _register_admin_routes(app: FastAPI) -> None:
    @app.get("/api/admin/profile", tags=["admin"])
    def get_profile(svc: Services = Depends(require_admin)) -> dict[str, Any]:
        return svc.store.read_profile().to_json_dict()

    @app.put("/api/admin/profile", tags=["admin"])
    def put_profile(
        body: dict[str, Any] = Body(...), svc: Services = Depends(require_admin)
    ) -> JSONResponse:
        return _save_profile(svc, body)

    @app.patch("/api/admin/profile", tags=["admin"])
    def patch_profile(
        body: dict[str, Any] = Body(...), svc: Services = Depends(require_admin)
    ) -> JSONResponse:
        """Shallow update: top-level keys in the body replace stored ones."""
        current = svc.store.read_profile().to_json_dict()
        return _save_profile(svc, {**current, **body})

    @app.get("/api/admin/bot-config", tags=["admin"])
    def get_bot_config(svc: Services = Depends(require_admin)) -> dict[str, Any]:
        return svc.store.read_bot_config().to_json_dict()

    @app.put("/api/admin/bot-config", tags=["admin"])
    def put_bot_config(
        body: dict[str, Any] = Body(...), svc: Services = Depends(require_admin)
    ) -> JSONResponse:
        try:
            config = BotConfig.model_validate(body)
        except ValidationError as exc:
            return _error(400, "Invalid bot config", details=exc.errors(include_context=False))
        return _save_bot_config(svc, config)

    @app.patch("/api/admin/bot-config", tags=["admin"])
    def patch_bot_config(
        body: dict[str, Any] = Body(...), svc: Services = Depends(require_admin)
    ) -> JSONResponse:
        """Deep merge: nested objects merge, lists are replaced."""
        try:
            config = merge_config(svc.store.read_bot_config(), body)
        except ValidationError as exc:
            return _error(400, "Invalid bot config", details=exc.errors(include_context=False))
        return _save_bot_config(svc, config)

    @app.get("/api/admin/api-key", tags=["admin"])
    def get_api_key(svc: Services = Depends(require_admin)) -> dict[str, Any]:
        return {"success": True, **svc.secrets.status()}

    @app.post("/api/admin/api-key", tags=["admin"])
    def set_api_key(
        body: dict[str, Any] = Body(...), svc: Services = Depends(require_admin)
    ) -> JSONResponse:
        api_key = body.get("apiKey")
        if not api_key or not isinstance(api_key, str):
            return _error(400, "API key is required")
        if svc.secrets.from_environment:
            return _error(
                400,
                "API key is set via environment variable. Remove GEMINI_API_KEY "
                "from your environment to use dashboard entry.",
                source="environment",
            )
        api_key = api_key.strip()
        if not api_key.startswith("AIza") or len(api_key) < 30:
            return _error(
                400,
                'Invalid API key format. Gemini keys start with "AIza" and are about 39 characters.',
            )
        try:
            svc.secrets.set_api_key(api_key)
        except (ValueError, OSError) as exc:
            logger.error("Failed to set API key: %s", exc)
            return _error(500, "Failed to save API key. Please try again.")
        return JSONResponse(
            {
                "success": True,
                "message": "API key saved successfully! The chatbot is now ready. 🎉",
                **svc.secrets.status(),
            }
        )

    @app.delete("/api/admin/api-key", tags=["admin"])
    def delete_api_key(svc: Services = Depends(require_admin)) -> JSONResponse:
        if svc.secrets.from_environment:
            return _error(
                400,
                "API key is set via environment variable. Remove it from your environment settings.",
                source="environment",
            )
        try:
            svc.secrets.delete_api_key()
        except OSError as exc:
            logger.error("Failed to delete API key: %s", exc)
            return _error(500, "Failed to remove API key")
        return JSONResponse({"success": True, "message": "API key removed."})

    @app.get("/api/admin/errors", tags=["admin"])
    def get_errors(
        limit: str = Query("50"),
        level: str | None = Query(None),
        svc: Services = Depends(require_admin),
    ) -> dict[str, Any]:
        try:
            count = int(limit)
        except ValueError:
            count = 50
        count = min(max(1, count), 100)
        filter_level = level if level in VALID_LOG_LEVELS else None
        logs = svc.log_store.recent(count, filter_level)
        return {
            "success": True,
            "summary": svc.log_store.summary(),
            "logs": logs,
            "meta": {"limit": count, "filterLevel": filter_level, "returnedCount": len(logs)},
        }

    @app.delete("/api/admin/errors", tags=["admin"])
    def clear_errors(svc: Services = Depends(require_admin)) -> dict[str, Any]:
        svc.log_store.clear()
        return {"success": True, "message": "All error logs cleared"}


def _save_profile(svc: Services, data: dict[str, Any]) -> JSONResponse:
    try:
        profile = Profile.model_validate(data)
    except ValidationError as exc:
        return _error(400, "Invalid profile", details=exc.errors(include_context=False))
    try:
        svc.store.write_profile(profile)
    except OSError:
        return _error(500, "Failed to save profile")
    return JSONResponse({"success": True, "profile": profile.to_json_dict()})


def _save_bot_config(svc: Services, config: BotConfig) -> JSONResponse:
    try:
        svc.store.write_bot_config(config)
    except OSError:
        return _error(500, "Failed to save bot config")
    svc.public_cache.invalidate(PUBLIC_CONFIG_KEY)
    return JSONResponse({"success": True, "config": config.to_json_dict()})


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def run_api() -> None:
    """Start the FastAPI server via uvicorn."""
    settings = Settings()
    logger.info("Starting cvbot API on %s:%d", settings.api_host, settings.api_port)
    uvicorn.run(
        "cvbot.api:create_app",
        factory=True,
        host=settings.api_host,
        port=settings.api_port,
        log_level=settings.log_level.lower(),
        reload=False,
    )


if __name__ == "__main__":
    run_api()
