import logging
from datetime import timedelta

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from amigo_api.core.config import Settings, settings as default_settings
from amigo_api.core.db import Base, apply_deadline, build_engine, build_session_factory
from amigo_api.core.errors import AppError, AuthError
from amigo_api.core.security import TokenIssuer, TokenValidator
from amigo_api.domains.identity.recorder import OtpRequestRecorder
from amigo_api.domains.identity.router import router as identity_router
from amigo_api.domains.identity.service import AuthService
from amigo_api.domains.misc.router import router as misc_router
from amigo_api.domains.users.router import router as users_router

logger = logging.getLogger(__name__)

READINESS_TIMEOUT_SECONDS = 0.5


def _validation_message(exc: RequestValidationError) -> str:
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ())[1:]) or "body"
        parts.append(f"{loc}: {err.get('msg')}")
    return "; ".join(parts) or "invalid request body"


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or default_settings
    logging.basicConfig(level=settings.log_level.upper(), format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    engine = build_engine(settings.database_url)
    session_factory = build_session_factory(engine)

    issuer = TokenIssuer(settings.auth_secret, timedelta(hours=settings.access_token_ttl_hours))

    app = FastAPI(title=settings.app_name)
    app.state.settings = settings
    app.state.engine = engine
    app.state.session_factory = session_factory
    app.state.token_validator = TokenValidator(settings.auth_secret)
    app.state.auth_service = AuthService(
        fixed_code=settings.otp_fixed_code,
        issuer=issuer,
        write_timeout_s=settings.db_write_timeout_seconds,
    )
    app.state.otp_recorder = OtpRequestRecorder(
        session_factory,
        fixed_code=settings.otp_fixed_code,
        expires_minutes=settings.otp_expires_minutes,
        timeout_s=settings.db_write_timeout_seconds,
    )

    @app.exception_handler(AppError)
    async def _app_error_handler(request: Request, exc: AppError) -> JSONResponse:
        headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, AuthError) else None
        return JSONResponse(status_code=exc.status_code, content={"error": exc.message}, headers=headers)

    @app.exception_handler(RequestValidationError)
    async def _validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        # Malformed bodies are input errors (400), not FastAPI's default 422.
        if settings.env == "dev":
            logger.info("[400] path=%s errors=%s", request.url.path, exc.errors())
        return JSONResponse(status_code=400, content={"error": _validation_message(exc)})

    origins = [o.strip() for o in settings.cors_allow_origins.split(",") if o.strip()]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins if origins else ["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.on_event("startup")
    def _startup() -> None:
        if settings.auto_create_tables:
            # MVP: schema ownership belongs to migrations; this only fills gaps locally.
            Base.metadata.create_all(bind=engine)

    @app.on_event("shutdown")
    def _shutdown() -> None:
        engine.dispose()

    @app.get("/health")
    def health() -> dict:
        return {"ok": True, "service": settings.app_name, "env": settings.env}

    @app.get("/readiness")
    def readiness():
        try:
            with session_factory() as db:
                apply_deadline(db, READINESS_TIMEOUT_SECONDS)
                db.execute(text("SELECT 1"))
        except SQLAlchemyError as e:
            logger.warning("readiness check failed: %s", e)
            return JSONResponse(status_code=503, content={"status": "degraded", "db": str(getattr(e, "orig", None) or e)})
        return {"status": "ok"}

    app.include_router(identity_router, prefix=settings.api_prefix, tags=["auth"])
    app.include_router(users_router, prefix=settings.api_prefix, tags=["users"])
    app.include_router(misc_router, prefix=settings.api_prefix, tags=["misc"])
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("amigo_api.main:app", host="0.0.0.0", port=default_settings.port)
