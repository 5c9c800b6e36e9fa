"""
FastAPI application entrypoint for the Eminent Bank transfer service.

This module wires together:
- Settings (environment / .env) and file-based logging
- The async SQLAlchemy engine, ledger and identity provider
- CORS and request logging middleware
- Routers under eminent_bank/api/ (auth, accounts, transfers)
"""

import os
from typing import Optional

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from starlette.requests import Request

from eminent_bank import __version__
from eminent_bank.api.accounts import router as accounts_router
from eminent_bank.api.auth import router as auth_router
from eminent_bank.api.transfers import router as transfers_router
from eminent_bank.clients.identity_client import HttpIdentityClient, IdentityClient, LocalIdentityClient
from eminent_bank.config import Settings
from eminent_bank.db.ledger import Ledger, SqlAlchemyLedger
from eminent_bank.db.session import create_all, create_engine, create_session_factory
from eminent_bank.logging_config import get_logger, setup_logging
from eminent_bank.workflow.session_manager import TransferSessionManager

logger = get_logger("eminent_bank")


def _build_identity(settings: Settings, session_factory) -> IdentityClient:
    if settings.identity_backend == "http":
        return HttpIdentityClient(
            settings.identity_base_url,
            api_key=settings.identity_api_key,
            timeout=settings.request_timeout,
        )
    return LocalIdentityClient(
        session_factory,
        settings.jwt_secret,
        algorithm=settings.jwt_algorithm,
        token_ttl_minutes=settings.access_token_ttl_minutes,
    )


def create_app(
    settings: Optional[Settings] = None,
    ledger: Optional[Ledger] = None,
    identity: Optional[IdentityClient] = None,
    sessions: Optional[TransferSessionManager] = None,
) -> FastAPI:
    """
    Build the application. Collaborators may be injected; anything not given
    is built from ``settings`` (or the environment).
    """
    settings = settings or Settings.from_env()
    log_file = setup_logging(settings.log_level, settings.log_dir)

    engine = create_engine(settings.database_url, echo=settings.sql_echo)
    session_factory = create_session_factory(engine)

    app = FastAPI(title="Eminent Bank Transfers API", version=__version__)
    app.state.settings = settings
    app.state.engine = engine
    app.state.ledger = ledger or SqlAlchemyLedger(session_factory)
    app.state.identity = identity or _build_identity(settings, session_factory)
    app.state.sessions = sessions or TransferSessionManager(settings.transfer_session_timeout_minutes)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
        allow_credentials=True,
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        # Bodies are not logged: they may carry passwords
        logger.info(
            "HTTP %s %s from %s",
            request.method,
            request.url.path,
            request.client.host if request.client else "?",
        )
        response = await call_next(request)
        logger.info("HTTP %s %s -> %s", request.method, request.url.path, response.status_code)
        return response

    @app.get("/api/health")
    async def health():
        """
        Simple health check endpoint.
        """
        return {"status": "healthy"}

    app.include_router(auth_router, prefix="/api")
    app.include_router(accounts_router, prefix="/api")
    app.include_router(transfers_router, prefix="/api")

    @app.on_event("startup")
    async def on_startup():
        await create_all(engine)
        logger.info("Eminent Bank starting up (identity=%s, log=%s)", settings.identity_backend, log_file)

    @app.on_event("shutdown")
    async def on_shutdown():
        try:
            await app.state.identity.close()
        except Exception:
            logger.exception("Error closing identity client on shutdown")
        try:
            await engine.dispose()
        except Exception:
            logger.exception("Error disposing engine on shutdown")
        logger.info("Eminent Bank shutting down")

    return app


def main() -> None:
    uvicorn.run(
        "eminent_bank.app:create_app",
        factory=True,
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "9000")),
    )


if __name__ == "__main__":
    main()
