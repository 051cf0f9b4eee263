# ruff: noqa: I001

import logging
import os
from pathlib import Path

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from marketplace.api.router import api_router
from marketplace.config import settings
from marketplace.core.observability import (
    global_exception_handler,
    marketplace_error_handler,
    request_logging_middleware,
)
from marketplace.database import POOL_CONFIG, SessionLocal, engine
from marketplace.scripts.seed_users import seed_dev_users
from marketplace.services.errors import MarketplaceError

api_prefix = (
    settings.api_prefix
    if settings.api_prefix.startswith("/")
    else f"/{settings.api_prefix}"
    if settings.api_prefix
    else ""
)

logger = logging.getLogger("marketplace")
logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s %(message)s")

app = FastAPI(
    title=settings.app_name,
    docs_url="/docs" if settings.enable_docs else None,
    redoc_url="/redoc" if settings.enable_docs else None,
    openapi_url=(f"{api_prefix}/openapi.json" if api_prefix else "/openapi.json")
    if settings.enable_docs
    else None,
)

# Expose logger for middleware without creating circular imports.
app.state.logger = logger

app.add_exception_handler(MarketplaceError, marketplace_error_handler)
app.add_exception_handler(Exception, global_exception_handler)

# Request-level logging + request correlation id.
app.middleware("http")(request_logging_middleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(api_router, prefix=api_prefix)


def _run_migrations_if_configured() -> None:
    if not settings.run_migrations_on_start:
        return

    # Avoid running migrations during tests.
    if (settings.environment or "").lower() == "test":
        return

    from alembic import command
    from alembic.config import Config
    from sqlalchemy.engine.url import make_url

    backend_root = Path(__file__).resolve().parents[1]
    alembic_cfg = Config(str(backend_root / "alembic.ini"))

    url_obj = make_url(str(settings.database_url))
    logger.info(
        "migrations_db_target driver=%s host=%s db=%s",
        url_obj.drivername,
        url_obj.host,
        url_obj.database,
    )

    try:
        with engine.connect() as connection:
            # Reuse this connection inside Alembic env.py (config.attributes['connection']).
            alembic_cfg.attributes["connection"] = connection
            command.upgrade(alembic_cfg, "head")
            connection.commit()
        logger.info("migrations_applied")
    except Exception as e:
        # Don't crash the API if migrations fail; endpoints surface the DB error.
        logger.error("migrations_failed error=%s", str(e))


def _seed_dev_users() -> None:
    env = str(settings.environment or "dev").lower()
    if env in {"prod", "production", "test"} or not settings.seed_dev_users:
        return

    db = SessionLocal()
    try:
        seed_dev_users(db)
    except Exception as e:
        # Database not ready yet (e.g., missing tables) - don't block startup.
        logger.warning("dev_user_seed_failed", extra={"error": str(e)})
        db.rollback()
    finally:
        db.close()


@app.on_event("startup")
def _startup():
    logger.info(
        "runtime_config",
        extra={
            "pid": os.getpid(),
            "environment": settings.environment,
            "db_pool": POOL_CONFIG,
            "exchange_rate": settings.exchange_rate,
            "default_fee_percentage": settings.default_fee_percentage,
        },
    )
    _run_migrations_if_configured()
    _seed_dev_users()


@app.get("/", tags=["meta"])
def root():
    docs_path = (
        (f"{api_prefix}/openapi.json" if api_prefix else "/openapi.json")
        if settings.enable_docs
        else None
    )
    return {"message": settings.app_name, "docs": docs_path}
