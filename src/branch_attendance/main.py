from __future__ import annotations

import importlib
import logging
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from flask import Flask, jsonify

from .config import get_settings_module
from .container import Container, build_container
from .core.exceptions import ConflictError, DomainError, NotFoundError, OperationCancelledError, ValidationError
from .database.bootstrap import apply_schema, apply_seed_sql, list_tables
from .attendance.controller import register as register_attendance
from .breaks.controller import register as register_breaks
from .corrections.controller import register as register_corrections

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"

# Client closed request; the caller gave up before anything was saved.
STATUS_CANCELLED = 499

# schema.sql and seed.sql ship inside the package
DATABASE_DIR = Path(__file__).resolve().parent / "database"


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(level=getattr(logging, str(level).upper(), logging.INFO), format=LOG_FORMAT)


def status_for(error: DomainError) -> int:
    if isinstance(error, ValidationError):
        return 400
    if isinstance(error, NotFoundError):
        return 404
    if isinstance(error, ConflictError):
        return 409
    if isinstance(error, OperationCancelledError):
        return STATUS_CANCELLED
    return 400


def register_error_handlers(app: Flask) -> None:
    @app.errorhandler(DomainError)
    def handle_domain_error(error: DomainError):
        status = status_for(error)
        logger.info("%s -> %s: %s", type(error).__name__, status, error)
        return jsonify({"error": type(error).__name__, "message": str(error)}), status


def _prepare_database(settings, db_config: dict, debug: bool) -> None:
    if bool(getattr(settings, "AUTO_INIT_DB", False)):
        apply_schema(db_config, schema_path=DATABASE_DIR / "schema.sql")
        if debug:
            logger.debug("Schema ready (tables=%s)", len(list_tables(db_config)))
    if bool(getattr(settings, "AUTO_SEED_DB", False)):
        apply_seed_sql(db_config, seed_path=DATABASE_DIR / "seed.sql")


def create_app(container: Optional[Container] = None) -> Flask:
    """Application factory.

    Pass a ready ``container`` (tests, embedding) to skip settings-driven
    database wiring.
    """
    load_dotenv(override=False)
    app = Flask(__name__)

    settings_module = get_settings_module()
    settings = importlib.import_module(settings_module)
    configure_logging(getattr(settings, "LOG_LEVEL", "INFO"))

    app.secret_key = getattr(settings, "SECRET_KEY")
    app.config["DEBUG"] = bool(getattr(settings, "DEBUG", False))
    app.config["TESTING"] = bool(getattr(settings, "TESTING", False))

    if container is None:
        db_config = getattr(settings, "DB_CONFIG")
        logger.info(
            "settings=%s db=%s@%s:%s/%s",
            settings_module,
            db_config.get("user"),
            db_config.get("host"),
            db_config.get("port", 3306),
            db_config.get("database"),
        )
        _prepare_database(settings, db_config, app.config["DEBUG"])
        container = build_container(
            db_config=db_config,
            grace_minutes=int(getattr(settings, "LATE_GRACE_MINUTES", 0)),
            lock_timeout=float(getattr(settings, "LOCK_TIMEOUT_SECONDS", 10)),
            page_size=int(getattr(settings, "PENDING_PAGE_SIZE", 100)),
        )

    app.extensions["branch_attendance"] = container
    register_error_handlers(app)
    register_attendance(app, container)
    register_breaks(app, container)
    register_corrections(app, container)

    return app
