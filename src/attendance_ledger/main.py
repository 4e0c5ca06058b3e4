from __future__ import annotations

import importlib

import click
import structlog
from dotenv import load_dotenv
from flask import Flask

from .attendance.controller import register as register_attendance
from .common.datetime_utils import parse_iso_date
from .common.logging import setup_logging
from .common.web import register_error_handlers
from .container import build_container
from .database.bootstrap import apply_schema
from .leave.controller import register as register_leave
from .settings import get_settings_module

logger = structlog.get_logger(__name__)


def create_app() -> Flask:
    load_dotenv(override=False)
    app = Flask(__name__)

    settings_module = get_settings_module()
    settings = importlib.import_module(settings_module)
    app.secret_key = getattr(settings, "SECRET_KEY")
    db_config = getattr(settings, "DB_CONFIG")
    app.config["DEBUG"] = bool(getattr(settings, "DEBUG", False))
    app.config["TESTING"] = bool(getattr(settings, "TESTING", False))

    setup_logging(level=getattr(settings, "LOG_LEVEL", "INFO"), json=bool(getattr(settings, "LOG_JSON", True)))
    logger.info(
        "app.starting",
        settings=settings_module,
        db=f"{db_config.get('user')}@{db_config.get('host')}:{db_config.get('port', 3306)}/{db_config.get('database')}",
    )

    container = build_container(db_config=db_config, settings=settings)

    if bool(getattr(settings, "AUTO_INIT_DB", False)):
        applied = apply_schema(container.conn)
        logger.info("app.schema_ready", statements=applied)

    register_error_handlers(app)
    register_attendance(app, container)
    register_leave(app, container)
    _register_commands(app, container)

    app.extensions["container"] = container
    return app


def _register_commands(app: Flask, container) -> None:
    @app.cli.command("init-db")
    def init_db():
        """Create the database and apply schema.sql."""
        applied = apply_schema(container.conn)
        click.echo(f"OK: applied {applied} statements to {container.conn.database}")

    @app.cli.command("regularize")
    @click.option("--date", "process_date", default=None, help="Day to close out (YYYY-MM-DD); defaults to yesterday.")
    def regularize(process_date):
        """Close out a past day: auto leaves, missing check-outs, holidays and events."""
        day = parse_iso_date(process_date) if process_date else None
        summary = container.regularization_runner.run(day)
        click.echo(summary.as_text())
