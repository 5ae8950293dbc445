from __future__ import annotations

import importlib
import logging
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from flask import Flask

from config import get_settings_module

from .api.errors import register_error_handlers
from .api.outbox import register as register_outbox
from .common.logging_config import setup_logging
from .container import Container, build_container
from .database.bootstrap import apply_schema, list_tables
from .database.connection import DBConfig, DatabaseConnection
from .evaluations.controller import register as register_evaluations
from .notifications.controller import register as register_notifications
from .payroll.controller import register as register_payroll
from .permissions.controller import register as register_permissions

logger = logging.getLogger(__name__)


def create_app(container: Optional[Container] = None) -> Flask:
    load_dotenv(override=False)
    app = Flask(__name__)

    settings_module = get_settings_module()
    settings = importlib.import_module(settings_module)
    app.secret_key = getattr(settings, "SECRET_KEY")
    app.config["DEBUG"] = bool(getattr(settings, "DEBUG", False))
    app.config["TESTING"] = bool(getattr(settings, "TESTING", False))
    setup_logging(
        level=getattr(settings, "LOG_LEVEL", "INFO"),
        json_output=bool(getattr(settings, "LOG_JSON", True)),
    )

    if container is None:
        db_config = getattr(settings, "DB_CONFIG")
        logger.info("settings=%s db=%s", settings_module, DBConfig.from_mapping(db_config).describe())

        if bool(getattr(settings, "AUTO_INIT_DB", False)):
            conn = DatabaseConnection.get_instance(DBConfig.from_mapping(db_config))
            schema_path = Path(__file__).resolve().parents[3] / "database" / "schema.sql"
            apply_schema(conn, schema_path=schema_path)
            logger.info("schema ready (tables=%d)", len(list_tables(conn)))

        container = build_container(db_config=db_config)

    register_error_handlers(app)
    register_payroll(app, container)
    register_evaluations(app, container)
    register_permissions(app, container)
    register_notifications(app, container)
    register_outbox(app, container)

    return app
