from __future__ import annotations

import importlib
import logging
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from flask import Flask, jsonify

from config import get_settings_module

from .attendance.controller import register as register_attendance
from .common.datetime_utils import parse_cutoffs
from .container import Container, build_container
from .core.logging_config import configure_logging
from .database.bootstrap import apply_schema, apply_seed_sql, list_tables
from .fees.controller import register as register_fees
from .people.controller import register as register_people
from .reports.controller import register as register_reports
from .roster.controller import register as register_roster

logger = logging.getLogger(__name__)

DATABASE_DIR = Path(__file__).resolve().parents[3] / "database"


def create_app(container: Optional[Container] = None) -> Flask:
    """App factory.

    Pass ``container`` to run over pre-built services (tests use in-memory
    repositories); otherwise MySQL repositories are wired from settings.
    """

    load_dotenv(override=False)
    app = Flask(__name__)

    settings_module = get_settings_module()
    settings = importlib.import_module(settings_module)
    app.secret_key = getattr(settings, "SECRET_KEY")
    db_config = getattr(settings, "DB_CONFIG")
    app.config["DEBUG"] = bool(getattr(settings, "DEBUG", False))
    app.config["TESTING"] = bool(getattr(settings, "TESTING", False))

    configure_logging(app, getattr(settings, "LOG_LEVEL", "INFO"), getattr(settings, "LOG_FILE", None))
    logger.info(
        "settings=%s db=%s@%s:%s/%s",
        settings_module,
        db_config.get("user"),
        db_config.get("host"),
        db_config.get("port", 3306),
        db_config.get("database"),
    )

    if container is None:
        if bool(getattr(settings, "AUTO_INIT_DB", False)):
            apply_schema(db_config, schema_path=DATABASE_DIR / "schema.sql")
            logger.info("schema ready (tables=%d)", len(list_tables(db_config)))
        if bool(getattr(settings, "AUTO_SEED_DB", False)):
            apply_seed_sql(db_config, seed_path=DATABASE_DIR / "seed.sql")
            logger.info("demo seed ready")

        container = build_container(
            db_config=db_config,
            late_cutoffs=parse_cutoffs(getattr(settings, "LATE_CUTOFFS", None)) or None,
            staff_period=getattr(settings, "STAFF_PERIOD", "AM"),
            eligibility_threshold=int(getattr(settings, "EXAM_ELIGIBILITY_THRESHOLD", 75)),
        )

    app.extensions["container"] = container

    @app.route("/health", endpoint="health")
    def health():
        return jsonify({"success": True, "status": "ok"})

    register_people(app, container)
    register_attendance(app, container)
    register_roster(app, container)
    register_fees(app, container)
    register_reports(app, container)

    return app
