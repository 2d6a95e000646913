from __future__ import annotations

import logging
from typing import Optional

from dotenv import load_dotenv
from flask import Flask

from .auth.controller import register as register_auth
from .common.http import register_error_handlers
from .common.logging_config import setup_logging
from .container import build_container
from .database.bootstrap import apply_schema
from .settings import Settings, load_settings
from .users.controller import register as register_users

logger = logging.getLogger(__name__)


def create_app(settings: Optional[Settings] = None) -> Flask:
    load_dotenv(override=False)
    settings = settings or load_settings()
    setup_logging(settings.LOG_LEVEL)

    app = Flask(__name__)
    app.secret_key = settings.SECRET_KEY
    app.config["DEBUG"] = bool(settings.DEBUG)
    app.config["TESTING"] = bool(settings.TESTING)

    container = build_container(settings)
    app.extensions["container"] = container

    if settings.AUTO_INIT_DB and container.conn is not None:
        apply_schema(container.conn)

    register_error_handlers(app)
    register_auth(app, container)
    register_users(app, container)

    db = settings.DB_CONFIG
    logger.info(
        "App ready (backend=%s, token_store=%s, db=%s@%s:%s/%s)",
        settings.STORE_BACKEND,
        settings.TOKEN_STORE_ENABLED,
        db.get("user"),
        db.get("host"),
        db.get("port", 3306),
        db.get("database"),
    )
    return app


if __name__ == "__main__":
    create_app().run()
