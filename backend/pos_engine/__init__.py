# backend/pos_engine/__init__.py
from flask import Flask

from .config import Config
from .extensions import db, migrate


def create_app(test_config: dict | None = None, *, card_gateway=None) -> Flask:
    # Named after the package so app.logger is the parent of every module logger
    app = Flask("pos_engine", instance_relative_config=True)
    app.config.from_object(Config)
    if test_config:
        app.config.update(test_config)

    app.logger.setLevel(app.config.get("LOG_LEVEL", "INFO"))

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)

    # Import models so Alembic can discover metadata reliably
    from . import models  # noqa: F401

    from .engine import build_sql_engine
    app.extensions["pos_engine"] = build_sql_engine(app, card_gateway=card_gateway)

    # Register blueprints
    from .routes.transactions import transactions_bp
    app.register_blueprint(transactions_bp)

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    return app
