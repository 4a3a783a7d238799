"""Flask application factory."""

import logging
import logging.config
from pathlib import Path

from flask import Flask, jsonify

from . import __version__
from .config import get_value, load_config
from .database import db, init_database


def setup_logging(config: dict, app_root: Path) -> None:
    """Configure structured logging to console and file."""
    log_level = get_value(config, "logging", "level", default="INFO")
    log_file = get_value(config, "logging", "file", default="logs/app.log")
    max_bytes = get_value(config, "logging", "max_bytes", default=10_000_000)  # 10MB
    backup_count = get_value(config, "logging", "backup_count", default=5)

    log_path = app_root / log_file
    log_path.parent.mkdir(parents=True, exist_ok=True)

    logging_config = {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "standard": {
                "format": "%(asctime)s - %(levelname)s - %(name)s - %(message)s",
                "datefmt": "%Y-%m-%dT%H:%M:%S%z",
            },
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "level": log_level,
                "formatter": "standard",
                "stream": "ext://sys.stdout",
            },
            "file": {
                "class": "logging.handlers.RotatingFileHandler",
                "level": log_level,
                "formatter": "standard",
                "filename": str(log_path),
                "maxBytes": max_bytes,
                "backupCount": backup_count,
            },
        },
        "root": {
            "level": log_level,
            "handlers": ["console", "file"],
        },
    }

    logging.config.dictConfig(logging_config)


def create_app(config_path: str = "config.yaml", testing: bool = False) -> Flask:
    """
    Create and configure the Flask application.

    Args:
        config_path: Path to the YAML configuration file
        testing: If True, mark the app as TESTING before any initialisation
            runs.

    Returns:
        Configured Flask application instance
    """
    app_root = Path(config_path).parent.absolute()
    if not app_root.exists():
        app_root = Path.cwd()

    config = load_config(config_path)

    app = Flask(__name__)

    if testing:
        app.config["TESTING"] = True

    app.config["DEBUG"] = get_value(config, "server", "debug", default=False)
    app.config["APP_CONFIG"] = config
    app.config["APP_VERSION"] = __version__
    app.config["APP_ROOT"] = str(app_root)

    setup_logging(config, app_root)
    logger = logging.getLogger(__name__)
    logger.info(f"Starting reporting chain v{__version__}")

    # Fails fast on an invalid leadership section
    from .services.eligibility import policy_from_config
    policy = policy_from_config(config)
    app.extensions["leadership_policy"] = policy
    logger.info(f"Leadership policy loaded (rank_direction={policy.rank_direction})")

    # Initialize database (continues even if connection fails)
    db_connected = init_database(app, config)
    app.config["DATABASE_CONNECTED"] = db_connected

    register_error_handlers(app)
    register_blueprints(app)
    register_cli_commands(app)

    return app


def register_error_handlers(app: Flask) -> None:
    """Register JSON error handlers for 404 and 500 errors."""

    @app.errorhandler(404)
    def not_found_error(error):
        return jsonify({"error": "Not found"}), 404

    @app.errorhandler(500)
    def internal_error(error):
        db.session.rollback()
        # In production, don't expose error details
        if not app.debug:
            return jsonify({"error": "Internal server error"}), 500
        raise error


def register_blueprints(app: Flask) -> None:
    """Register application blueprints."""
    from .routes.health import health_bp
    from .routes.leadership import leadership_bp

    app.register_blueprint(health_bp)
    app.register_blueprint(leadership_bp)


def register_cli_commands(app: Flask) -> None:
    """Register Flask CLI command groups."""
    from .cli.leadership_cli import leadership_cli

    app.cli.add_command(leadership_cli)
