"""Flask application configuration and blueprint registration."""

from __future__ import annotations

from flask import Flask, jsonify

from lingoshield import __version__
from lingoshield.exceptions import ConfigurationError, MalformedInputError, TranslationError
from lingoshield.logger import get_logger

from .routes.extract import extract_bp
from .routes.jobs import jobs_bp
from .routes.settings import settings_bp
from .routes.subtitles import subtitles_bp
from .routes.tmx import tmx_bp

logger = get_logger(__name__)


def build_app(store) -> Flask:
    """Create and configure the Flask application."""
    app = Flask(__name__)

    # Ensure JSON responses keep Unicode data.
    app.config["JSON_AS_ASCII"] = False
    app.json.ensure_ascii = False
    app.config["STORE"] = store

    register_blueprints(app)
    register_default_routes(app)
    register_error_handlers(app)

    return app


def register_blueprints(app: Flask) -> None:
    """Register Flask blueprints."""
    app.register_blueprint(settings_bp, url_prefix="/api/settings")
    app.register_blueprint(extract_bp, url_prefix="/api")
    app.register_blueprint(jobs_bp, url_prefix="/api/jobs")
    app.register_blueprint(subtitles_bp, url_prefix="/api/subtitles")
    app.register_blueprint(tmx_bp, url_prefix="/api/tmx")


def register_default_routes(app: Flask) -> None:
    """Register default health route."""

    @app.get("/health")
    def health_check():
        logger.debug("Health check requested")
        return jsonify({"status": "ok", "version": __version__})


def register_error_handlers(app: Flask) -> None:
    """Turn pipeline errors and unknown routes into JSON responses."""

    @app.errorhandler(MalformedInputError)
    def malformed_input(e: MalformedInputError):
        logger.warning(f"Malformed input: {e}")
        return jsonify(e.to_dict()), 400

    @app.errorhandler(ConfigurationError)
    def configuration_error(e: ConfigurationError):
        logger.warning(f"Configuration error: {e}")
        return jsonify(e.to_dict()), 400

    @app.errorhandler(TranslationError)
    def translation_error(e: TranslationError):
        logger.error(f"Translation error: {e}")
        return jsonify(e.to_dict()), 500

    @app.errorhandler(404)
    def page_not_found(e):
        return jsonify({"error": "Not found"}), 404

    @app.errorhandler(500)
    def internal_error(e):
        logger.exception("Internal server error: %s", e)
        return jsonify({"error": "Internal server error"}), 500
