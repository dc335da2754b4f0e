from __future__ import annotations

import logging
from dotenv import load_dotenv
from flask import Flask, jsonify, render_template, request
from werkzeug.exceptions import HTTPException

from storefront.app.config import Config
from storefront.app.extensions import db, migrate, cors, cache
from storefront.app.common.errors import ApiError
from storefront.app.common.request_context import RequestIdFilter, init_request_id
from storefront.app.api.register import register_api_blueprints, register_page_blueprints
from storefront.app.html.page import verify_csrf
from storefront.app.cli import cli_bp

LOG_FORMAT = "%(asctime)s %(levelname)s [%(request_id)s] %(name)s: %(message)s"


def _wants_json() -> bool:
    return request.path == "/api" or request.path.startswith("/api/")


def create_app(config_object: type[Config] = Config) -> Flask:
    load_dotenv()

    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(config_object)

    logging.basicConfig(level=app.config.get("LOG_LEVEL", "INFO"), format=LOG_FORMAT)
    for handler in logging.getLogger().handlers:
        if not any(isinstance(f, RequestIdFilter) for f in handler.filters):
            handler.addFilter(RequestIdFilter())

    # Extensions
    db.init_app(app)
    migrate.init_app(app, db)
    cors.init_app(app, resources={r"/api/*": {"origins": app.config.get("CORS_ORIGINS") or "*"}})
    cache.init_app(app)

    @app.before_request
    def _before_request():
        init_request_id()
        verify_csrf()

    # Health endpoint (for Docker)
    @app.get("/health")
    def health():
        return {"status": "ok"}, 200

    register_api_blueprints(app)
    register_page_blueprints(app)

    # CLI (flask seed, flask cache-clear)
    app.register_blueprint(cli_bp)

    # Error handlers
    @app.errorhandler(ApiError)
    def handle_api_error(err: ApiError):
        from flask import g

        return jsonify(err.to_dict(getattr(g, "request_id", None))), err.status_code

    @app.errorhandler(HTTPException)
    def handle_http_exception(err: HTTPException):
        from flask import g

        if not _wants_json():
            return render_template("error.html", code=err.code, message=err.description), err.code or 500

        # Normalize Werkzeug errors into our JSON shape
        payload = {
            "error": {
                "code": "http_error",
                "message": err.description,
                "details": {"name": err.name},
                "request_id": getattr(g, "request_id", None),
            }
        }
        return jsonify(payload), err.code or 500

    @app.errorhandler(Exception)
    def handle_unexpected(err: Exception):
        app.logger.exception("Unhandled exception")
        from flask import g

        if not _wants_json():
            return render_template("error.html", code=500, message="Internal server error"), 500

        payload = {
            "error": {
                "code": "internal_error",
                "message": "Internal server error",
                "details": {},
                "request_id": getattr(g, "request_id", None),
            }
        }
        return jsonify(payload), 500

    return app
