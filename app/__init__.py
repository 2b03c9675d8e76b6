from __future__ import annotations

from dotenv import load_dotenv
from flask import Flask
from flask_cors import CORS

from app.config import get_config
from app.db import init_mongo
from app.middlewares.error_handler import init_error_handlers
from app.middlewares.request_log import init_request_log
from app.pipeline.context import init_pipeline
from app.routes.applications import applications_bp
from app.routes.core import core_bp
from app.routes.evaluations import evaluations_bp
from app.routes.rounds import rounds_bp
from app.utils.logging import setup_logging


def create_app() -> Flask:
    load_dotenv()

    cfg = get_config()
    setup_logging(cfg.LOG_LEVEL)

    app = Flask(__name__)
    app.config["CFG"] = cfg

    CORS(
        app,
        origins=cfg.CORS_ORIGINS,
        supports_credentials=cfg.CORS_ALLOW_CREDENTIALS,
        allow_headers=["Content-Type", "Authorization", "X-Request-ID"],
        expose_headers=["X-Request-ID"],
        methods=["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
        max_age=3600,
    )

    init_request_log(app)
    init_error_handlers(app)

    init_mongo(app)
    init_pipeline(app)

    app.register_blueprint(core_bp)
    app.register_blueprint(rounds_bp, url_prefix="/api/v1/rounds")
    app.register_blueprint(evaluations_bp, url_prefix="/api/v1/evaluations")
    app.register_blueprint(applications_bp, url_prefix="/api/v1/applications")

    return app
