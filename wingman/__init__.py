from flask import Flask, jsonify

from .config import Config
from .extensions import db, socketio
from .logging_config import setup_logging
from . import models  # noqa: F401
from .services.ai_connection import init_connector
from .services.password_reset import init_reset_sender
from .views.health import health_bp
from .views.auth import auth_bp
from .views.providers import providers_bp
from .views.chats import chats_bp
from .views.prompts import prompts_bp


def create_app(config_class: type[Config] = Config) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(config_class)

    setup_logging(app.config.get("LOG_LEVEL", "INFO"), app.config.get("LOG_FILE"))

    db.init_app(app)
    socketio.init_app(app)
    init_connector(app)
    init_reset_sender(app)

    app.register_blueprint(health_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(providers_bp)
    app.register_blueprint(chats_bp)
    app.register_blueprint(prompts_bp)

    @app.errorhandler(404)
    def not_found(_: Exception):
        return jsonify({"success": False, "error": "Not Found"}), 404

    @app.errorhandler(500)
    def internal_error(_: Exception):
        return jsonify({"success": False, "error": "Internal Server Error"}), 500

    return app
