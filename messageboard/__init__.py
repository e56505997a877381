import logging
from collections.abc import Mapping

from flask import Flask
from flask_jwt_extended import JWTManager

from messageboard.config import Config
from messageboard.db import db
from messageboard.errors import AuthError
from messageboard.extensions.extensions import ma, socketio
from messageboard.routes.auth_routes import auth_bp
from messageboard.routes.post_routes import post_bp
from messageboard.services.backend import build_backend
from messageboard.socket_events import FeedRegistry, register_socket_events


logger = logging.getLogger(__name__)


def create_app(config=None, redis_client=None, minio_client=None):
    app = Flask(__name__)
    app.config.from_object(Config)
    if isinstance(config, Mapping):
        app.config.update(config)
    elif config is not None:
        app.config.from_object(config)

    db.init_app(app)
    ma.init_app(app)
    jwt = JWTManager(app)
    # Handlers recorded before init_app are replayed onto every app's server.
    register_socket_events()
    socketio.init_app(app)

    backend = build_backend(app, redis_client=redis_client, minio_client=minio_client)
    app.extensions["backend"] = backend
    app.extensions["live_feeds"] = FeedRegistry()

    @jwt.token_in_blocklist_loader
    def token_revoked(jwt_header, jwt_payload):
        try:
            return backend.auth.is_revoked(jwt_payload["jti"])
        except AuthError:
            return True

    app.register_blueprint(auth_bp)
    app.register_blueprint(post_bp)

    with app.app_context():
        db.create_all()

    logger.debug("Application created with bucket %s", app.config["IMAGES_BUCKET"])
    return app
