import logging
import time
from dataclasses import dataclass

from flask_jwt_extended import create_access_token, create_refresh_token, decode_token
from flask_jwt_extended.exceptions import JWTExtendedException
from jwt.exceptions import PyJWTError
from redis.exceptions import RedisError
from sqlalchemy.exc import SQLAlchemyError
from werkzeug.security import check_password_hash, generate_password_hash

from messageboard.db import app_scope
from messageboard.errors import AuthError
from messageboard.repositories import user_repository


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SessionUser:
    id: str
    email: str


def _require_non_empty_string(value):
    return isinstance(value, str) and value.strip()


class AuthGateway:
    """Sessions as signed access tokens, revoked through a Redis blocklist."""

    def __init__(self, app, redis_client, blocklist_prefix="revoked-token"):
        self._app = app
        self._redis = redis_client
        self._blocklist_prefix = blocklist_prefix

    def _blocklist_key(self, jti):
        return f"{self._blocklist_prefix}:{jti}"

    def register(self, email, password) -> SessionUser:
        if not _require_non_empty_string(email) or not _require_non_empty_string(password):
            raise ValueError("Missing fields")

        email = email.strip().lower()
        if "@" not in email:
            raise ValueError("Invalid email")

        with app_scope(self._app):
            if user_repository.get_by_email(email):
                raise ValueError("User already registered")

            user = user_repository.create_user(
                email=email,
                password_hash=generate_password_hash(password),
            )
            registered = SessionUser(id=user.id, email=user.email)

        logger.info("Registered user %s", registered.id)
        return registered

    def login(self, email, password) -> dict:
        if not _require_non_empty_string(email) or not _require_non_empty_string(password):
            raise ValueError("Invalid credentials")

        with app_scope(self._app):
            user = user_repository.get_by_email(email.strip().lower())
            if not user or not check_password_hash(user.password_hash, password):
                raise ValueError("Invalid credentials")

            claims = {"email": user.email}
            return {
                "access_token": create_access_token(identity=user.id, additional_claims=claims),
                "refresh_token": create_refresh_token(identity=user.id, additional_claims=claims),
                "user": user.to_dict(),
            }

    def refresh_access_token(self, user_id, email):
        with app_scope(self._app):
            return {
                "access_token": create_access_token(
                    identity=user_id,
                    additional_claims={"email": email},
                )
            }

    def _decode(self, token):
        if not token:
            raise AuthError("Auth session missing")
        try:
            return decode_token(token)
        except (PyJWTError, JWTExtendedException) as e:
            raise AuthError("Invalid or expired session") from e

    def is_revoked(self, jti) -> bool:
        try:
            return bool(self._redis.exists(self._blocklist_key(jti)))
        except RedisError as e:
            raise AuthError("Session store unavailable") from e

    def get_current_user(self, token) -> SessionUser:
        with app_scope(self._app):
            claims = self._decode(token)
            if claims.get("type") != "access":
                raise AuthError("Not an access token")
            if self.is_revoked(claims["jti"]):
                raise AuthError("Session has been signed out")

            try:
                user = user_repository.get_by_id(claims["sub"])
            except SQLAlchemyError as e:
                raise AuthError("Session lookup failed") from e
            if user is None:
                raise AuthError("User not found")
            return SessionUser(id=user.id, email=user.email)

    def sign_out(self, token):
        with app_scope(self._app):
            claims = self._decode(token)

        ttl = max(int(claims["exp"] - time.time()), 1)
        try:
            self._redis.set(self._blocklist_key(claims["jti"]), "1", ex=ttl)
        except RedisError as e:
            raise AuthError("Could not sign out") from e

        logger.info("Signed out user %s", claims["sub"])
