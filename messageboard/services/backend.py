from dataclasses import dataclass

from flask import current_app

from messageboard.db import db
from messageboard.extensions.minio_client import build_minio_client
from messageboard.extensions.redis_client import build_redis_client
from messageboard.models.post_model import Post
from messageboard.models.user_model import User
from messageboard.repositories.table_store import TableStore
from messageboard.services.auth_service import AuthGateway
from messageboard.services.change_feed import ChangeFeed
from messageboard.services.storage_service import ObjectStorage


@dataclass
class Backend:
    """Everything the views reach outside the process, bundled for injection."""

    auth: AuthGateway
    store: TableStore
    storage: ObjectStorage
    changes: ChangeFeed


def build_backend(app, redis_client=None, minio_client=None) -> Backend:
    config = app.config
    if redis_client is None:
        redis_client = build_redis_client(config)
    if minio_client is None:
        minio_client = build_minio_client(config)

    changes = ChangeFeed(
        redis_client,
        channel_prefix=config["CHANGE_FEED_CHANNEL_PREFIX"],
        poll_interval=config["CHANGE_FEED_POLL_INTERVAL"],
    )
    return Backend(
        auth=AuthGateway(
            app,
            redis_client,
            blocklist_prefix=config["SESSION_BLOCKLIST_PREFIX"],
        ),
        store=TableStore(
            app,
            db,
            {"posts": Post, "user_data": User},
            changes=changes,
        ),
        storage=ObjectStorage(minio_client, config["MINIO_PUBLIC_BASE_URL"]),
        changes=changes,
    )


def get_backend() -> Backend:
    return current_app.extensions["backend"]
