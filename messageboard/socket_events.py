"""Live feed over Socket.IO.

Each connection on the ``/posts`` namespace is one active feed view: connect
subscribes it to the change feed, disconnect releases that subscription.
"""
import logging
from threading import Lock

from flask import current_app, request
from flask_socketio import emit

from messageboard.errors import ChangeFeedError
from messageboard.extensions.extensions import socketio
from messageboard.services.backend import get_backend
from messageboard.views.post_feed import FeedStatus, PostFeed
from messageboard.views.session_guard import SessionGuard, extract_access_token


logger = logging.getLogger(__name__)

FEED_NAMESPACE = "/posts"

_registered = False


class FeedRegistry:
    """Active feeds keyed by Socket.IO session id."""

    def __init__(self):
        self._feeds = {}
        self._lock = Lock()

    def attach(self, sid, feed):
        with self._lock:
            previous = self._feeds.get(sid)
            self._feeds[sid] = feed
        if previous is not None:
            previous.deactivate()

    def detach(self, sid):
        with self._lock:
            feed = self._feeds.pop(sid, None)
        if feed is not None:
            feed.deactivate()
        return feed

    def __len__(self):
        with self._lock:
            return len(self._feeds)


def _push_feed(sid):
    def push(feed):
        rendered = feed.render()
        socketio.emit("posts", rendered, to=sid, namespace=FEED_NAMESPACE)
        if rendered["status"] == FeedStatus.ERRORED.value:
            socketio.emit(
                "feed_error", {"error": rendered["error"]}, to=sid, namespace=FEED_NAMESPACE
            )
    return push


def register_socket_events():
    global _registered
    if _registered:
        return

    @socketio.on("connect", namespace=FEED_NAMESPACE)
    def handle_connect(auth=None):
        token = extract_access_token(auth)
        backend = get_backend()
        user = SessionGuard(backend).check(token)
        if user is None:
            return False

        feed = PostFeed(
            backend,
            user,
            token,
            bucket=current_app.config["IMAGES_BUCKET"],
        )
        try:
            feed.activate(on_change=_push_feed(request.sid))
        except ChangeFeedError as e:
            logger.warning("Live feed unavailable: %s", e)
            return False

        current_app.extensions["live_feeds"].attach(request.sid, feed)
        rendered = feed.render()
        emit("posts", rendered)
        if rendered["status"] == FeedStatus.ERRORED.value:
            emit("feed_error", {"error": rendered["error"]})

    @socketio.on("disconnect", namespace=FEED_NAMESPACE)
    def handle_disconnect(*args):
        current_app.extensions["live_feeds"].detach(request.sid)

    _registered = True
