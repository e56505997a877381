"""Live post list.

The feed never patches its list in place: every change notification, from
any writer including this viewer, re-runs ``load()`` and replaces the whole
sequence.
"""
import enum
import logging
from threading import Lock

from messageboard.errors import DeleteNotAllowed, PersistenceError, StorageError
from messageboard.schemas.post_schema import PostResponseSchema
from messageboard.services.change_feed import ALL_EVENTS
from messageboard.views.navigation import LOGIN_ROUTE
from messageboard.views.post_composer import POSTS_TABLE, attachment_path


logger = logging.getLogger(__name__)


class FeedStatus(enum.Enum):
    LOADING = "loading"
    LOADED = "loaded"
    ERRORED = "errored"


class FeedState:
    def __init__(self):
        self._lock = Lock()
        self.status = FeedStatus.LOADING
        self.posts = []
        self.error = None

    def mark_loading(self):
        with self._lock:
            self.status = FeedStatus.LOADING
            self.error = None

    def mark_loaded(self, posts):
        with self._lock:
            self.status = FeedStatus.LOADED
            self.posts = list(posts)
            self.error = None

    def mark_errored(self, message):
        with self._lock:
            self.status = FeedStatus.ERRORED
            self.error = message

    def snapshot(self):
        with self._lock:
            return self.status, list(self.posts), self.error


class PostFeed:
    def __init__(self, backend, viewer, token, navigator=None, bucket="images", state=None):
        self._backend = backend
        self._viewer = viewer
        self._token = token
        self._navigator = navigator
        self._bucket = bucket
        self.state = state or FeedState()
        self._refresh_lock = Lock()
        self._subscription = None
        self._on_change = None

    @property
    def is_active(self):
        return self._subscription is not None

    def load(self):
        return self._backend.store.select(
            POSTS_TABLE,
            join={"user_data": ("email",)},
            order_by=("-created_at", "-id"),
        )

    def find(self, post_id):
        rows = self._backend.store.select(POSTS_TABLE, filters={"id": post_id})
        return rows[0] if rows else None

    def refresh(self):
        with self._refresh_lock:
            self.state.mark_loading()
            try:
                posts = self.load()
            except PersistenceError as e:
                logger.warning("Feed load failed: %s", e)
                self.state.mark_errored(str(e))
            else:
                self.state.mark_loaded(posts)
        return self.state

    def _handle_change(self, payload):
        logger.debug("Refetching feed after %s", payload.get("event"))
        self.refresh()
        on_change = self._on_change
        if on_change is not None:
            on_change(self)

    def subscribe(self, on_change=None):
        """Register this feed's single change-feed listener.

        ``on_change`` receives the feed after each refetch completes.
        """
        if self._subscription is not None:
            return self._subscription

        self._on_change = on_change
        self._subscription = self._backend.changes.subscribe(
            POSTS_TABLE, ALL_EVENTS, self._handle_change
        )
        return self._subscription

    def unsubscribe(self):
        subscription, self._subscription = self._subscription, None
        self._on_change = None
        if subscription is not None:
            self._backend.changes.unsubscribe(subscription)

    def activate(self, on_change=None):
        self.subscribe(on_change)
        return self.refresh()

    def deactivate(self):
        self.unsubscribe()

    def resolve_attachment_url(self, post):
        if not post.get("image_id"):
            return None
        return self._backend.storage.get_public_url(
            self._bucket, attachment_path(post["user_id"], post["image_id"])
        )

    def can_delete(self, post):
        return self._viewer is not None and post.get("user_id") == self._viewer.id

    def delete(self, post):
        if not self.can_delete(post):
            raise DeleteNotAllowed("Only the author can delete this post")

        # Matching on user_id as well keeps the store from removing someone else's row.
        removed = self._backend.store.delete(
            POSTS_TABLE, {"id": post["id"], "user_id": self._viewer.id}
        )
        if not removed:
            raise PersistenceError("Post not found")

        if post.get("image_id"):
            path = attachment_path(post["user_id"], post["image_id"])
            try:
                self._backend.storage.remove(self._bucket, [path])
            except StorageError as e:
                logger.warning("Leaving orphaned attachment %s: %s", path, e)

    def logout(self):
        self._backend.auth.sign_out(self._token)
        if self._navigator is not None:
            self._navigator.navigate(LOGIN_ROUTE)

    def render(self):
        status, posts, error = self.state.snapshot()
        items = [
            {
                **post,
                "author_email": (post.get("user_data") or {}).get("email"),
                "image_url": self.resolve_attachment_url(post),
                "can_delete": self.can_delete(post),
            }
            for post in posts
        ]
        return {
            "status": status.value,
            "error": error,
            "posts": PostResponseSchema(many=True).dump(items),
        }
