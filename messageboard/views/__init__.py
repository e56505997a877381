from messageboard.views.navigation import FEED_ROUTE, LOGIN_ROUTE, NEW_POST_ROUTE, Navigator
from messageboard.views.post_composer import Attachment, PostComposer
from messageboard.views.post_feed import FeedState, FeedStatus, PostFeed
from messageboard.views.session_guard import SessionGuard, session_required


__all__ = [
    "Attachment",
    "FEED_ROUTE",
    "FeedState",
    "FeedStatus",
    "LOGIN_ROUTE",
    "NEW_POST_ROUTE",
    "Navigator",
    "PostComposer",
    "PostFeed",
    "SessionGuard",
    "session_required",
]
