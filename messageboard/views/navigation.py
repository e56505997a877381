from flask import redirect


LOGIN_ROUTE = "/login"
FEED_ROUTE = "/posts"
NEW_POST_ROUTE = "/new-post"


class Navigator:
    """Records where a view asked to go once its operation finished."""

    def __init__(self):
        self.location = None

    def navigate(self, route: str):
        self.location = route

    def redirect(self, default=FEED_ROUTE, code=303):
        return redirect(self.location or default, code=code)
