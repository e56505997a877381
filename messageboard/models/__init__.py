from messageboard.models.post_model import Post
from messageboard.models.user_model import User


__all__ = ["Post", "User"]
