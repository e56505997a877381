import logging
import uuid
from dataclasses import dataclass

from messageboard.errors import StorageError
from messageboard.views.navigation import FEED_ROUTE


logger = logging.getLogger(__name__)

POSTS_TABLE = "posts"

ALLOWED_IMAGE_MIME_TYPES = {
    "image/jpeg",
    "image/png",
    "image/webp",
    "image/gif",
}


@dataclass(frozen=True)
class Attachment:
    data: bytes
    content_type: str
    filename: str = ""


def attachment_path(user_id: str, image_id: str) -> str:
    return f"{user_id}/{image_id}"


class PostComposer:
    def __init__(self, backend, token, navigator, bucket="images", max_attachment_bytes=None):
        self._backend = backend
        self._token = token
        self._navigator = navigator
        self._bucket = bucket
        self._max_attachment_bytes = max_attachment_bytes

    def _validate(self, content, attachment):
        if not isinstance(content, str) or not content.strip():
            raise ValueError("Content is required")

        if attachment is None:
            return content.strip()

        if attachment.content_type not in ALLOWED_IMAGE_MIME_TYPES:
            raise ValueError(f"Unsupported attachment type: {attachment.content_type}")
        if not attachment.data:
            raise ValueError("Attachment is empty")
        if self._max_attachment_bytes and len(attachment.data) > self._max_attachment_bytes:
            raise ValueError("Attachment is too large")

        return content.strip()

    def submit_post(self, content, attachment=None):
        """Insert the post row, then upload its attachment, then go to the feed.

        The steps run strictly in order and nothing is retried. When the upload
        fails the row stays behind with an ``image_id`` that points at no object.

        :raises ValueError: content or attachment rejected before any backend call
        :raises AuthError: no current user
        :raises PersistenceError: the row insert was rejected
        :raises StorageError: the attachment upload failed after the insert
        """
        content = self._validate(content, attachment)

        image_id = str(uuid.uuid4()) if attachment is not None else None

        user = self._backend.auth.get_current_user(self._token)

        post_id = self._backend.store.insert(POSTS_TABLE, {
            "content": content,
            "user_id": user.id,
            "image_id": image_id,
        })

        if attachment is not None:
            path = attachment_path(user.id, image_id)
            try:
                self._backend.storage.upload(
                    self._bucket,
                    path,
                    attachment.data,
                    content_type=attachment.content_type,
                )
            except StorageError:
                logger.warning("Post %s kept with dangling image %s", post_id, path)
                raise

        self._navigator.navigate(FEED_ROUTE)
