import io
import logging
from threading import Lock
from urllib.parse import quote

from minio.deleteobjects import DeleteObject
from minio.error import MinioException
from urllib3.exceptions import HTTPError

from messageboard.errors import StorageError


logger = logging.getLogger(__name__)


def _get_stream_and_length(data):
    if isinstance(data, (bytes, bytearray)):
        return io.BytesIO(data), len(data)

    stream = getattr(data, "stream", data)
    try:
        stream.seek(0, 2)
        length = stream.tell()
        stream.seek(0)
        return stream, length
    except (AttributeError, OSError):
        return stream, -1


class ObjectStorage:
    def __init__(self, minio_client, public_base_url: str):
        self._client = minio_client
        self._public_base_url = public_base_url.rstrip("/")
        self._ready_buckets = set()
        self._lock = Lock()

    def _ensure_bucket(self, bucket: str):
        with self._lock:
            if bucket in self._ready_buckets:
                return
            if not self._client.bucket_exists(bucket):
                self._client.make_bucket(bucket)
            self._ready_buckets.add(bucket)

    def upload(self, bucket: str, path: str, data, content_type=None):
        stream, length = _get_stream_and_length(data)
        upload_kwargs = {
            "bucket_name": bucket,
            "object_name": path,
            "data": stream,
            "length": length,
            "content_type": content_type or "application/octet-stream",
        }
        if length == -1:
            upload_kwargs["part_size"] = 10 * 1024 * 1024

        try:
            self._ensure_bucket(bucket)
            self._client.put_object(**upload_kwargs)
        except (MinioException, HTTPError) as e:
            logger.warning("Upload of %s/%s failed: %s", bucket, path, e)
            raise StorageError("Attachment upload failed") from e

        logger.info("Uploaded %s/%s", bucket, path)

    def remove(self, bucket: str, paths):
        try:
            errors = list(self._client.remove_objects(
                bucket,
                [DeleteObject(path) for path in paths],
            ))
        except (MinioException, HTTPError) as e:
            raise StorageError("Attachment removal failed") from e

        if errors:
            names = ", ".join(error.name for error in errors)
            raise StorageError(f"Could not remove: {names}")

    def get_public_url(self, bucket: str, path: str) -> str:
        return f"{self._public_base_url}/{bucket}/{quote(path, safe='/')}"
