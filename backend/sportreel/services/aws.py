import io
import logging
import threading
from typing import Callable, Optional
from urllib.parse import quote, unquote
import boto3
from botocore.exceptions import BotoCoreError, ClientError
from sportreel.core.config import settings
from sportreel.core.errors import StorageError, UploadError

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[float], None]


class _ProgressTracker:
    """Turns boto3's per-chunk byte counts into a cumulative percentage."""

    def __init__(self, total_bytes: int, on_progress: Optional[ProgressCallback]):
        self.total_bytes = total_bytes
        self.on_progress = on_progress
        self.transferred = 0
        self._lock = threading.Lock()  # multipart chunks report from worker threads

    def __call__(self, bytes_amount: int) -> None:
        with self._lock:
            self.transferred += bytes_amount
            percent = min(100.0, self.transferred * 100.0 / self.total_bytes) if self.total_bytes else 100.0
        if self.on_progress:
            self.on_progress(percent)

    def finish(self) -> None:
        # boto3 skips the callback entirely for empty bodies
        if self.on_progress and (self.total_bytes == 0 or self.transferred < self.total_bytes):
            self.on_progress(100.0)


class S3Client:
    def __init__(self):
        self.s3_client = boto3.client("s3", region_name=settings.aws_region)
        self.bucket = settings.s3_bucket

    @property
    def public_base_url(self) -> str:
        if settings.s3_public_base_url:
            return settings.s3_public_base_url.rstrip("/")
        return f"https://{self.bucket}.s3.{settings.aws_region}.amazonaws.com"

    def public_url(self, s3_key: str) -> str:
        """Download URL for an object, resolvable without credentials."""
        return f"{self.public_base_url}/{quote(s3_key)}"

    def key_from_url(self, url: str) -> str:
        """Recover the object key from a URL produced by public_url."""
        prefix = f"{self.public_base_url}/"
        if not url.startswith(prefix):
            raise StorageError(f"URL does not point into bucket {self.bucket}: {url}")
        return unquote(url[len(prefix):])

    def upload_bytes(
        self,
        data: bytes,
        s3_key: str,
        content_type: str,
        on_progress: Optional[ProgressCallback] = None,
    ) -> str:
        """
        Upload a payload to S3 and return its public download URL.

        on_progress receives the cumulative percentage (0-100) as chunks go out
        and always ends on 100 when the upload succeeds.
        """
        tracker = _ProgressTracker(len(data), on_progress)
        try:
            self.s3_client.upload_fileobj(
                io.BytesIO(data),
                self.bucket,
                s3_key,
                ExtraArgs={"ContentType": content_type},
                Callback=tracker,
            )
        except (ClientError, BotoCoreError) as e:
            logger.error(f"Error uploading to S3: {e}")
            raise UploadError(f"Upload of {s3_key} failed: {e}") from e
        tracker.finish()
        logger.info(f"Uploaded file to s3://{self.bucket}/{s3_key}")
        return self.public_url(s3_key)

    def delete_object(self, s3_key: str) -> None:
        """Delete an object from S3."""
        try:
            self.s3_client.delete_object(Bucket=self.bucket, Key=s3_key)
            logger.info(f"Deleted s3://{self.bucket}/{s3_key}")
        except (ClientError, BotoCoreError) as e:
            logger.error(f"Error deleting from S3: {e}")
            raise StorageError(f"Deletion of {s3_key} failed: {e}") from e


s3_client = S3Client()
