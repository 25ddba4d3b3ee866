import logging
import os
import pathlib
from datetime import timedelta
from typing import BinaryIO, Tuple

from google.cloud import storage

logger = logging.getLogger("ohplus.storage")

CHUNK_SIZE = 1024 * 1024


class StorageError(Exception):
    pass


class FileTooLargeError(StorageError):
    pass


def _copy_limited(source: BinaryIO, sink, max_bytes: int | None) -> int:
    written = 0
    for chunk in iter(lambda: source.read(CHUNK_SIZE), b""):
        written += len(chunk)
        if max_bytes and written > max_bytes:
            raise FileTooLargeError("File exceeds the maximum allowed size")
        sink.write(chunk)
    return written


class StorageClient:
    """Media storage on a GCS bucket, or under LOCAL_STORAGE_DIR when
    LOCAL_STORAGE=1 or no bucket is configured.

    Uploaded files are addressed as ``gs://bucket/path`` or ``file://`` URIs.
    """

    def __init__(self) -> None:
        self.bucket_name = os.getenv("GCS_BUCKET")
        self.local = os.getenv("LOCAL_STORAGE", "0") == "1" or not self.bucket_name
        self.root = pathlib.Path(os.getenv("LOCAL_STORAGE_DIR", "storage")).resolve()
        self._gcs = None if self.local else storage.Client()

    def _bucket(self):
        if self._gcs is None:
            raise StorageError("GCS_BUCKET is not configured")
        return self._gcs.bucket(self.bucket_name)

    def upload_file(
        self,
        file_obj: BinaryIO,
        dest_path: str,
        content_type: str | None,
        max_bytes: int | None = None,
    ) -> Tuple[str, int]:
        if self.local:
            target = self.root / dest_path
            target.parent.mkdir(parents=True, exist_ok=True)
            try:
                with open(target, "wb") as handle:
                    size = _copy_limited(file_obj, handle, max_bytes)
            except FileTooLargeError:
                target.unlink(missing_ok=True)
                raise
            return target.as_uri(), size

        blob = self._bucket().blob(dest_path)
        with blob.open("wb", content_type=content_type) as handle:
            size = _copy_limited(file_obj, handle, max_bytes)
        logger.info("stored gs://%s/%s bytes=%s", self.bucket_name, dest_path, size)
        return f"gs://{self.bucket_name}/{dest_path}", size

    def generate_signed_url(self, file_url: str, expires_minutes: int = 60) -> str:
        if file_url.startswith(("file://", "https://")):
            return file_url
        if not file_url.startswith("gs://"):
            raise StorageError("Unsupported file URL")
        bucket_name, blob_path = file_url[len("gs://") :].split("/", 1)
        client = self._gcs or storage.Client()
        blob = client.bucket(bucket_name).blob(blob_path)
        return blob.generate_signed_url(expiration=timedelta(minutes=expires_minutes), method="GET")
