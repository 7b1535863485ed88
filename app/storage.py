"""S3-backed object store for uploaded reports."""

import logging
import os
import uuid

from botocore.exceptions import BotoCoreError, ClientError

from app.aws_utils import provider_error
from app.errors import ValidationError
from app.models import S3Location

logger = logging.getLogger("medical_report.storage")


class S3ObjectStore:
    """Stores raw documents under generated keys and hands out paths and URLs.

    A path is the object key inside the configured bucket; it is what clients
    send back as ``fileId`` when asking for a stored document to be processed.
    """

    def __init__(self, client, bucket: str, prefix: str = "", url_expiry_seconds: int = 3600) -> None:
        self._client = client
        self.bucket = bucket
        self._prefix = prefix
        self._url_expiry_seconds = url_expiry_seconds

    def generate_key(self, filename: str) -> str:
        _, ext = os.path.splitext(filename)
        return f"{self._prefix}{uuid.uuid4()}{ext.lower()}"

    def location(self, path: str) -> S3Location:
        if not path or path.startswith("/") or ".." in path.split("/") or not path.startswith(self._prefix):
            raise ValidationError("Invalid file identifier", {"fileId": path})
        return S3Location(bucket=self.bucket, key=path)

    def upload(self, key: str, data: bytes, content_type: str) -> str:
        try:
            self._client.put_object(
                Bucket=self.bucket,
                Key=key,
                Body=data,
                ContentType=content_type,
                CacheControl="max-age=3600",
            )
        except (BotoCoreError, ClientError) as exc:
            logger.error("Upload of %s (%s bytes) to s3://%s failed: %s", key, len(data), self.bucket, exc)
            raise provider_error("s3", exc, key=key) from exc

        logger.info("Stored %s bytes at s3://%s/%s", len(data), self.bucket, key)
        return key

    def download(self, path: str) -> bytes:
        location = self.location(path)
        try:
            response = self._client.get_object(Bucket=location.bucket, Key=location.key)
            return response["Body"].read()
        except (BotoCoreError, ClientError) as exc:
            logger.error("Download of %s failed: %s", location.path, exc)
            raise provider_error("s3", exc, key=path) from exc

    def get_public_url(self, path: str) -> str:
        location = self.location(path)
        try:
            return self._client.generate_presigned_url(
                "get_object",
                Params={"Bucket": location.bucket, "Key": location.key},
                ExpiresIn=self._url_expiry_seconds,
            )
        except (BotoCoreError, ClientError) as exc:
            raise provider_error("s3", exc, key=path) from exc
