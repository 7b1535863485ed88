"""Unit tests for the S3 object store adapter."""

import io
import unittest
from unittest.mock import MagicMock

from botocore.exceptions import ClientError

from app.errors import ProviderError, ValidationError
from app.storage import S3ObjectStore


class TestS3ObjectStore(unittest.TestCase):
    def setUp(self) -> None:
        self.client = MagicMock()
        self.store = S3ObjectStore(self.client, bucket="reports", prefix="uploads/", url_expiry_seconds=60)

    def test_generated_keys_are_unique_and_keep_extension(self) -> None:
        first = self.store.generate_key("Blood Test.PDF")
        second = self.store.generate_key("Blood Test.PDF")

        self.assertTrue(first.startswith("uploads/"))
        self.assertTrue(first.endswith(".pdf"))
        self.assertNotEqual(first, second)

    def test_upload_returns_path(self) -> None:
        path = self.store.upload("uploads/a.pdf", b"%PDF", "application/pdf")

        self.assertEqual(path, "uploads/a.pdf")
        self.client.put_object.assert_called_once_with(
            Bucket="reports",
            Key="uploads/a.pdf",
            Body=b"%PDF",
            ContentType="application/pdf",
            CacheControl="max-age=3600",
        )

    def test_upload_failure_is_provider_error(self) -> None:
        self.client.put_object.side_effect = ClientError(
            {"Error": {"Code": "AccessDenied", "Message": "denied"}}, "PutObject"
        )

        with self.assertRaises(ProviderError) as ctx:
            self.store.upload("uploads/a.pdf", b"%PDF", "application/pdf")

        self.assertEqual(ctx.exception.details["code"], "AccessDenied")

    def test_download_reads_body(self) -> None:
        self.client.get_object.return_value = {"Body": io.BytesIO(b"report")}

        self.assertEqual(self.store.download("uploads/a.pdf"), b"report")
        self.client.get_object.assert_called_once_with(Bucket="reports", Key="uploads/a.pdf")

    def test_missing_object_is_provider_error(self) -> None:
        self.client.get_object.side_effect = ClientError(
            {"Error": {"Code": "NoSuchKey", "Message": "missing"}}, "GetObject"
        )

        with self.assertRaises(ProviderError):
            self.store.download("uploads/missing.pdf")

    def test_public_url_is_presigned(self) -> None:
        self.client.generate_presigned_url.return_value = "https://signed.example/a.pdf"

        url = self.store.get_public_url("uploads/a.pdf")

        self.assertEqual(url, "https://signed.example/a.pdf")
        self.client.generate_presigned_url.assert_called_once_with(
            "get_object",
            Params={"Bucket": "reports", "Key": "uploads/a.pdf"},
            ExpiresIn=60,
        )

    def test_rejects_path_traversal(self) -> None:
        for path in ("", "/etc/passwd", "uploads/../secrets.pdf"):
            with self.assertRaises(ValidationError):
                self.store.location(path)
        self.client.get_object.assert_not_called()

    def test_rejects_keys_outside_prefix(self) -> None:
        for path in ("other/a.pdf", "uploads-old/a.pdf", "a.pdf"):
            with self.assertRaises(ValidationError):
                self.store.download(path)
        self.client.get_object.assert_not_called()

        self.assertEqual(self.store.location("uploads/a.pdf").key, "uploads/a.pdf")


if __name__ == "__main__":
    unittest.main()
