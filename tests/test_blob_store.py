import datetime
import unittest
from unittest.mock import MagicMock, patch

import pytest
from botocore.exceptions import ClientError

from shared.config import StoreConfig
from shared.models import BlobInfo, StorageProvider
from blob_tool.cloudflare_r2 import CloudflareR2Provider
from blob_tool.local_provider import LocalStorageProvider
from blob_tool.provider_factory import StorageProviderFactory
from blob_tool.storage_provider import BlobStoreError, filter_audio, find_blob


def blobs(*names):
    return [BlobInfo(pathname=n, url=f"https://blobs.test/{n}") for n in names]


def test_filter_audio():
    kept = filter_audio(blobs("a.mp3", "b.WAV", "c.flac?v=2", "cover.jpg", "notes.mp3.txt"))
    assert [b.pathname for b in kept] == ["a.mp3", "b.WAV", "c.flac?v=2"]


def test_find_blob_needs_every_term():
    listing = blobs("music/Janji - Heroes Tonight.mp3", "music/Heroes (Live).mp3")
    assert find_blob(listing, "heroes tonight").pathname == "music/Janji - Heroes Tonight.mp3"
    assert find_blob(listing, "  HEROES  ").pathname == "music/Janji - Heroes Tonight.mp3"
    assert find_blob(listing, "heroes candyland") is None
    assert find_blob(listing, "   ") is None


@pytest.fixture
def local_store(tmp_path):
    store = LocalStorageProvider()
    assert store.authenticate({"base_path": str(tmp_path / "blobs")})
    return store


def test_local_put_list_and_exists(local_store):
    blob = local_store.put("uploads/Tobu - Hope.mp3", b"abc")
    assert blob.size == 3
    assert blob.url.startswith("file://")
    assert local_store.file_exists("uploads/Tobu - Hope.mp3")
    assert not local_store.file_exists("uploads/missing.mp3")

    local_store.put("music/a.mp3", b"1")
    local_store.put("music/b.mp3", b"2")
    assert [b.pathname for b in local_store.list_blobs()] == [
        "music/a.mp3", "music/b.mp3", "uploads/Tobu - Hope.mp3",
    ]
    assert [b.pathname for b in local_store.list_blobs(limit=1)] == ["music/a.mp3"]
    assert [b.pathname for b in local_store.list_blobs(prefix="uploads/")] == ["uploads/Tobu - Hope.mp3"]


def test_local_refuses_keys_outside_bucket(local_store):
    with pytest.raises(BlobStoreError):
        local_store.put("../escape.mp3", b"x")
    assert not local_store.file_exists("../../etc/passwd")


def test_local_needs_a_path():
    assert not LocalStorageProvider().authenticate({})


def test_factory_from_config(tmp_path):
    config = StoreConfig(provider=StorageProvider.LOCAL, base_path=str(tmp_path))
    store = StorageProviderFactory.from_config(config)
    assert isinstance(store, LocalStorageProvider)
    assert StorageProviderFactory.get_provider_name(StorageProvider.CLOUDFLARE_R2) == "Cloudflare R2"


def test_factory_without_config():
    with patch("blob_tool.provider_factory.load_store_config", return_value=None):
        with pytest.raises(BlobStoreError):
            StorageProviderFactory.from_config()


def test_factory_unknown_provider(monkeypatch):
    monkeypatch.setenv("BLOB_PROVIDER", "s3")
    with pytest.raises(BlobStoreError, match="s3"):
        StorageProviderFactory.from_config()


def test_factory_auth_failure():
    config = StoreConfig(provider=StorageProvider.LOCAL)
    with pytest.raises(BlobStoreError):
        StorageProviderFactory.from_config(config)


class TestCloudflareR2Provider(unittest.TestCase):
    def setUp(self):
        patcher = patch("blob_tool.cloudflare_r2.boto3.client")
        self.mock_client_factory = patcher.start()
        self.addCleanup(patcher.stop)
        self.s3 = MagicMock()
        self.mock_client_factory.return_value = self.s3
        self.provider = CloudflareR2Provider()
        self.credentials = {
            "account_id": "acct",
            "access_key_id": "key",
            "secret_access_key": "secret",
            "bucket": "music",
            "public_url": "https://pub.r2.dev/",
        }

    def test_authenticate_checks_bucket(self):
        self.assertTrue(self.provider.authenticate(self.credentials))
        kwargs = self.mock_client_factory.call_args[1]
        self.assertEqual(kwargs["endpoint_url"], "https://acct.r2.cloudflarestorage.com")
        self.s3.head_bucket.assert_called_once_with(Bucket="music")

    def test_authenticate_failure(self):
        self.s3.head_bucket.side_effect = ClientError({"Error": {"Code": "403", "Message": "Forbidden"}}, "HeadBucket")
        self.assertFalse(self.provider.authenticate(self.credentials))
        self.assertFalse(self.provider.authenticate({"account_id": "acct"}))

    def test_list_follows_pages_up_to_limit(self):
        self.provider.authenticate(self.credentials)
        modified = datetime.datetime(2024, 5, 1, tzinfo=datetime.timezone.utc)
        paginator = MagicMock()
        paginator.paginate.return_value = [
            {"Contents": [{"Key": "music/a b.mp3", "Size": 10, "LastModified": modified}]},
            {"Contents": [{"Key": "music/c.mp3", "Size": 20}, {"Key": "music/d.mp3", "Size": 30}]},
        ]
        self.s3.get_paginator.return_value = paginator

        listing = self.provider.list_blobs(prefix="music/", limit=2)
        paginator.paginate.assert_called_once_with(Bucket="music", Prefix="music/")
        self.assertEqual([b.pathname for b in listing], ["music/a b.mp3", "music/c.mp3"])
        self.assertEqual(listing[0].url, "https://pub.r2.dev/music/a%20b.mp3")
        self.assertEqual(listing[0].uploaded_at, modified.isoformat())

    def test_list_error_raises_store_error(self):
        self.provider.authenticate(self.credentials)
        self.s3.get_paginator.return_value.paginate.side_effect = ClientError(
            {"Error": {"Code": "NoSuchBucket", "Message": "gone"}}, "ListObjectsV2")
        with self.assertRaises(BlobStoreError):
            self.provider.list_blobs()

    def test_put_sets_content_type(self):
        self.provider.authenticate(self.credentials)
        blob = self.provider.put("uploads/x.mp3", b"abc", content_type="audio/mpeg")
        self.s3.put_object.assert_called_once_with(
            Bucket="music", Key="uploads/x.mp3", Body=b"abc", ContentType="audio/mpeg")
        self.assertEqual(blob.url, "https://pub.r2.dev/uploads/x.mp3")

    def test_private_bucket_uses_presigned_urls(self):
        self.credentials["public_url"] = ""
        self.provider.authenticate(self.credentials)
        self.s3.generate_presigned_url.return_value = "https://signed.test/x"
        self.assertEqual(self.provider.get_file_url("x.mp3"), "https://signed.test/x")

    def test_file_exists(self):
        self.provider.authenticate(self.credentials)
        self.assertTrue(self.provider.file_exists("x.mp3"))
        self.s3.head_object.side_effect = ClientError({"Error": {"Code": "404", "Message": "Not Found"}}, "HeadObject")
        self.assertFalse(self.provider.file_exists("y.mp3"))


if __name__ == '__main__':
    unittest.main()
