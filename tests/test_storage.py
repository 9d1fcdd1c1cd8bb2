import boto3
import pytest
from botocore.stub import Stubber

from shared.models import StorageProvider
from setup_tool.cloudflare_r2 import CloudflareR2Provider
from setup_tool.local_provider import LocalStorageProvider
from setup_tool.provider_factory import StorageProviderFactory


@pytest.fixture
def local(tmp_path):
    provider = LocalStorageProvider()
    provider.authenticate({"base_path": str(tmp_path / "media")})
    return provider


@pytest.fixture
def r2():
    provider = CloudflareR2Provider()
    provider.bucket_name = "songs"
    provider.s3_client = boto3.client(
        "s3",
        endpoint_url="https://acct.r2.cloudflarestorage.com",
        aws_access_key_id="key",
        aws_secret_access_key="secret",
        region_name="auto",
    )
    return provider


def test_local_upload_bytes(local, tmp_path):
    assert local.upload_bytes(b"audio", "songs/a.mp3", content_type="audio/mpeg")
    assert (tmp_path / "media" / "songs" / "a.mp3").read_bytes() == b"audio"
    assert local.get_public_url("songs/a.mp3") == "/media/songs/a.mp3"


def test_local_rejects_keys_outside_root(local, tmp_path):
    assert local.upload_bytes(b"x", "../escape.txt") is False
    assert not (tmp_path / "escape.txt").exists()


def test_local_requires_base_path():
    assert LocalStorageProvider().authenticate({}) is False


def test_local_public_url_override(tmp_path):
    provider = LocalStorageProvider()
    provider.authenticate({"base_path": str(tmp_path), "public_url": "https://media.example.com/"})
    assert provider.get_public_url("songs/a.mp3") == "https://media.example.com/songs/a.mp3"


def test_r2_upload_bytes(r2):
    with Stubber(r2.s3_client) as stub:
        stub.add_response("put_object", {}, {
            "Bucket": "songs", "Key": "songs/a.jpg", "Body": b"jpeg", "ContentType": "image/jpeg",
        })
        assert r2.upload_bytes(b"jpeg", "songs/a.jpg", content_type="image/jpeg")
        stub.assert_no_pending_responses()


def test_r2_upload_failure_returns_false(r2):
    with Stubber(r2.s3_client) as stub:
        stub.add_client_error("put_object", service_error_code="AccessDenied", http_status_code=403)
        assert r2.upload_bytes(b"audio", "songs/a.mp3") is False


def test_r2_public_url(r2):
    r2.public_url = "https://pub.r2.dev"
    assert r2.get_public_url("songs/a.mp3") == "https://pub.r2.dev/songs/a.mp3"

    r2.public_url = None
    url = r2.get_public_url("songs/a.mp3")
    assert url.startswith("https://")
    assert "songs/a.mp3" in url


def test_r2_authentication_needs_credentials():
    assert CloudflareR2Provider().authenticate({"account_id": "acct"}) is False


def test_factory(tmp_path):
    assert isinstance(StorageProviderFactory.create(StorageProvider.LOCAL), LocalStorageProvider)
    assert isinstance(StorageProviderFactory.create(StorageProvider.CLOUDFLARE_R2), CloudflareR2Provider)
    assert StorageProviderFactory.connect(StorageProvider.LOCAL, {}) is None
    assert StorageProviderFactory.connect(StorageProvider.LOCAL, {"base_path": str(tmp_path)}) is not None
    assert StorageProviderFactory.get_provider_name(StorageProvider.CLOUDFLARE_R2) == "Cloudflare R2"
