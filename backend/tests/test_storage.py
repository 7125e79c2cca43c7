from __future__ import annotations

import pytest

from casestudy.config import Settings
from casestudy.errors import InvalidInput, StorageError
from casestudy.storage import ObjectStore


class FakeS3Client:
    def __init__(self) -> None:
        self.objects: dict[tuple[str, str], dict[str, object]] = {}
        self.presigned: list[dict[str, object]] = []

    def put_object(self, **kwargs) -> None:
        self.objects[(kwargs["Bucket"], kwargs["Key"])] = kwargs

    def generate_presigned_url(self, operation: str, Params: dict[str, str], ExpiresIn: int) -> str:
        self.presigned.append({"operation": operation, "params": Params, "expires": ExpiresIn})
        return f"https://{Params['Bucket']}.s3.amazonaws.com/{Params['Key']}?X-Amz-Signature=abc"


def test_local_store_writes_file_and_returns_served_url(settings: Settings) -> None:
    store = ObjectStore(settings)
    stored = store.save_transcript(file_name="call notes.txt", content_type="text/plain", content=b"hello")

    assert stored.key.startswith("raw/")
    assert stored.key.endswith("_call notes.txt")
    assert stored.url.startswith("http://testserver/uploads/raw/")
    assert "call%20notes.txt" in stored.url
    assert stored.size_bytes == 5
    assert store.local_path_for(stored.key).read_bytes() == b"hello"


def test_local_store_strips_directories_from_file_name(settings: Settings) -> None:
    stored = ObjectStore(settings).save_transcript(
        file_name="..\\..\\etc/passwd.txt", content_type="text/plain", content=b"x"
    )
    assert "/" not in stored.key.removeprefix("raw/")
    assert stored.key.endswith("_passwd.txt")


@pytest.mark.parametrize(
    ("file_name", "content", "message"),
    [
        ("empty.txt", b"", "empty"),
        ("script.exe", b"MZ", "Unsupported file type"),
        ("large.txt", b"x" * 33, "exceeds max size"),
    ],
)
def test_local_store_rejects_bad_uploads(settings: Settings, file_name: str, content: bytes, message: str) -> None:
    limited = settings.model_copy(update={"max_upload_file_bytes": 32})
    with pytest.raises(InvalidInput, match=message):
        ObjectStore(limited).save_transcript(file_name=file_name, content_type="", content=content)


def test_local_path_for_rejects_traversal(settings: Settings) -> None:
    with pytest.raises(InvalidInput):
        ObjectStore(settings).local_path_for("../outside.txt")


def test_s3_store_uses_public_base_url_when_configured() -> None:
    s3 = FakeS3Client()
    settings = Settings(
        storage_backend="s3",
        s3_bucket="transcripts",
        s3_prefix="casestudy",
        s3_public_base_url="https://cdn.example.test/",
    )
    stored = ObjectStore(settings, client=s3).save_transcript(
        file_name="call.txt", content_type="text/plain", content=b"hello"
    )

    ((bucket, key), written), = s3.objects.items()
    assert bucket == "transcripts"
    assert key == f"casestudy/{stored.key}"
    assert written["ContentType"] == "text/plain"
    assert stored.url == f"https://cdn.example.test/{key}"


def test_s3_store_presigns_when_no_public_base() -> None:
    s3 = FakeS3Client()
    settings = Settings(storage_backend="s3", s3_bucket="transcripts", s3_prefix="", s3_presign_expiry_seconds=600)
    stored = ObjectStore(settings, client=s3).save_transcript(
        file_name="call.txt", content_type="text/plain", content=b"hello"
    )
    assert s3.presigned[0]["expires"] == 600
    assert s3.presigned[0]["params"] == {"Bucket": "transcripts", "Key": stored.key}
    assert "X-Amz-Signature" in stored.url


def test_s3_store_without_bucket_is_storage_error() -> None:
    settings = Settings(storage_backend="s3", s3_bucket="")
    with pytest.raises(StorageError):
        ObjectStore(settings, client=FakeS3Client()).save_transcript(
            file_name="call.txt", content_type="text/plain", content=b"hello"
        )


def test_unknown_backend_is_rejected(settings: Settings) -> None:
    with pytest.raises(StorageError):
        ObjectStore(settings.model_copy(update={"storage_backend": "ftp"}))
