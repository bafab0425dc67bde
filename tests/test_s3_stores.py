from unittest.mock import MagicMock
from urllib.parse import parse_qs, urlparse

import pytest
from botocore.exceptions import ClientError

from src.filegate.error_handling.exceptions import BackendError, NotResolvableError
from src.filegate.storage.r2 import R2Store
from src.filegate.storage.spaces import SpacesStore
from tests.conftest import TEST_BUCKET_NAME

SPACES_ENDPOINT = "https://nyc3.digitaloceanspaces.com"


def spaces_store(client) -> SpacesStore:
    return SpacesStore(
        endpoint=SPACES_ENDPOINT,
        region="us-east-1",
        access_key="testing",
        secret_key="testing",
        bucket=TEST_BUCKET_NAME,
        client=client,
    )


def r2_store(client, public_url=None) -> R2Store:
    return R2Store(
        account_id="acc123",
        access_key_id="testing",
        secret_access_key="testing",
        bucket=TEST_BUCKET_NAME,
        public_url=public_url,
        client=client,
    )


def client_error(code: str, operation: str) -> ClientError:
    return ClientError({"Error": {"Code": code, "Message": code}}, operation)


@pytest.fixture(params=["spaces", "r2", "r2-public"])
def store(request, s3_client):
    if request.param == "spaces":
        return spaces_store(s3_client)
    if request.param == "r2":
        return r2_store(s3_client)
    return r2_store(s3_client, public_url="https://cdn.example.com/")


async def test_put_writes_object_and_url_resolves_back(store, s3_client):
    key = "uploads/3f1c7a52-photo.png"

    ref = await store.put(b"png-bytes", key, "image/png")

    assert ref.key == key
    assert store.resolve_key(ref.url) == key
    obj = s3_client.get_object(Bucket=TEST_BUCKET_NAME, Key=key)
    assert obj["Body"].read() == b"png-bytes"
    assert obj["ContentType"] == "image/png"


async def test_put_overwrites_existing_key(store, s3_client):
    key = "avatars/user-1.jpg"

    await store.put(b"first", key, "image/jpeg")
    await store.put(b"second", key, "image/jpeg")

    obj = s3_client.get_object(Bucket=TEST_BUCKET_NAME, Key=key)
    assert obj["Body"].read() == b"second"


async def test_delete_twice_does_not_raise(store, s3_client):
    key = "uploads/gone.pdf"
    await store.put(b"%PDF-1.4", key, "application/pdf")

    await store.delete(key)
    await store.delete(key)

    listing = s3_client.list_objects_v2(Bucket=TEST_BUCKET_NAME)
    assert listing.get("KeyCount", 0) == 0


async def test_delete_many_removes_all_keys(store, s3_client):
    keys = [f"uploads/{i}.png" for i in range(3)]
    for key in keys:
        await store.put(b"x", key, "image/png")

    await store.delete_many(set(keys) | {"uploads/never-existed.png"})

    listing = s3_client.list_objects_v2(Bucket=TEST_BUCKET_NAME)
    assert listing.get("KeyCount", 0) == 0


async def test_sign_passes_ttl_to_presigner(store):
    signed = await store.sign("uploads/private.pdf", expires_in=60)

    query = parse_qs(urlparse(signed).query)
    assert query["X-Amz-Expires"] == ["60"]
    assert "uploads/private.pdf" in urlparse(signed).path


async def test_sign_defaults_to_one_hour(store):
    signed = await store.sign("uploads/private.pdf")

    assert parse_qs(urlparse(signed).query)["X-Amz-Expires"] == ["3600"]


def test_spaces_public_url_is_path_style():
    store = spaces_store(MagicMock())

    assert store.public_url("uploads/a.png") == f"{SPACES_ENDPOINT}/{TEST_BUCKET_NAME}/uploads/a.png"


async def test_spaces_put_is_public_read():
    client = MagicMock()
    store = spaces_store(client)

    await store.put(b"x", "uploads/a.png", "image/png")

    assert client.put_object.call_args.kwargs["ACL"] == "public-read"


async def test_r2_put_sets_no_acl():
    client = MagicMock()
    store = r2_store(client)

    await store.put(b"x", "uploads/a.png", "image/png")

    assert "ACL" not in client.put_object.call_args.kwargs


def test_r2_public_url_forms():
    assert r2_store(MagicMock()).public_url("uploads/a.png") == (
        f"https://{TEST_BUCKET_NAME}.acc123.r2.cloudflarestorage.com/uploads/a.png"
    )
    assert r2_store(MagicMock(), public_url="https://media.example.com/").public_url("uploads/a.png") == (
        "https://media.example.com/uploads/a.png"
    )


@pytest.mark.parametrize(
    "url, expected",
    [
        (f"https://{TEST_BUCKET_NAME}.nyc3.digitaloceanspaces.com/uploads/a.png", "uploads/a.png"),
        (f"https://nyc3.digitaloceanspaces.com/{TEST_BUCKET_NAME}/uploads/a.png", "uploads/a.png"),
        (f"https://nyc3.digitaloceanspaces.com/{TEST_BUCKET_NAME}/deep/nested/a.png", "deep/nested/a.png"),
        ("https://media.example.com/uploads/a.png", "uploads/a.png"),
        ("https://media.example.com/uploads/my%20photo.png", "uploads/my photo.png"),
    ],
)
def test_resolve_key(url, expected):
    store = r2_store(MagicMock(), public_url="https://media.example.com")

    assert store.resolve_key(url) == expected


def test_resolve_key_with_public_url_path_prefix():
    store = r2_store(MagicMock(), public_url="https://example.com/media")
    ref_url = store.public_url("uploads/a.png")

    assert store.resolve_key(ref_url) == "uploads/a.png"


def test_resolve_key_public_domain_under_bucket_host():
    store = r2_store(MagicMock(), public_url=f"https://{TEST_BUCKET_NAME}.example.com/media")

    assert store.resolve_key(store.public_url("uploads/a.png")) == "uploads/a.png"


@pytest.mark.parametrize(
    "make_store",
    [
        spaces_store,
        r2_store,
        lambda client: r2_store(client, public_url="https://cdn.example.com/files"),
    ],
    ids=["spaces", "r2", "r2-public"],
)
@pytest.mark.parametrize(
    "key",
    ["my#docs/a.png", "q?x/a.png", "pct%41/a.png", "my docs/a b.png"],
)
def test_public_url_with_reserved_characters_resolves_back(make_store, key):
    store = make_store(MagicMock())

    assert store.resolve_key(store.public_url(key)) == key


def test_public_url_escapes_reserved_characters():
    assert spaces_store(MagicMock()).public_url("my#docs/a b.png") == (
        f"{SPACES_ENDPOINT}/{TEST_BUCKET_NAME}/my%23docs/a%20b.png"
    )


@pytest.mark.parametrize(
    "url",
    [
        "https://elsewhere.example.org/uploads/a.png",
        "https://nyc3.digitaloceanspaces.com/other-bucket/uploads/a.png",
        f"https://nyc3.digitaloceanspaces.com/{TEST_BUCKET_NAME}/",
        f"https://{TEST_BUCKET_NAME}.nyc3.digitaloceanspaces.com/",
        "not a url",
    ],
)
def test_resolve_key_not_resolvable(url):
    store = spaces_store(MagicMock())

    with pytest.raises(NotResolvableError):
        store.resolve_key(url)


async def test_delete_many_with_no_keys_makes_no_call():
    client = MagicMock()
    store = r2_store(client)

    await store.delete_many(set())

    client.delete_objects.assert_not_called()


async def test_delete_many_is_quiet_and_batched():
    client = MagicMock()
    client.delete_objects.return_value = {}
    store = r2_store(client)

    await store.delete_many([f"uploads/{i}.png" for i in range(2500)])

    assert client.delete_objects.call_count == 3
    first = client.delete_objects.call_args_list[0].kwargs
    assert first["Delete"]["Quiet"] is True
    assert len(first["Delete"]["Objects"]) == 1000


async def test_delete_many_reports_failed_keys_in_one_error():
    client = MagicMock()
    client.delete_objects.return_value = {
        "Errors": [{"Key": "uploads/locked.png", "Code": "AccessDenied", "Message": "denied"}]
    }
    store = r2_store(client)

    with pytest.raises(BackendError) as exc_info:
        await store.delete_many(["uploads/ok.png", "uploads/locked.png"])

    assert exc_info.value.failed_keys == ["uploads/locked.png"]
    assert exc_info.value.status_code == 502


async def test_put_failure_is_wrapped_with_cause():
    client = MagicMock()
    client.put_object.side_effect = client_error("AccessDenied", "PutObject")
    store = spaces_store(client)

    with pytest.raises(BackendError, match="DigitalOcean Spaces upload failed") as exc_info:
        await store.put(b"x", "uploads/a.png", "image/png")

    assert isinstance(exc_info.value.__cause__, ClientError)
    assert client.put_object.call_count == 1


async def test_delete_ignores_missing_key_errors():
    client = MagicMock()
    client.delete_object.side_effect = client_error("NoSuchKey", "DeleteObject")
    store = r2_store(client)

    await store.delete("uploads/missing.png")


async def test_delete_wraps_other_errors():
    client = MagicMock()
    client.delete_object.side_effect = client_error("AccessDenied", "DeleteObject")
    store = r2_store(client)

    with pytest.raises(BackendError, match="Failed to delete from Cloudflare R2"):
        await store.delete("uploads/a.png")


async def test_injected_client_is_not_closed():
    client = MagicMock()
    store = r2_store(client)

    await store.aclose()

    client.close.assert_not_called()
