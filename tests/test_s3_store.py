import boto3
import pytest
from moto import mock_aws

from objkv.backend import Entry, KeyValueAdapter
from objkv.exceptions import ConfigurationError, ErrorKind, ObjectStoreError
from objkv.settings import BackendSettings
from objkv.storage import DirEntry
from objkv.storage.s3 import S3ObjectStore
from tests.utils_backend import exercise_backend, exercise_base_isolation, exercise_list_prefix

TEST_BUCKET_NAME = "vault"


@pytest.fixture()
def aws_credentials(monkeypatch):
    monkeypatch.setenv("AWS_ACCESS_KEY_ID", "testing")
    monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "testing")
    monkeypatch.setenv("AWS_SECURITY_TOKEN", "testing")
    monkeypatch.setenv("AWS_SESSION_TOKEN", "testing")
    monkeypatch.setenv("AWS_DEFAULT_REGION", "us-east-1")


@pytest.fixture()
def s3_client(aws_credentials):
    with mock_aws():
        client = boto3.client("s3", region_name="us-east-1")
        client.create_bucket(Bucket=TEST_BUCKET_NAME)
        yield client


@pytest.fixture()
def store(s3_client):
    return S3ObjectStore(bucket=TEST_BUCKET_NAME, client=s3_client)


def test_backend_contract_on_s3(store):
    backend = KeyValueAdapter(store, "vault-test-1")
    exercise_backend(backend)
    exercise_list_prefix(backend)


def test_directories_are_marker_objects(store, s3_client):
    store.put_directory("a")
    store.put_directory("a/b")
    store.put_directory("a/b")

    keys = [item["Key"] for item in s3_client.list_objects_v2(Bucket=TEST_BUCKET_NAME)["Contents"]]
    assert sorted(keys) == ["a/", "a/b/"]


def test_put_directory_requires_parent(store):
    with pytest.raises(ObjectStoreError) as excinfo:
        store.put_directory("a/b")
    assert excinfo.value.kind is ErrorKind.DIRECTORY_MISSING


def test_put_object_requires_directory(store):
    with pytest.raises(ObjectStoreError) as excinfo:
        store.put_object("a", "obj", b"x")
    assert excinfo.value.kind is ErrorKind.DIRECTORY_MISSING


def test_get_missing_object_is_not_found(store):
    with pytest.raises(ObjectStoreError) as excinfo:
        store.get_object("a", "obj")
    assert excinfo.value.is_not_found


def test_delete_object_on_directory(store):
    store.put_directory("a")
    store.put_directory("a/b")
    store.put_object("a/b", "obj", b"x")

    with pytest.raises(ObjectStoreError) as excinfo:
        store.delete_object("a", "b")
    assert excinfo.value.kind is ErrorKind.DIRECTORY_NOT_EMPTY

    store.delete_object("a/b", "obj")
    store.delete_object("a", "b")
    assert store.list_directory("a") == []


def test_delete_missing_object_is_not_found(store):
    with pytest.raises(ObjectStoreError) as excinfo:
        store.delete_object("a", "obj")
    assert excinfo.value.is_not_found


def test_list_directory(store):
    store.put_directory("a")
    store.put_directory("a/sub")
    store.put_object("a", "obj", b"1")
    store.put_object("a/sub", "deep", b"2")

    assert store.list_directory("a") == [DirEntry("obj", "object"), DirEntry("sub", "directory")]
    assert store.list_directory("") == [DirEntry("a", "directory")]


def test_non_empty_delete_through_backend(store, s3_client):
    backend = KeyValueAdapter(store, "vault-test-1")
    backend.put(Entry(key="secret/foo/a", value=b"1"))
    backend.put(Entry(key="secret/foo/b/c", value=b"2"))

    backend.delete("secret/foo")

    assert backend.list("secret/") == []
    remaining = [item["Key"] for item in s3_client.list_objects_v2(Bucket=TEST_BUCKET_NAME)["Contents"]]
    assert sorted(remaining) == ["vault-test-1/", "vault-test-1/secret/"]


def test_from_settings_reads_secret_from_key_file(tmp_path, monkeypatch):
    key_file = tmp_path / "secret_key"
    key_file.write_text("s3cr3t\n", encoding="utf-8")
    captured = {}

    class _Session:
        def __init__(self, **kwargs):
            captured["session"] = kwargs

        def client(self, service, **kwargs):
            captured["client"] = (service, kwargs)
            return object()

    monkeypatch.setattr(boto3.session, "Session", _Session)
    settings = BackendSettings(
        endpoint="https://objects.example.com",
        user="vault",
        key_id="AKIAEXAMPLE",
        path="vault-test-1",
        key_path=str(key_file),
    )

    store = S3ObjectStore.from_settings(settings)

    assert store.bucket == "vault"
    assert captured["session"] == {"aws_access_key_id": "AKIAEXAMPLE", "aws_secret_access_key": "s3cr3t"}
    assert captured["client"] == ("s3", {"endpoint_url": "https://objects.example.com"})


def test_from_settings_missing_key_file(tmp_path):
    settings = BackendSettings(
        endpoint="https://objects.example.com",
        user="vault",
        key_id="AKIAEXAMPLE",
        path="vault-test-1",
        key_path=str(tmp_path / "missing"),
    )

    with pytest.raises(ConfigurationError, match="Unable to read key file"):
        S3ObjectStore.from_settings(settings)


def test_backends_sharing_a_bucket_are_isolated(store):
    exercise_base_isolation(store)


def test_put_directory_over_object(store):
    store.put_directory("a")
    store.put_object("a", "obj", b"x")

    with pytest.raises(ObjectStoreError) as excinfo:
        store.put_directory("a/obj")
    assert excinfo.value.kind is ErrorKind.OTHER
    assert store.list_directory("a") == [DirEntry("obj", "object")]


def test_put_object_over_directory(store):
    store.put_directory("a")
    store.put_directory("a/sub")

    with pytest.raises(ObjectStoreError) as excinfo:
        store.put_object("a", "sub", b"x")
    assert excinfo.value.kind is ErrorKind.OTHER


@pytest.mark.parametrize("name", ["", ".", ".."])
def test_invalid_object_names(store, name):
    store.put_directory("a")

    with pytest.raises(ObjectStoreError) as excinfo:
        store.put_object("a", name, b"x")
    assert excinfo.value.kind is ErrorKind.OTHER

    with pytest.raises(ObjectStoreError) as excinfo:
        store.get_object("a", name)
    assert excinfo.value.is_not_found

    with pytest.raises(ObjectStoreError) as excinfo:
        store.delete_object("a", name)
    assert excinfo.value.is_not_found
