import pytest

from objkv.exceptions import ErrorKind, ObjectStoreError
from objkv.storage import DirEntry, clean_path
from objkv.storage.local import LocalObjectStore


@pytest.fixture()
def store(tmp_path):
    return LocalObjectStore(tmp_path / "root")


def _kind(excinfo) -> ErrorKind:
    return excinfo.value.kind


def test_clean_path():
    assert clean_path("") == ""
    assert clean_path("/") == ""
    assert clean_path("a/b/") == "a/b"
    assert clean_path("//a//b") == "a/b"
    assert clean_path("../../etc") == "etc"


def test_put_directory_requires_parent(store):
    with pytest.raises(ObjectStoreError) as excinfo:
        store.put_directory("a/b")
    assert _kind(excinfo) is ErrorKind.DIRECTORY_MISSING


def test_put_directory_is_idempotent(store, tmp_path):
    store.put_directory("a")
    store.put_directory("a")
    assert (tmp_path / "root" / "a").is_dir()


def test_put_object_requires_directory(store):
    with pytest.raises(ObjectStoreError) as excinfo:
        store.put_object("missing", "obj", b"x")
    assert _kind(excinfo) is ErrorKind.DIRECTORY_MISSING


def test_object_round_trip(store):
    store.put_directory("a")
    store.put_object("a", "obj", b"\x00\x01")
    assert store.get_object("a", "obj") == b"\x00\x01"


def test_get_missing_object(store):
    with pytest.raises(ObjectStoreError) as excinfo:
        store.get_object("a", "obj")
    assert excinfo.value.is_not_found


def test_delete_object_on_non_empty_directory(store):
    store.put_directory("a")
    store.put_directory("a/b")
    store.put_object("a/b", "obj", b"x")

    with pytest.raises(ObjectStoreError) as excinfo:
        store.delete_object("a", "b")
    assert _kind(excinfo) is ErrorKind.DIRECTORY_NOT_EMPTY


def test_delete_object_on_empty_directory_removes_it(store):
    store.put_directory("a")
    store.put_directory("a/b")

    store.delete_object("a", "b")

    assert store.list_directory("a") == []


def test_delete_missing(store):
    with pytest.raises(ObjectStoreError) as excinfo:
        store.delete_object("a", "obj")
    assert excinfo.value.is_not_found

    with pytest.raises(ObjectStoreError) as excinfo:
        store.delete_directory("a")
    assert excinfo.value.is_not_found


def test_list_directory(store):
    store.put_directory("a")
    store.put_directory("a/sub")
    store.put_object("a", "z", b"1")
    store.put_object("a", "b", b"2")

    assert store.list_directory("a") == [
        DirEntry("b", "object"),
        DirEntry("sub", "directory"),
        DirEntry("z", "object"),
    ]


def test_list_missing_directory(store):
    with pytest.raises(ObjectStoreError) as excinfo:
        store.list_directory("nope")
    assert excinfo.value.is_not_found


def test_paths_stay_under_root(store, tmp_path):
    store.put_directory("../escape")
    assert (tmp_path / "root" / "escape").is_dir()
    assert not (tmp_path / "escape").exists()


def test_put_directory_over_object(store):
    store.put_directory("a")
    store.put_object("a", "obj", b"x")

    with pytest.raises(ObjectStoreError) as excinfo:
        store.put_directory("a/obj")
    assert _kind(excinfo) is ErrorKind.OTHER


@pytest.mark.parametrize("name", ["", ".", ".."])
def test_invalid_object_names(store, tmp_path, name):
    store.put_directory("a")
    store.put_object("a", "keep", b"x")

    with pytest.raises(ObjectStoreError) as excinfo:
        store.put_object("a", name, b"x")
    assert _kind(excinfo) is ErrorKind.OTHER

    with pytest.raises(ObjectStoreError) as excinfo:
        store.get_object("a", name)
    assert excinfo.value.is_not_found

    with pytest.raises(ObjectStoreError) as excinfo:
        store.delete_object("a", name)
    assert excinfo.value.is_not_found

    assert (tmp_path / "root" / "a" / "keep").read_bytes() == b"x"
