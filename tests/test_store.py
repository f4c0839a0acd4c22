from __future__ import annotations

import os

import pytest

from db import KeyValueStore, build_upload_key, sanitize_name
from events import ChangeNotifier
from exceptions import NotFoundError, StorageError
from models import Company
from repository import JsonCollectionRepository


def test_get_set_delete(store):
    assert store.get("companies_list") is None

    store.set("companies_list", [{"id": "c1"}])
    assert store.get("companies_list") == [{"id": "c1"}]

    store.delete("companies_list")
    assert store.get("companies_list") is None
    # Deleting an absent key is fine
    store.delete("companies_list")


def test_values_survive_a_new_store_instance(tmp_path):
    KeyValueStore(str(tmp_path)).set("k", {"a": 1})
    assert KeyValueStore(str(tmp_path)).get("k") == {"a": 1}


def test_corrupt_store_raises_storage_error(tmp_path):
    store = KeyValueStore(str(tmp_path))
    store.set("k", 1)
    with open(os.path.join(str(tmp_path), "store.json"), "w") as f:
        f.write("{not json")

    with pytest.raises(StorageError):
        store.get("k")


def test_blobs(store):
    store.put_blob("logo-acme-1-1", b"\x89PNG")
    assert store.get_blob("logo-acme-1-1") == b"\x89PNG"

    store.delete_blob("logo-acme-1-1")
    with pytest.raises(NotFoundError):
        store.get_blob("logo-acme-1-1")
    store.delete_blob("logo-acme-1-1")


def test_blob_keys_cannot_escape_the_blob_directory(store):
    with pytest.raises(NotFoundError):
        store.get_blob("../store.json")


def test_build_upload_key():
    assert sanitize_name("Acme Trucking, Inc.") == "acme-trucking-inc"
    assert build_upload_key("form", "Driver Application", "proc-1", now=1700000000.5) == (
        "form-driver-application-proc-1-1700000000500"
    )
    # Without a process id the timestamp stands in for it
    assert build_upload_key("logo", "Acme", now=2.0) == "logo-acme-2000-2000"


def test_repository_publishes_changes(store):
    notifier = ChangeNotifier()
    events = []
    notifier.subscribe("things", lambda collection, action, record_id: events.append((action, record_id)))
    repo = JsonCollectionRepository(store, "things", Company, notifier)

    repo.upsert(Company(id="c1", name="Acme"))
    repo.upsert(Company(id="c1", name="Acme Corp"))
    assert repo.delete("c1") is True
    assert repo.delete("c1") is False
    repo.clear()

    assert events == [("create", "c1"), ("update", "c1"), ("delete", "c1"), ("clear", None)]


def test_broken_subscriber_does_not_fail_the_write(store):
    notifier = ChangeNotifier()

    def broken(*_args):
        raise RuntimeError("listener bug")

    notifier.subscribe("things", broken)
    repo = JsonCollectionRepository(store, "things", Company, notifier)
    repo.upsert(Company(id="c1", name="Acme"))

    assert repo.get_by_id("c1").name == "Acme"


def test_invalid_stored_records_raise_storage_error(store):
    store.set("things", [{"id": "c1", "onboardingProcesses": "not a list"}])
    repo = JsonCollectionRepository(store, "things", Company)

    with pytest.raises(StorageError):
        repo.list()


def test_failed_write_keeps_old_value_and_leaves_no_temp_file(store):
    store.set("k", {"a": 1})

    with pytest.raises(StorageError):
        store.set("k", {"a": object()})

    assert store.get("k") == {"a": 1}
    assert [name for name in os.listdir(store.data_dir) if name.endswith(".tmp")] == []


def test_unsubscribed_listener_hears_nothing(store):
    notifier = ChangeNotifier()
    events = []

    def listener(collection, action, record_id):
        events.append(action)

    notifier.subscribe("things", listener)
    repo = JsonCollectionRepository(store, "things", Company, notifier)
    repo.upsert(Company(id="c1", name="Acme"))
    notifier.unsubscribe("things", listener)
    repo.upsert(Company(id="c2", name="Globex"))
    # Unsubscribing twice is harmless
    notifier.unsubscribe("things", listener)

    assert events == ["create"]
