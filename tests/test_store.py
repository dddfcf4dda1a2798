import pytest

from rentalhub.exceptions import StorageError
from rentalhub.models.store import Store


def test_data_survives_reload(tmp_path):
    path = tmp_path / "data.pkl"
    st = Store(path)
    uid = st.create_user("alice", "-", "customer")
    pid = st.create_product({"owner_id": uid, "title": "Tent", "per_day": 20})

    again = Store(path)

    assert again.get_user(uid)["username"] == "alice"
    assert again.get_product(pid)["per_day"] == 20.0


def test_incompatible_file_is_backed_up(tmp_path):
    import pickle

    path = tmp_path / "data.pkl"
    path.write_bytes(pickle.dumps(["not", "a", "dict"]))

    st = Store(path)

    assert st.users == {}
    assert (tmp_path / "data.pkl.bak").exists()


def test_write_failure_raises_storage_error(tmp_path):
    target = tmp_path / "is-a-dir"
    target.mkdir()
    st = Store(target)

    with pytest.raises(StorageError):
        st.create_user("alice", "-", "customer")


def test_duplicate_username_rejected():
    st = Store(None)
    st.create_user("alice", "-", "customer")
    with pytest.raises(ValueError):
        st.create_user("alice", "-", "vendor")


def test_returned_rows_are_copies():
    st = Store(None)
    pid = st.create_product({"owner_id": "o", "title": "Tent", "per_day": 20})
    st.get_product(pid)["per_day"] = 0
    assert st.get_product(pid)["per_day"] == 20.0


def _fail_writes(monkeypatch, st):
    def boom():
        raise StorageError("Error: cannot write store: disk full")

    monkeypatch.setattr(st, "_dump", boom)


def test_failed_write_leaves_memory_unchanged(monkeypatch):
    st = Store(None)
    uid = st.create_user("alice", "-", "customer")
    pid = st.create_product({"owner_id": uid, "title": "Tent", "per_day": 20})
    rid = st.insert_rental({"product_id": pid, "status": "pending"})["rental_id"]
    nid = st.create_notification({"recipient_id": uid, "title": "hi"})["notification_id"]
    snapshot = (dict(st.users), dict(st.products), dict(st.rentals), dict(st.notifications))

    _fail_writes(monkeypatch, st)
    attempts = [
        lambda: st.create_user("bob", "-", "customer"),
        lambda: st.set_user_active(uid, False),
        lambda: st.create_product({"owner_id": uid, "title": "Kayak", "per_day": 5}),
        lambda: st.update_product(pid, {"per_day": 99}),
        lambda: st.set_availability(pid, False),
        lambda: st.delete_product(pid),
        lambda: st.insert_rental({"product_id": pid, "status": "pending"}),
        lambda: st.update_rental(rid, {"status": "active"}),
        lambda: st.create_notification({"recipient_id": uid}),
        lambda: st.update_notification(nid, uid, {"read": True}),
        lambda: st.mark_all_read(uid),
        lambda: st.delete_notification(nid, uid),
        st.clear,
    ]
    for attempt in attempts:
        with pytest.raises(StorageError):
            attempt()

    assert (st.users, st.products, st.rentals, st.notifications) == snapshot


def test_transaction_is_all_or_nothing(monkeypatch):
    st = Store(None)
    pid = st.create_product({"owner_id": "o", "title": "Tent", "per_day": 20, "is_available": False})
    rid = st.insert_rental({"product_id": pid, "status": "active"})["rental_id"]

    _fail_writes(monkeypatch, st)
    with pytest.raises(StorageError):
        with st.transaction():
            st.update_rental(rid, {"status": "completed"})
            st.set_availability(pid, True)

    assert st.get_rental(rid)["status"] == "active"
    assert st.get_product(pid)["is_available"] is False


def test_transaction_undone_when_block_raises():
    st = Store(None)
    pid = st.create_product({"owner_id": "o", "title": "Tent", "per_day": 20})

    with pytest.raises(RuntimeError):
        with st.transaction():
            st.update_product(pid, {"title": "Kayak"})
            raise RuntimeError("changed my mind")

    assert st.get_product(pid)["title"] == "Tent"


def test_transaction_writes_once(monkeypatch):
    st = Store(None)
    pid = st.create_product({"owner_id": "o", "title": "Tent", "per_day": 20})
    writes = []
    monkeypatch.setattr(st, "_dump", lambda: writes.append(1))

    with st.transaction():
        st.update_product(pid, {"title": "Kayak"})
        with st.transaction():
            st.set_availability(pid, False)

    assert writes == [1]
    assert st.get_product(pid)["title"] == "Kayak"


def test_product_locks_are_released():
    st = Store(None)
    with st.product_locks.hold("p1"):
        with st.product_locks.hold("p2"):
            assert len(st.product_locks) == 2
    assert len(st.product_locks) == 0
