import logging
import os
import pickle
import threading
import uuid
from contextlib import contextmanager
from pathlib import Path

from ..exceptions import StorageError
from ..utils.dates import as_date, overlap, utc_now_iso
from ..utils.locks import KeyedLocks

logger = logging.getLogger(__name__)

# ---- Paths ----
BASE_DIR = Path(__file__).resolve().parents[2]
DEFAULT_DATA_PATH = BASE_DIR / "data.pkl"

_MISSING = object()


def _matches(row: dict, filters: dict) -> bool:
    """Field equality; a set/list filter value matches any of its members."""
    for key, want in filters.items():
        have = row.get(key)
        if isinstance(want, (set, frozenset, list, tuple)):
            if have not in want:
                return False
        elif have != want:
            return False
    return True


class Store:
    """
    In-memory tables (users, products, rentals, notifications) guarded by one
    re-entrant lock. When a path is set, every mutation is pickled to disk;
    a mutation whose write fails is undone in memory before StorageError
    propagates.
    """

    _inst = None
    _inst_lock = threading.Lock()

    def __init__(self, path: str | os.PathLike | None = None):
        self.path = str(path) if path else None
        self.users: dict[str, dict] = {}
        self.products: dict[str, dict] = {}
        self.rentals: dict[str, dict] = {}
        self.notifications: dict[str, dict] = {}
        self._rw = threading.RLock()
        self._tx_undo: list | None = None
        # per-product locks for check-then-act sequences in the services
        self.product_locks = KeyedLocks()

        logger.info("Store using file: %s", self.path or "<memory>")
        self._load()

    # ---------- Singleton ----------
    @classmethod
    def instance(cls, path: str | os.PathLike | None = None):
        """Return the global singleton instance of Store."""
        with cls._inst_lock:
            if cls._inst is None:
                cls._inst = Store(path)
        return cls._inst

    # ---------- Persistence ----------
    def _load(self):
        """Load data from the pickle file, or start empty if unavailable or invalid."""
        if not self.path or not os.path.exists(self.path):
            return
        try:
            with open(self.path, "rb") as f:
                data = pickle.load(f)
        except (OSError, pickle.UnpicklingError, EOFError) as e:
            logger.warning("Store load failed (%s); starting empty.", e)
            return

        if isinstance(data, dict):
            self.users = data.get("users", {}) or {}
            self.products = data.get("products", {}) or {}
            self.rentals = data.get("rentals", {}) or {}
            self.notifications = data.get("notifications", {}) or {}
            logger.info(
                "Store loaded: users=%d, products=%d, rentals=%d",
                len(self.users), len(self.products), len(self.rentals),
            )
        else:
            # Incompatible data format: back up the old file and start empty
            bak = self.path + ".bak"
            try:
                os.replace(self.path, bak)
            except OSError as e:
                raise StorageError(f"Error: cannot back up incompatible store: {e}") from e
            logger.warning(
                "Incompatible store (%s); backed up to %s. Starting empty.",
                type(data).__name__, bak,
            )

    def _dump(self):
        """Write the in-memory data to the pickle file safely (atomic replace)."""
        if not self.path:
            return
        tmp = self.path + ".tmp"
        payload = {
            "users": self.users,
            "products": self.products,
            "rentals": self.rentals,
            "notifications": self.notifications,
        }
        try:
            os.makedirs(os.path.dirname(self.path) or ".", exist_ok=True)
            with open(tmp, "wb") as f:
                pickle.dump(payload, f, protocol=pickle.HIGHEST_PROTOCOL)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp, self.path)
        except OSError as e:
            raise StorageError(f"Error: cannot write store: {e}") from e

    def _write(self, undo):
        """
        Persist a mutation already applied in memory. `undo` reverts it when
        the write fails; inside a transaction it is queued instead.
        """
        if self._tx_undo is not None:
            self._tx_undo.append(undo)
            return
        try:
            self._dump()
        except StorageError:
            undo()
            raise

    @staticmethod
    def _put(table: dict, key: str, row: dict):
        """Set table[key] and return the callable that restores the old entry."""
        before = table.get(key, _MISSING)
        table[key] = row

        def undo():
            if before is _MISSING:
                table.pop(key, None)
            else:
                table[key] = before

        return undo

    @staticmethod
    def _drop(table: dict, key: str):
        before = table.pop(key)

        def undo():
            table[key] = before

        return undo

    @contextmanager
    def transaction(self):
        """
        Group several mutations into one write. If the block raises or the
        write fails, every mutation made inside it is undone. Nested calls
        join the outer transaction.
        """
        with self._rw:
            if self._tx_undo is not None:
                yield self
                return
            self._tx_undo = undo = []
            try:
                yield self
                self._tx_undo = None
                self._dump()
            except Exception:
                for fn in reversed(undo):
                    fn()
                raise
            finally:
                self._tx_undo = None

    def save(self):
        """Thread-safe save method."""
        with self._rw:
            self._dump()

    def clear(self):
        with self._rw:
            tables = (self.users, self.products, self.rentals, self.notifications)
            before = [dict(t) for t in tables]
            for t in tables:
                t.clear()

            def undo():
                for t, rows in zip(tables, before):
                    t.update(rows)

            self._write(undo)

    # ---------- Users ----------
    def user_exists(self, username: str) -> bool:
        """Return True if the given username already exists."""
        return self.find_user(username) is not None

    def find_user(self, username: str) -> dict | None:
        """Find a user by username."""
        with self._rw:
            for u in self.users.values():
                if u["username"] == username:
                    return dict(u)
        return None

    def get_user(self, user_id: str) -> dict | None:
        u = self.users.get(str(user_id))
        return dict(u) if u else None

    def create_user(self, username: str, password_hash: str, role: str) -> str:
        """Create a new user and return its ID."""
        with self._rw:
            if self.user_exists(username):
                raise ValueError("Username already exists")
            uid = str(uuid.uuid4())
            self._write(self._put(self.users, uid, {
                "user_id": uid,
                "username": username,
                "password_hash": password_hash,
                "role": role,
                "is_active": True,
                "created_at": utc_now_iso(),
            }))
            return uid

    def set_user_active(self, user_id: str, is_active: bool) -> bool:
        """Activate or deactivate an account; False if the user is gone."""
        with self._rw:
            u = self.users.get(str(user_id))
            if u is None:
                return False
            self._write(self._put(self.users, str(user_id), {**u, "is_active": bool(is_active)}))
            return True

    def users_where(self, **filters) -> list[dict]:
        with self._rw:
            return [dict(u) for u in self.users.values() if _matches(u, filters)]

    # ---------- Products ----------
    def create_product(self, data: dict) -> str:
        """Create a new product record and return its ID."""
        with self._rw:
            pid = str(uuid.uuid4())
            self._write(self._put(self.products, pid, {
                "product_id": pid,
                "owner_id": str(data["owner_id"]),
                "title": data.get("title", ""),
                "description": data.get("description", ""),
                "per_day": float(data.get("per_day") or 0),
                "is_available": bool(data.get("is_available", True)),
                "created_at": utc_now_iso(),
            }))
            return pid

    def get_product(self, product_id: str) -> dict | None:
        """Get product information by ID."""
        p = self.products.get(str(product_id))
        return dict(p) if p else None

    def update_product(self, product_id: str, updates: dict) -> bool:
        with self._rw:
            p = self.products.get(str(product_id))
            if p is None:
                return False
            self._write(self._put(self.products, str(product_id), {**p, **updates}))
            return True

    def set_availability(self, product_id: str, is_available: bool) -> bool:
        """Flip the product's global availability flag; False if the product is gone."""
        return self.update_product(product_id, {"is_available": bool(is_available)})

    def delete_product(self, product_id: str) -> bool:
        with self._rw:
            if str(product_id) not in self.products:
                return False
            self._write(self._drop(self.products, str(product_id)))
            return True

    def products_where(self, **filters) -> list[dict]:
        with self._rw:
            return [dict(p) for p in self.products.values() if _matches(p, filters)]

    # ---------- Rentals ----------
    def insert_rental(self, r: dict) -> dict:
        """Insert a rental record; assigns an ID when the record has none."""
        with self._rw:
            r = dict(r)
            rid = r.get("rental_id") or str(uuid.uuid4())
            r["rental_id"] = rid
            self._write(self._put(self.rentals, rid, r))
            return dict(r)

    def get_rental(self, rid: str) -> dict | None:
        r = self.rentals.get(str(rid))
        return dict(r) if r else None

    def update_rental(self, rid: str, updates: dict) -> bool:
        """Update an existing rental by ID."""
        with self._rw:
            r = self.rentals.get(rid)
            if r is None:
                return False
            self._write(self._put(self.rentals, rid, {**r, **updates}))
            return True

    def find_overlapping(self, product_id, start, end, statuses, exclude_id=None) -> list[dict]:
        """Rentals of a product whose closed date range intersects [start, end]."""
        wanted = {s.lower() for s in statuses}
        out = []
        with self._rw:
            for r in self.rentals.values():
                if str(r.get("product_id")) != str(product_id):
                    continue
                if exclude_id is not None and r.get("rental_id") == exclude_id:
                    continue
                if str(r.get("status") or "").lower() not in wanted:
                    continue
                if overlap(as_date(r["start_date"]), as_date(r["end_date"]), start, end):
                    out.append(dict(r))
        return out

    def rentals_where(self, **filters) -> list[dict]:
        """Rentals whose fields equal the given values; a set value matches any member."""
        with self._rw:
            return [dict(r) for r in self.rentals.values() if _matches(r, filters)]

    def counts(self) -> dict:
        with self._rw:
            return {
                "users": len(self.users),
                "products": len(self.products),
                "rentals": len(self.rentals),
            }

    # ---------- Notifications ----------
    def create_notification(self, data: dict) -> dict:
        with self._rw:
            nid = str(uuid.uuid4())
            n = dict(data)
            n.update({"notification_id": nid, "read": False, "created_at": utc_now_iso()})
            self._write(self._put(self.notifications, nid, n))
            return dict(n)

    def notifications_for(self, recipient_id: str) -> list[dict]:
        with self._rw:
            items = [dict(n) for n in self.notifications.values()
                     if n.get("recipient_id") == recipient_id]
        items.sort(key=lambda n: n.get("created_at") or "", reverse=True)
        return items

    def update_notification(self, nid: str, recipient_id: str, updates: dict) -> dict | None:
        with self._rw:
            n = self.notifications.get(nid)
            if not n or n.get("recipient_id") != recipient_id:
                return None
            row = {**n, **updates}
            self._write(self._put(self.notifications, nid, row))
            return dict(row)

    def mark_all_read(self, recipient_id: str) -> int:
        with self._rw:
            unread = [nid for nid, n in self.notifications.items()
                      if n.get("recipient_id") == recipient_id and not n.get("read")]
            if not unread:
                return 0
            undos = [self._put(self.notifications, nid, {**self.notifications[nid], "read": True})
                     for nid in unread]

            def undo():
                for fn in undos:
                    fn()

            self._write(undo)
            return len(unread)

    def delete_notification(self, nid: str, recipient_id: str) -> bool:
        with self._rw:
            n = self.notifications.get(nid)
            if not n or n.get("recipient_id") != recipient_id:
                return False
            self._write(self._drop(self.notifications, nid))
            return True
