from __future__ import annotations

import logging
import math
from typing import Optional

from ..exceptions import (
    ForbiddenError,
    ProductInUseError,
    ProductNotFoundError,
    ValidationError,
)
from ..models.product import Product
from ..models.rental import Rental
from ..models.store import Store
from ..models.user import Identity
from .common import _store, to_float_safe

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = ("title", "description", "per_day", "is_available")
DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 100


def _lc(s) -> str:
    return str(s or "").lower()


def _to_bool(value) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "on")
    return bool(value)


def _to_int(value, default: int, lo: int, hi: int) -> int:
    try:
        n = int(value)
    except (TypeError, ValueError):
        return default
    return max(lo, min(hi, n))


def _clean_title(value) -> str:
    title = value.strip() if isinstance(value, str) else ""
    if len(title) < 3:
        raise ValidationError("Product title must be at least 3 characters long.")
    return title


def _clean_per_day(value) -> float:
    per_day = to_float_safe(value)
    if per_day is None or per_day < 0:
        raise ValidationError("Price per day must be a non-negative number.")
    return per_day


class ProductService:
    """Product listings: catalog search, create, edit, delete, availability flag."""

    def __init__(self, store: Optional[Store] = None):
        self._store = store

    @property
    def store(self) -> Store:
        return self._store or _store()

    def _owned(self, product_id: str, actor: Identity, action: str) -> Product:
        p = self.get_product(product_id)
        if p.owner_id != actor.user_id and not actor.is_admin:
            raise ForbiddenError(f"Error: only the owner can {action} this product")
        return p

    # ---------- queries ----------
    def get_product(self, product_id: str) -> Product:
        """Return a product or raise ProductNotFoundError."""
        p = Product.from_dict(self.store.get_product(product_id))
        if p is None:
            raise ProductNotFoundError(f"Error: product '{product_id}' not found")
        return p

    def filter_products(self, search=None, available=None, min_price=None, max_price=None,
                        owner_id=None) -> list[dict]:
        """
        Filter products by keyword, availability flag, daily price range and owner.
        - `search` matches title or description (case-insensitive, partial).
        - `available` accepts bools or query-string values ("true"/"false").
        - Invalid min/max prices are ignored; swapped bounds are put in order.
        Results are newest first.
        """
        filters = {}
        if owner_id:
            filters["owner_id"] = str(owner_id)
        if available not in (None, ""):
            filters["is_available"] = _to_bool(available)
        res = self.store.products_where(**filters)

        kw = _lc(search).strip()
        if kw:
            res = [p for p in res if kw in _lc(p.get("title")) or kw in _lc(p.get("description"))]

        min_val = to_float_safe(min_price)
        max_val = to_float_safe(max_price)
        if (min_val is not None) and (max_val is not None) and (min_val > max_val):
            min_val, max_val = max_val, min_val
        if min_val is not None:
            res = [p for p in res if float(p.get("per_day") or 0) >= min_val]
        if max_val is not None:
            res = [p for p in res if float(p.get("per_day") or 0) <= max_val]

        res.sort(key=lambda p: p.get("created_at") or "", reverse=True)
        return [Product.from_dict(p).to_dict() for p in res]

    def catalog(self, args: dict) -> dict:
        """Public listing page built from query-string arguments."""
        rows = self.filter_products(
            search=args.get("search"),
            available=args.get("available"),
            min_price=args.get("min_price"),
            max_price=args.get("max_price"),
            owner_id=args.get("owner_id"),
        )
        limit = _to_int(args.get("limit"), DEFAULT_PAGE_SIZE, 1, MAX_PAGE_SIZE)
        page = _to_int(args.get("page"), 1, 1, 10 ** 6)
        return {
            "products": rows[(page - 1) * limit: page * limit],
            "total": len(rows),
            "page": page,
            "total_pages": math.ceil(len(rows) / limit),
        }

    def products_for_owner(self, owner_id: str) -> list[dict]:
        return self.filter_products(owner_id=owner_id)

    # ---------- mutations ----------
    def create_product(self, owner: Identity, payload: dict) -> Product:
        title = _clean_title(payload.get("title"))
        per_day = _clean_per_day(payload.get("per_day"))

        pid = self.store.create_product({
            "owner_id": owner.user_id,
            "title": title,
            "description": str(payload.get("description") or "").strip(),
            "per_day": per_day,
            "is_available": _to_bool(payload.get("is_available", True)),
        })
        logger.info("Product %s listed by %s at %.2f/day", pid, owner.user_id, per_day)
        return self.get_product(pid)

    def update_product(self, product_id: str, actor: Identity, payload: dict) -> Product:
        """
        Edit a listing. Only known fields are applied; rentals already
        requested keep the price they were created with.
        """
        p = self._owned(product_id, actor, "update")
        updates = {}
        if "title" in payload:
            updates["title"] = _clean_title(payload["title"])
        if "description" in payload:
            updates["description"] = str(payload["description"] or "").strip()
        if "per_day" in payload:
            updates["per_day"] = _clean_per_day(payload["per_day"])
        if "is_available" in payload:
            updates["is_available"] = _to_bool(payload["is_available"])
        if not updates:
            raise ValidationError(
                f"Nothing to update; editable fields are: {', '.join(EDITABLE_FIELDS)}"
            )

        with self.store.product_locks.hold(p.product_id):
            if not self.store.update_product(p.product_id, updates):
                raise ProductNotFoundError(f"Error: product '{product_id}' not found")
        logger.info("Product %s updated by %s: %s", p.product_id, actor.user_id, sorted(updates))
        return self.get_product(p.product_id)

    def set_availability(self, product_id: str, actor: Identity, is_available: bool) -> Product:
        p = self._owned(product_id, actor, "change availability of")
        self.store.set_availability(p.product_id, bool(is_available))
        return self.get_product(p.product_id)

    def delete_product(self, product_id: str, actor: Identity) -> None:
        """
        Delete a listing if and only if:
        - the product exists and the actor owns it (or is an admin),
        - no rental of it is still pending, approved or active.
        """
        p = self._owned(product_id, actor, "delete")
        with self.store.product_locks.hold(p.product_id):
            rentals = map(Rental.from_dict, self.store.rentals_where(product_id=p.product_id))
            open_count = sum(1 for r in rentals if not r.is_terminal)
            if open_count:
                raise ProductInUseError(
                    f"Error: cannot delete; product has {open_count} pending or active rental(s)",
                    open_rentals=open_count,
                )
            if not self.store.delete_product(p.product_id):
                raise ProductNotFoundError(f"Error: product '{product_id}' not found")
        logger.info("Product %s deleted by %s", p.product_id, actor.user_id)
