from __future__ import annotations

from typing import Optional

from ..models.store import Store
from ..utils.constants import RentalStatus as S
from .common import _store, round2


class AnalyticsService:
    """Aggregations for the vendor, customer and admin dashboards."""

    def __init__(self, store: Optional[Store] = None):
        self._store = store

    @property
    def store(self) -> Store:
        return self._store or _store()

    def vendor_stats(self, owner_id: str) -> dict:
        owner_id = str(owner_id)
        rentals = self.store.rentals_where(owner_id=owner_id)
        revenue = sum(float(r.get("total_price") or 0)
                      for r in rentals if r.get("status") == S.COMPLETED)
        return {
            "total_products": len(self.store.products_where(owner_id=owner_id)),
            "active_rentals": sum(1 for r in rentals if r.get("status") == S.ACTIVE),
            "total_rentals": sum(1 for r in rentals
                                 if r.get("status") in (S.COMPLETED, S.ACTIVE)),
            "pending_requests": sum(1 for r in rentals if r.get("status") == S.PENDING),
            "total_revenue": round2(revenue),
        }

    def customer_stats(self, renter_id: str) -> dict:
        rentals = self.store.rentals_where(renter_id=str(renter_id))
        spent = sum(float(r.get("total_price") or 0)
                    for r in rentals if r.get("status") in (S.COMPLETED, S.ACTIVE))
        return {
            "active_rentals": sum(1 for r in rentals if r.get("status") == S.ACTIVE),
            "approved_rentals": sum(1 for r in rentals if r.get("status") == S.APPROVED),
            "total_rentals": len(rentals),
            "pending_requests": sum(1 for r in rentals if r.get("status") == S.PENDING),
            "total_spent": round2(spent),
        }

    def admin_summary(self) -> dict:
        store = self.store
        rentals = store.rentals_where()
        counts = store.counts()
        revenue = sum(float(r.get("total_price") or 0)
                      for r in rentals if r.get("status") == S.COMPLETED)
        by_status = {s: 0 for s in S.ALL}
        for r in rentals:
            by_status[r.get("status")] = by_status.get(r.get("status"), 0) + 1
        return {
            "totals": {
                "users": counts["users"],
                "active_users": sum(1 for u in store.users_where() if u.get("is_active", True)),
                "products": counts["products"],
                "rentals": len(rentals),
                "active_rentals": sum(1 for r in rentals if r.get("status") in S.COMMITTED),
                "revenue": round2(revenue),
            },
            "rentals_by_status": by_status,
        }
