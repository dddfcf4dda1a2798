from dataclasses import dataclass, field
from datetime import date
from typing import Optional

from ..utils.constants import RentalStatus
from ..utils.dates import as_date, overlap


@dataclass
class Rental:
    """
    One party's request to use another party's product over a date range.
    The Store keeps raw dicts; services wrap them into Rental objects.
    """
    rental_id: str
    product_id: str
    renter_id: str
    owner_id: str  # copied from the product at creation time
    start_date: date
    end_date: date
    days: int
    duration: str  # "daily" | "weekly" | "monthly"
    total_price: float
    status: str = RentalStatus.PENDING
    created_at: str = ""
    updated_at: str = ""
    product_title: Optional[str] = field(default=None, compare=False)

    @property
    def is_committed(self) -> bool:
        return self.status in RentalStatus.COMMITTED

    @property
    def is_terminal(self) -> bool:
        return self.status in RentalStatus.TERMINAL

    def overlaps(self, start: date, end: date) -> bool:
        return overlap(self.start_date, self.end_date, start, end)

    @classmethod
    def from_dict(cls, d: Optional[dict]) -> Optional["Rental"]:
        """Map a stored rental dict to a Rental object."""
        if not d:
            return None
        return cls(
            rental_id=str(d.get("rental_id")),
            product_id=str(d.get("product_id")),
            renter_id=str(d.get("renter_id")),
            owner_id=str(d.get("owner_id")),
            start_date=as_date(d.get("start_date")),
            end_date=as_date(d.get("end_date")),
            days=int(d.get("days") or 0),
            duration=d.get("duration") or "",
            total_price=float(d.get("total_price") or 0.0),
            status=(d.get("status") or RentalStatus.PENDING).lower(),
            created_at=d.get("created_at") or "",
            updated_at=d.get("updated_at") or "",
        )

    def to_dict(self) -> dict:
        d = {
            "rental_id": self.rental_id,
            "product_id": self.product_id,
            "renter_id": self.renter_id,
            "owner_id": self.owner_id,
            "start_date": self.start_date.isoformat(),
            "end_date": self.end_date.isoformat(),
            "days": self.days,
            "duration": self.duration,
            "total_price": self.total_price,
            "status": self.status,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }
        if self.product_title is not None:
            d["product_title"] = self.product_title
        return d
