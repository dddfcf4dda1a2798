from dataclasses import dataclass
from typing import Optional


@dataclass
class Product:
    """
    Collaborator view of a listed product. Per-day rate is the only pricing
    input; images, reviews and the rest of the listing live elsewhere.
    """
    product_id: str
    owner_id: str
    title: str
    per_day: float
    is_available: bool = True
    description: str = ""
    created_at: str = ""

    @classmethod
    def from_dict(cls, d: Optional[dict]) -> Optional["Product"]:
        """Map a stored product dict to a Product object."""
        if not d:
            return None
        return cls(
            product_id=str(d.get("product_id")),
            owner_id=str(d.get("owner_id")),
            title=d.get("title") or "",
            per_day=float(d.get("per_day") or 0.0),
            is_available=bool(d.get("is_available", True)),
            description=d.get("description") or "",
            created_at=d.get("created_at") or "",
        )

    def to_dict(self) -> dict:
        return {
            "product_id": self.product_id,
            "owner_id": self.owner_id,
            "title": self.title,
            "per_day": self.per_day,
            "is_available": self.is_available,
            "description": self.description,
            "created_at": self.created_at,
        }
