from dataclasses import dataclass
from typing import Callable, Optional

from ..models.store import Store
from ..utils.constants import ApprovalMode, DEFAULT_PRICE_TOLERANCE
from .analytics_service import AnalyticsService
from .availability_service import AvailabilityService
from .notification_service import NotificationService
from .product_service import ProductService
from .rental_service import RentalService
from .user_service import UserService

__all__ = [
    "RentalService",
    "AvailabilityService",
    "NotificationService",
    "ProductService",
    "UserService",
    "AnalyticsService",
    "Services",
    "build_services",
]


@dataclass
class Services:
    store: Store
    rentals: RentalService
    availability: AvailabilityService
    notifications: NotificationService
    products: ProductService
    users: UserService
    analytics: AnalyticsService


def build_services(
        store: Store,
        *,
        notifier: Optional[NotificationService] = None,
        clock: Optional[Callable] = None,
        timezone: str = "UTC",
        approval_mode: str = ApprovalMode.DIRECT,
        price_tolerance: float = DEFAULT_PRICE_TOLERANCE,
) -> Services:
    """Wire every service against one store."""
    notifications = notifier or NotificationService(store)
    availability = AvailabilityService(store)
    rentals = RentalService(
        store, notifications, availability,
        clock=clock,
        timezone=timezone,
        approval_mode=approval_mode,
        price_tolerance=price_tolerance,
    )
    return Services(
        store=store,
        rentals=rentals,
        availability=availability,
        notifications=notifications,
        products=ProductService(store),
        users=UserService(store),
        analytics=AnalyticsService(store),
    )
