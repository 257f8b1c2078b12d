"""Services package - business logic layer"""

from .fare_service import FareService, FareBreakdown, compute_breakdown
from .refund_policy import refund_percent_for
from .seat_inventory_service import SeatInventoryService
from .booking_service import BookingService
from .trip_service import TripService
from .notification_service import NotificationService

__all__ = [
    'FareService',
    'FareBreakdown',
    'compute_breakdown',
    'refund_percent_for',
    'SeatInventoryService',
    'BookingService',
    'TripService',
    'NotificationService',
]
