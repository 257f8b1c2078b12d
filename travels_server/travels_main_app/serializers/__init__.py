"""Serializers package - imports from domain-specific modules"""

# Trip serializers
from .trip_serializers import (
    RouteSerializer,
    TripsSerializer,
    SeatAvailabilitySerializer,
)

# Booking serializers
from .booking_serializers import (
    BookingCreateSerializer,
    BookingSerializer,
    FareBreakdownSerializer,
    FarePreviewSerializer,
    CancellationResultSerializer,
)

# Feedback serializers
from .feedback_serializers import (
    FeedbackSerializer,
)

__all__ = [
    'RouteSerializer',
    'TripsSerializer',
    'SeatAvailabilitySerializer',
    'BookingCreateSerializer',
    'BookingSerializer',
    'FareBreakdownSerializer',
    'FarePreviewSerializer',
    'CancellationResultSerializer',
    'FeedbackSerializer',
]
