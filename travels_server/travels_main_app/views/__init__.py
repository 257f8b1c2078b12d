"""Views package - HTTP request handlers"""

from .booking_views import BookingViewSet, FarePreviewViewSet
from .trip_views import TripSearchView
from .feedback_views import FeedbackViewSet

__all__ = [
    'BookingViewSet', 'FarePreviewViewSet', 'TripSearchView', 'FeedbackViewSet',
]
