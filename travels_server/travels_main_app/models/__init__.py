"""Models package - domain-based organization"""

# Route models
from .route import Route

# Trip models
from .trip import Trip

# Booking models
from .booking import Booking

# Feedback models
from .feedback import Feedback

__all__ = [
    'Route', 'Trip', 'Booking', 'Feedback',
]
