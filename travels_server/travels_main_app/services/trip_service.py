"""Trip service - business logic for trip operations"""

from datetime import datetime, time, timedelta

from django.utils import timezone

from ..exceptions import TripUnavailableError
from ..models import Trip
from ..utils.constants import TripStatus
from ..utils.persistence import call_with_retry, call_write_once


class TripService:
    """Service for trip operations"""

    def search_trips(self, source, destination, date):
        """Scheduled trips on active routes between two cities on a given day"""
        tz = timezone.get_current_timezone()
        day_start = timezone.make_aware(datetime.combine(date, time.min), tz)
        day_end = day_start + timedelta(days=1)

        return Trip.objects.select_related('route').filter(
            route__source__iexact=source.strip(),
            route__destination__iexact=destination.strip(),
            route__is_active=True,
            status=TripStatus.SCHEDULED,
            departure_time__gte=day_start,
            departure_time__lt=day_end,
        ).order_by('departure_time')

    def get_seat_availability(self, trip_id):
        trip = call_with_retry(lambda: Trip.objects.filter(pk=trip_id).first())
        if trip is None:
            raise TripUnavailableError(f"Trip {trip_id} not found")

        return {
            'trip_id': trip.id,
            'status': trip.status,
            'total_seats': trip.total_seats,
            'booked_seats': list(trip.booked_seats),
            'available_count': trip.available_count,
        }

    def cancel_trip(self, trip_id):
        return self._finish(trip_id, TripStatus.CANCELLED)

    def complete_trip(self, trip_id):
        return self._finish(trip_id, TripStatus.COMPLETED)

    def _finish(self, trip_id, new_status):
        # scheduled -> cancelled|completed only; both are terminal
        now = timezone.now()

        def write():
            return Trip.objects.filter(pk=trip_id, status=TripStatus.SCHEDULED).update(
                status=new_status,
                updated_at=now,
            )

        def confirm():
            row = Trip.objects.filter(pk=trip_id).values('status', 'updated_at').first()
            if row is None or row['status'] == TripStatus.SCHEDULED:
                return None
            return 1 if row['status'] == new_status and row['updated_at'] == now else 0

        updated = call_write_once(write, confirm, {'trip_id': trip_id, 'status': new_status})
        if not updated:
            raise TripUnavailableError(f'Cannot mark trip {trip_id} as {new_status}')
        return Trip.objects.get(pk=trip_id)
