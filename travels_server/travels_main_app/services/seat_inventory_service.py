"""Seat inventory guard - race-free seat claims against a trip's seat set"""

import logging
import time

from django.db.models import F

from ..exceptions import SeatConflictError, TripUnavailableError, PersistenceFatalInconsistencyError
from ..models import Trip
from ..utils.constants import TripStatus, BusinessRules
from ..utils.persistence import call_with_retry, call_write_once

logger = logging.getLogger(__name__)


class SeatInventoryService:
    """
    Claims and releases seat labels on a trip.

    Each write is a compare-and-swap on (seat_version, status): the new seat
    set is stored only if nobody else changed it since it was read and the
    trip is still in the expected status. A lost race re-reads and retries
    with backoff; only the seat columns are contended, never the whole trip.
    """

    def __init__(self, max_retries=BusinessRules.SEAT_CLAIM_MAX_RETRIES,
                 backoff=BusinessRules.SEAT_CLAIM_BACKOFF_SECONDS):
        self.max_retries = max_retries
        self.backoff = backoff

    def claim_seats(self, trip_id, seat_labels, expected_status=TripStatus.SCHEDULED):
        """
        Append seat_labels to the trip's booked set.

        Raises:
            SeatConflictError: one or more labels already booked, or not
                enough seats left
            TripUnavailableError: trip missing or not in expected_status
        """
        requested = self._normalize(seat_labels)
        if not requested:
            raise ValueError('seat_labels must not be empty')

        overlap = set()
        for attempt in range(1, self.max_retries + 1):
            snapshot = self._load_seat_state(trip_id)
            if snapshot is None:
                raise TripUnavailableError(f"Trip {trip_id} not found")
            if snapshot['status'] != expected_status:
                raise TripUnavailableError(f"Trip {trip_id} is {snapshot['status']}")

            booked = snapshot['booked_seats']
            overlap = set(requested) & set(booked)
            if overlap:
                raise SeatConflictError(overlap)
            if len(booked) + len(requested) > snapshot['total_seats']:
                left = snapshot['total_seats'] - len(booked)
                raise SeatConflictError(requested, f"Only {left} seats left on trip {trip_id}")

            if self._compare_and_set(trip_id, snapshot['seat_version'], expected_status, booked + requested,
                                     requested, adding=True):
                logger.info(f"[SEATS] trip {trip_id} claimed {requested} (attempt {attempt})")
                return requested

            logger.info(f"[SEATS] trip {trip_id} seat set changed concurrently, retry {attempt}/{self.max_retries}")
            time.sleep(self.backoff * attempt)

        logger.warning(f"[SEATS] trip {trip_id} claim for {requested} exhausted retries")
        raise SeatConflictError(overlap or requested)

    def release_seats(self, trip_id, seat_labels):
        """
        Remove seat_labels from the booked set.

        Idempotent: labels not present are ignored, and a missing trip is a
        no-op. Returns the labels actually removed.
        """
        to_release = set(self._normalize(seat_labels))
        if not to_release:
            return []

        for attempt in range(1, self.max_retries + 1):
            snapshot = self._load_seat_state(trip_id)
            if snapshot is None:
                logger.warning(f"[SEATS] trip {trip_id} missing, nothing to release")
                return []

            booked = snapshot['booked_seats']
            removed = [s for s in booked if s in to_release]
            if not removed:
                return []

            remaining = [s for s in booked if s not in to_release]
            if self._compare_and_set(trip_id, snapshot['seat_version'], None, remaining, removed, adding=False):
                logger.info(f"[SEATS] trip {trip_id} released {removed}")
                return removed

            time.sleep(self.backoff * attempt)

        raise SeatConflictError(to_release, f"Could not release seats on trip {trip_id} under contention")

    def _load_seat_state(self, trip_id):
        return call_with_retry(self._read_seat_state, trip_id)

    def _read_seat_state(self, trip_id):
        return (Trip.objects.filter(pk=trip_id)
                .values('booked_seats', 'seat_version', 'status', 'total_seats')
                .first())

    def _compare_and_set(self, trip_id, seat_version, expected_status, new_seats, labels, adding):
        qs = Trip.objects.filter(pk=trip_id, seat_version=seat_version)
        if expected_status is not None:
            qs = qs.filter(status=expected_status)

        def write():
            return self._write_seats(qs, new_seats)

        def confirm():
            return self._confirm_seat_write(trip_id, seat_version, new_seats, labels, adding)

        context = {'trip_id': trip_id, 'seat_version': seat_version, 'seats': list(labels),
                   'action': 'claim' if adding else 'release'}
        return call_write_once(write, confirm, context) == 1

    def _write_seats(self, qs, new_seats):
        return qs.update(booked_seats=new_seats, seat_version=F('seat_version') + 1)

    def _confirm_seat_write(self, trip_id, seat_version, new_seats, labels, adding):
        """
        Decide whether a seat write whose acknowledgement was lost committed.

        Returns 1 if it landed, None if it certainly did not. A claim that
        may or may not be ours after a concurrent change is fatal.
        """
        state = self._read_seat_state(trip_id)
        if state is None:
            return None if adding else 1
        booked = set(state['booked_seats'])

        if not adding:
            return 1 if not booked & set(labels) else None

        if not set(labels) <= booked:
            return None
        if state['seat_version'] == seat_version + 1 and state['booked_seats'] == new_seats:
            return 1

        context = {'trip_id': trip_id, 'seats': list(labels), 'expected_version': seat_version + 1,
                   'seat_version': state['seat_version'], 'booked_seats': state['booked_seats']}
        logger.critical(f"[SEATS] cannot tell whether claim landed, manual reconciliation needed: {context}")
        raise PersistenceFatalInconsistencyError("Seat claim outcome is ambiguous", context)

    @staticmethod
    def _normalize(seat_labels):
        seen = []
        for label in seat_labels:
            label = str(label).strip()
            if label and label not in seen:
                seen.append(label)
        return seen
