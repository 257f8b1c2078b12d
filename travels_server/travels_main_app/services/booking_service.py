"""Booking service - business logic for booking operations"""

import logging
from decimal import Decimal, InvalidOperation

from django.db import IntegrityError, transaction
from django.utils import timezone

from wallet.services import WalletService

from ..exceptions import (
    BookingError,
    BookingValidationError,
    TripUnavailableError,
    BookingAlreadyCancelledError,
    PersistenceTransientError,
    PersistenceFatalInconsistencyError,
)
from ..models import Trip, Booking
from ..utils.constants import BookingStatus, PaymentStatus, Gender, BusinessRules
from ..utils.money import to_money, percent_of
from ..utils.persistence import call_with_retry, call_write_once
from ..utils.pnr import generate_pnr
from .fare_service import FareService
from .notification_service import NotificationService
from .refund_policy import refund_percent_for
from .seat_inventory_service import SeatInventoryService

logger = logging.getLogger(__name__)


class BookingService:
    """
    Orchestrates booking creation and cancellation.

    The store is not assumed to give multi-row transactions, so each step
    commits on its own and a failure after seats are claimed (or the wallet
    debited) is undone with compensating actions before the error propagates.
    """

    def __init__(self, seat_service=None, fare_service=None, wallet_service=None,
                 notification_service=None, clock=None):
        self.seat_service = seat_service or SeatInventoryService()
        self.fare_service = fare_service or FareService()
        self.wallet_service = wallet_service or WalletService()
        self.notification_service = notification_service or NotificationService()
        self.clock = clock or timezone.now

    def create_booking(self, user, trip_id, seat_labels, passengers, coupon_code=None,
                       use_wallet=False, payment_order_id=None):
        """
        Create booking with atomic seat claim

        Args:
            user: User object (authenticated principal)
            trip_id: Trip ID
            seat_labels: Seat labels to claim, one per passenger
            passengers: List of passenger dicts (name, age, gender, optional seat_number)
            coupon_code: Optional coupon
            use_wallet: Pay part (or all) of the total from the wallet
            payment_order_id: Mock payment reference, stored as proof of payment

        Returns:
            Booking object

        Raises:
            BookingValidationError: bad input, nothing was changed
            TripUnavailableError: trip missing, cancelled or completed
            SeatConflictError: requested seats taken; retry with other seats
            PersistenceTransientError: storage unavailable; safe to retry
            PersistenceFatalInconsistencyError: rollback failed, needs an operator
        """
        seats, passenger_rows = self.validate_request(seat_labels, passengers)

        trip = call_with_retry(lambda: Trip.objects.select_related('route').filter(pk=trip_id).first())
        if trip is None:
            raise TripUnavailableError(f"Trip {trip_id} not found")
        if not trip.is_bookable:
            raise TripUnavailableError(f"Cannot book trip with status '{trip.status}'")

        self.seat_service.claim_seats(trip.id, seats)

        pnr = generate_pnr()
        wallet_used = Decimal('0.00')
        try:
            breakdown = self.fare_service.compute_breakdown(trip.fare, len(seats), coupon_code)

            if use_wallet:
                wallet_used, _ = self.wallet_service.debit_up_to(
                    user.id, breakdown.total_amount, reference_id=pnr, title='booking payment',
                    idempotency_key=f"{pnr}:payment",
                )

            booking = self._persist_booking(
                pnr=pnr,
                user=user,
                trip=trip,
                passengers=passenger_rows,
                fare_amount=breakdown.fare_amount,
                gst_amount=breakdown.gst_amount,
                convenience_fee=breakdown.convenience_fee,
                discount_amount=breakdown.discount_amount,
                coupon_code=breakdown.coupon_code,
                wallet_used=wallet_used,
                total_amount=max(Decimal('0.00'), to_money(breakdown.total_amount - wallet_used)),
                payment_ref=payment_order_id,
            )
        except Exception as e:
            self._compensate_failed_booking(user, trip.id, seats, wallet_used, pnr, e)
            raise

        logger.info(f"[BOOKING] {booking.pnr} created for user {user.id} on trip {trip.id} "
                    f"seats={seats} total={booking.total_amount} wallet={booking.wallet_used}")
        self.notification_service.send_booking_confirmation(booking)
        return booking

    def cancel_booking(self, booking_id, user):
        """
        Cancel booking, release its seats and refund to the wallet

        Returns:
            dict with booking, refund_percent, refund_amount and wallet_balance

        Raises:
            Booking.DoesNotExist: no such booking for this user
            BookingAlreadyCancelledError: refund was already issued
        """
        booking = call_with_retry(
            lambda: Booking.objects.select_related('user').filter(pk=booking_id, user=user).first()
        )
        if booking is None:
            raise Booking.DoesNotExist(f"Booking {booking_id} not found")
        if booking.is_cancelled:
            raise BookingAlreadyCancelledError("Booking already cancelled")

        now = self.clock()
        refund_percent = refund_percent_for(booking.travel_date, now)
        refund_amount = min(percent_of(booking.total_amount, refund_percent), booking.total_amount)

        # Conditional on status=booked so concurrent cancels refund only once
        def mark_cancelled():
            return Booking.objects.filter(pk=booking.pk, status=BookingStatus.BOOKED).update(
                status=BookingStatus.CANCELLED,
                payment_status=PaymentStatus.REFUNDED,
                cancelled_at=now,
                refund_percent=refund_percent,
                refund_amount=refund_amount,
                updated_at=now,
            )

        def confirm_cancelled():
            row = Booking.objects.filter(pk=booking.pk).values('status', 'cancelled_at').first()
            if row is None or row['status'] == BookingStatus.BOOKED:
                return None
            # cancelled_at carries this request's timestamp only if our update landed
            return 1 if row['cancelled_at'] == now else 0

        updated = call_write_once(mark_cancelled, confirm_cancelled, {'booking_id': booking.pk, 'pnr': booking.pnr})
        if not updated:
            raise BookingAlreadyCancelledError("Booking already cancelled")

        if booking.trip_id:
            try:
                self.seat_service.release_seats(booking.trip_id, booking.seat_numbers)
            except BookingError as e:
                logger.warning(f"[BOOKING] {booking.pnr} seat release on trip {booking.trip_id} failed: {e}")

        try:
            wallet_balance = self.wallet_service.credit(
                user.id, refund_amount, reference_id=booking.pnr, title='booking refund',
                idempotency_key=f"{booking.pnr}:refund",
            )
        except PersistenceTransientError as e:
            context = {
                'booking_id': booking.pk,
                'pnr': booking.pnr,
                'user_id': user.id,
                'trip_id': booking.trip_id,
                'refund_amount': str(refund_amount),
                'cancelled_at': now.isoformat(),
            }
            logger.critical(f"[BOOKING] booking cancelled but refund credit failed: {context}")
            raise PersistenceFatalInconsistencyError(
                "Booking cancelled but refund could not be credited", context
            ) from e

        booking.refresh_from_db()
        logger.info(f"[BOOKING] {booking.pnr} cancelled: refund {refund_percent}% = {refund_amount}")
        self.notification_service.send_cancellation_notification(booking)

        return {
            'booking': booking,
            'refund_percent': refund_percent,
            'refund_amount': refund_amount,
            'wallet_balance': wallet_balance,
        }

    def preview_fare(self, base_fare, seat_count, coupon_code=None):
        """Same breakdown as booking creation, without side effects"""
        try:
            base_fare = Decimal(str(base_fare))
        except (InvalidOperation, ValueError):
            raise BookingValidationError('base_fare', 'must be a number')
        if not base_fare.is_finite() or base_fare <= 0:
            raise BookingValidationError('base_fare', 'must be greater than 0')
        if not isinstance(seat_count, int) or isinstance(seat_count, bool) or seat_count < 1:
            raise BookingValidationError('seat_count', 'must be a positive integer')
        return self.fare_service.compute_breakdown(base_fare, seat_count, coupon_code)

    def get_user_bookings(self, user):
        return Booking.objects.filter(user=user).order_by('-created_at')

    def validate_request(self, seat_labels, passengers):
        """
        Check seats and passengers; the first offending field is reported.

        Returns (seats, passenger_rows) with each passenger assigned a seat.
        """
        if not isinstance(seat_labels, (list, tuple)) or not seat_labels:
            raise BookingValidationError('seats', 'at least one seat is required')

        seats = []
        for i, label in enumerate(seat_labels):
            if not isinstance(label, str) or not label.strip():
                raise BookingValidationError(f'seats[{i}]', 'seat label must be a non-blank string')
            label = label.strip()
            if label in seats:
                raise BookingValidationError(f'seats[{i}]', f"seat {label} requested twice")
            seats.append(label)

        if not isinstance(passengers, (list, tuple)) or len(passengers) != len(seats):
            raise BookingValidationError('passengers', 'one passenger is required per seat')

        rows = []
        for i, p in enumerate(passengers):
            if not isinstance(p, dict):
                raise BookingValidationError(f'passengers[{i}]', 'must be an object')

            name = p.get('name')
            if not isinstance(name, str) or not name.strip():
                raise BookingValidationError(f'passengers[{i}].name', 'name is required')

            age = p.get('age')
            if isinstance(age, str) and age.strip().isdigit():
                age = int(age.strip())
            if not isinstance(age, int) or isinstance(age, bool) or age <= 0:
                raise BookingValidationError(f'passengers[{i}].age', 'age must be a positive integer')

            gender = p.get('gender')
            gender = gender.strip().lower() if isinstance(gender, str) else gender
            if gender not in Gender.VALUES:
                raise BookingValidationError(f'passengers[{i}].gender', f"gender must be one of {', '.join(Gender.VALUES)}")

            rows.append({
                'name': name.strip(),
                'age': age,
                'gender': gender,
                'seat_number': p.get('seat_number'),
            })

        self._assign_seats(seats, rows)
        return seats, rows

    def _assign_seats(self, seats, rows):
        explicit = [r['seat_number'] for r in rows if r['seat_number'] not in (None, '')]
        if not explicit:
            for row, seat in zip(rows, seats):
                row['seat_number'] = seat
            return

        for i, row in enumerate(rows):
            seat = row['seat_number']
            if not isinstance(seat, str) or seat.strip() not in seats:
                raise BookingValidationError(f'passengers[{i}].seat_number', 'must be one of the requested seats')
            row['seat_number'] = seat.strip()
        if sorted(r['seat_number'] for r in rows) != sorted(seats):
            raise BookingValidationError('passengers', 'each requested seat must be assigned to exactly one passenger')

    def _persist_booking(self, pnr, trip, **fields):
        for attempt in range(1, BusinessRules.PNR_MAX_ATTEMPTS + 1):
            try:
                return call_write_once(
                    lambda: self._insert_booking(pnr, trip, fields),
                    lambda: self._find_inserted_booking(pnr, trip, fields),
                    {'pnr': pnr, 'trip_id': trip.id, 'user_id': fields['user'].id},
                )
            except IntegrityError:
                if not call_with_retry(Booking.objects.filter(pnr=pnr).exists):
                    raise
                logger.warning(f"[BOOKING] PNR collision on {pnr} (attempt {attempt}), regenerating")
                pnr = generate_pnr()
        raise PersistenceTransientError("Could not allocate a unique booking reference")

    def _insert_booking(self, pnr, trip, fields):
        with transaction.atomic():
            return Booking.objects.create(
                pnr=pnr,
                trip=trip,
                source=trip.route.source,
                destination=trip.route.destination,
                travel_date=trip.departure_time,
                payment_status=PaymentStatus.PAID,
                status=BookingStatus.BOOKED,
                **fields,
            )

    def _find_inserted_booking(self, pnr, trip, fields):
        return Booking.objects.filter(pnr=pnr, user=fields['user'], trip=trip).first()

    def _compensate_failed_booking(self, user, trip_id, seats, wallet_used, pnr, error):
        failures = []
        if wallet_used > 0:
            try:
                self.wallet_service.credit(user.id, wallet_used, reference_id=pnr, title='booking reversal',
                                          idempotency_key=f"{pnr}:reversal")
            except Exception as e:
                failures.append(f"wallet credit of {wallet_used}: {e}")
        try:
            self.seat_service.release_seats(trip_id, seats)
        except Exception as e:
            failures.append(f"seat release of {seats}: {e}")

        if failures:
            context = {
                'pnr': pnr,
                'user_id': user.id,
                'trip_id': trip_id,
                'seats': seats,
                'wallet_used': str(wallet_used),
                'at': timezone.now().isoformat(),
                'cause': repr(error),
                'failures': failures,
            }
            logger.critical(f"[BOOKING] compensation failed, manual reconciliation needed: {context}")
            raise PersistenceFatalInconsistencyError("Booking failed and could not be rolled back", context) from error

        logger.warning(f"[BOOKING] creation failed for user {user.id} on trip {trip_id}, "
                       f"released {seats} and refunded {wallet_used}: {error!r}")
