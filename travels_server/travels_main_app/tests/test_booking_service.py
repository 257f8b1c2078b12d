"""Tests for booking service"""

from datetime import timedelta
from decimal import Decimal
from unittest.mock import patch

from django.db import OperationalError
from django.db.models.query import QuerySet
from django.test import TestCase, override_settings
from django.utils import timezone

from wallet.models import Wallet, WalletTransaction

from ..exceptions import (
    BookingValidationError, SeatConflictError, TripUnavailableError, BookingAlreadyCancelledError,
    PersistenceTransientError, PersistenceFatalInconsistencyError,
)
from ..models import Booking, Trip
from ..services.booking_service import BookingService
from ..services.notification_service import NotificationService
from ..services.seat_inventory_service import SeatInventoryService
from ..services.trip_service import TripService
from ..utils.constants import BookingStatus, PaymentStatus
from .helpers import make_user, make_trip, passengers_for


@override_settings(COUPON_CODE='FIRST10')
class BookingServiceTest(TestCase):
    def setUp(self):
        self.user = make_user()
        self.trip = make_trip(fare='500.00')
        self.service = BookingService(seat_service=SeatInventoryService(backoff=0))

    def _book(self, seats=('A1', 'A2'), **kwargs):
        return self.service.create_booking(
            user=self.user,
            trip_id=self.trip.id,
            seat_labels=list(seats),
            passengers=passengers_for(*seats),
            **kwargs,
        )

    def test_create_booking_success(self):
        booking = self._book(payment_order_id='order_mock_1')

        self.trip.refresh_from_db()
        self.assertEqual(self.trip.booked_seats, ['A1', 'A2'])
        self.assertEqual(len(booking.pnr), 15)
        self.assertEqual(booking.fare_amount, Decimal('1000.00'))
        self.assertEqual(booking.gst_amount, Decimal('50.00'))
        self.assertEqual(booking.convenience_fee, Decimal('20.00'))
        self.assertEqual(booking.total_amount, Decimal('1070.00'))
        self.assertEqual(booking.status, BookingStatus.BOOKED)
        self.assertEqual(booking.payment_status, PaymentStatus.PAID)
        self.assertEqual(booking.payment_ref, 'order_mock_1')
        self.assertEqual(booking.source, 'Chennai')
        self.assertEqual(booking.travel_date, self.trip.departure_time)
        self.assertEqual(booking.seat_numbers, ['A1', 'A2'])

    def test_create_booking_with_coupon(self):
        booking = self._book(coupon_code='first10')

        self.assertEqual(booking.coupon_code, 'FIRST10')
        self.assertEqual(booking.discount_amount, Decimal('100.00'))
        self.assertEqual(booking.total_amount, Decimal('970.00'))

    def test_explicit_seat_assignment_must_match_requested_seats(self):
        passengers = passengers_for('A1', 'A2')
        passengers[0]['seat_number'] = 'A2'
        passengers[1]['seat_number'] = 'A1'

        booking = self.service.create_booking(self.user, self.trip.id, ['A1', 'A2'], passengers)
        self.assertEqual(booking.seat_numbers, ['A2', 'A1'])

        passengers[1]['seat_number'] = 'A2'
        with self.assertRaises(BookingValidationError):
            self.service.create_booking(self.user, self.trip.id, ['B1', 'B2'], passengers)

    def test_wallet_partially_pays(self):
        Wallet.objects.create(user=self.user, balance=Decimal('300.00'))

        booking = self._book(use_wallet=True)

        self.assertEqual(booking.wallet_used, Decimal('300.00'))
        self.assertEqual(booking.total_amount, Decimal('770.00'))
        self.assertEqual(Wallet.objects.get(user=self.user).balance, Decimal('0.00'))

    def test_wallet_covers_whole_total(self):
        Wallet.objects.create(user=self.user, balance=Decimal('2000.00'))

        booking = self._book(use_wallet=True)

        self.assertEqual(booking.wallet_used, Decimal('1070.00'))
        self.assertEqual(booking.total_amount, Decimal('0.00'))
        self.assertEqual(Wallet.objects.get(user=self.user).balance, Decimal('930.00'))

    def test_validation_errors_name_first_offending_field(self):
        cases = [
            ([], [], 'seats'),
            (['A1', 'A2'], passengers_for('A1'), 'passengers'),
            (['A1', 'A1'], passengers_for('A1', 'A2'), 'seats[1]'),
            (['A1'], [{'name': ' ', 'age': 20, 'gender': 'male'}], 'passengers[0].name'),
            (['A1'], [{'name': 'Asha', 'age': 0, 'gender': 'female'}], 'passengers[0].age'),
            (['A1', 'A2'], [{'name': 'Asha', 'age': 20, 'gender': 'female'},
                            {'name': 'Ravi', 'age': 22, 'gender': 'unknown'}], 'passengers[1].gender'),
        ]
        for seats, passengers, field in cases:
            with self.assertRaises(BookingValidationError) as ctx:
                self.service.create_booking(self.user, self.trip.id, seats, passengers)
            self.assertEqual(ctx.exception.field, field)

        self.trip.refresh_from_db()
        self.assertEqual(self.trip.booked_seats, [])
        self.assertFalse(Booking.objects.exists())

    def test_trip_unavailable(self):
        TripService().cancel_trip(self.trip.id)

        with self.assertRaises(TripUnavailableError):
            self._book()
        with self.assertRaises(TripUnavailableError):
            self.service.create_booking(self.user, 999999, ['A1'], passengers_for('A1'))

    def test_seat_conflict_lists_conflicting_seats(self):
        self._book(seats=('A1',))

        with self.assertRaises(SeatConflictError) as ctx:
            self._book(seats=('A2', 'A1'))

        self.trip.refresh_from_db()
        self.assertEqual(ctx.exception.seats, ['A1'])
        self.assertEqual(self.trip.booked_seats, ['A1'])
        self.assertEqual(Booking.objects.count(), 1)

    @patch('travels_main_app.utils.persistence.time.sleep')
    def test_failed_persistence_releases_seats_and_refunds_wallet(self, _sleep):
        Wallet.objects.create(user=self.user, balance=Decimal('500.00'))

        with patch.object(BookingService, '_insert_booking', side_effect=OperationalError('timeout')):
            with self.assertRaises(PersistenceTransientError):
                self._book(use_wallet=True)

        self.trip.refresh_from_db()
        self.assertEqual(self.trip.booked_seats, [])
        self.assertEqual(Wallet.objects.get(user=self.user).balance, Decimal('500.00'))
        self.assertFalse(Booking.objects.exists())

    @patch('travels_main_app.utils.persistence.time.sleep')
    def test_failed_compensation_is_fatal(self, _sleep):
        with patch.object(BookingService, '_insert_booking', side_effect=OperationalError('timeout')), \
                patch.object(self.service.seat_service, 'release_seats',
                             side_effect=PersistenceTransientError('down')):
            with self.assertRaises(PersistenceFatalInconsistencyError) as ctx:
                self._book()

        self.assertEqual(ctx.exception.context['seats'], ['A1', 'A2'])
        self.assertEqual(ctx.exception.context['trip_id'], self.trip.id)

    def test_pnr_collision_regenerates_reference(self):
        existing = self._book(seats=('A1',))

        with patch('travels_main_app.services.booking_service.generate_pnr',
                   side_effect=[existing.pnr, 'FT0000000ABCDEF']):
            booking = self._book(seats=('B1',))

        self.assertEqual(booking.pnr, 'FT0000000ABCDEF')
        self.assertEqual(Booking.objects.count(), 2)

    def test_booking_notification_is_queued_after_commit(self):
        with patch('travels_main_app.tasks.deliver_booking_event.delay') as delay:
            with self.captureOnCommitCallbacks(execute=True):
                booking = self._book()

        event = delay.call_args[0][0]
        self.assertEqual(event['event_type'], 'booking_created')
        self.assertEqual(event['pnr'], booking.pnr)
        self.assertEqual(event['amount'], '1070.00')

    def test_notification_failure_does_not_fail_booking(self):
        with patch('travels_main_app.tasks.deliver_booking_event.delay', side_effect=ConnectionError('broker down')):
            with self.captureOnCommitCallbacks(execute=True):
                booking = self._book()

        self.assertTrue(Booking.objects.filter(pk=booking.pk).exists())


class CancelBookingTest(TestCase):
    def setUp(self):
        self.user = make_user()
        self.now = timezone.now()

    def _service(self):
        return BookingService(seat_service=SeatInventoryService(backoff=0), clock=lambda: self.now)

    def _booking(self, departs_in, total='1000.00'):
        trip = make_trip(departure_time=self.now + departs_in, booked_seats=['A1'], bus_id=f'TN-{departs_in}')
        return Booking.objects.create(
            pnr=f'FT{trip.id:013d}',
            user=self.user,
            trip=trip,
            source=trip.route.source,
            destination=trip.route.destination,
            travel_date=trip.departure_time,
            passengers=[{'name': 'Asha', 'age': 30, 'gender': 'female', 'seat_number': 'A1'}],
            total_amount=Decimal(total),
            payment_status=PaymentStatus.PAID,
        )

    def test_refund_tiers(self):
        for hours, percent, amount in [(48, 80, '800.00'), (12, 50, '500.00'), (2, 0, '0.00')]:
            booking = self._booking(timedelta(hours=hours))

            result = self._service().cancel_booking(booking.id, self.user)

            self.assertEqual(result['refund_percent'], percent)
            self.assertEqual(result['refund_amount'], Decimal(amount))

        self.assertEqual(Wallet.objects.get(user=self.user).balance, Decimal('1300.00'))

    def test_cancel_marks_booking_and_releases_seats(self):
        booking = self._booking(timedelta(hours=48))

        result = self._service().cancel_booking(booking.id, self.user)

        booking.refresh_from_db()
        booking.trip.refresh_from_db()
        self.assertEqual(booking.status, BookingStatus.CANCELLED)
        self.assertEqual(booking.payment_status, PaymentStatus.REFUNDED)
        self.assertEqual(booking.cancelled_at, self.now)
        self.assertEqual(booking.refund_percent, 80)
        self.assertEqual(booking.trip.booked_seats, [])
        self.assertEqual(result['wallet_balance'], Decimal('800.00'))

    def test_cancel_twice_credits_once(self):
        booking = self._booking(timedelta(hours=48))
        service = self._service()

        service.cancel_booking(booking.id, self.user)
        with self.assertRaises(BookingAlreadyCancelledError):
            service.cancel_booking(booking.id, self.user)

        wallet = Wallet.objects.get(user=self.user)
        self.assertEqual(wallet.balance, Decimal('800.00'))
        self.assertEqual(WalletTransaction.objects.filter(wallet=wallet).count(), 1)

    def test_concurrent_cancel_loses_conditional_update(self):
        booking = self._booking(timedelta(hours=48))
        Booking.objects.filter(pk=booking.pk).update(status=BookingStatus.CANCELLED)

        with patch.object(Booking, 'is_cancelled', new=False):
            with self.assertRaises(BookingAlreadyCancelledError):
                self._service().cancel_booking(booking.id, self.user)

        self.assertFalse(Wallet.objects.filter(user=self.user).exists())

    def test_refund_uses_stored_travel_date(self):
        booking = self._booking(timedelta(hours=48))
        Trip.objects.filter(pk=booking.trip_id).update(departure_time=self.now + timedelta(hours=1))

        result = self._service().cancel_booking(booking.id, self.user)

        self.assertEqual(result['refund_percent'], 80)

    def test_cancel_when_trip_is_gone(self):
        booking = self._booking(timedelta(hours=12))
        booking.trip.delete()

        result = self._service().cancel_booking(booking.id, self.user)

        self.assertEqual(result['refund_amount'], Decimal('500.00'))

    def test_other_users_booking_is_not_found(self):
        booking = self._booking(timedelta(hours=48))
        intruder = make_user('intruder')

        with self.assertRaises(Booking.DoesNotExist):
            self._service().cancel_booking(booking.id, intruder)

    def test_refund_credit_failure_is_fatal(self):
        booking = self._booking(timedelta(hours=48))
        service = self._service()

        with patch.object(service.wallet_service, 'credit', side_effect=PersistenceTransientError('down')):
            with self.assertRaises(PersistenceFatalInconsistencyError) as ctx:
                service.cancel_booking(booking.id, self.user)

        self.assertEqual(ctx.exception.context['pnr'], booking.pnr)
        self.assertEqual(ctx.exception.context['refund_amount'], '800.00')


@override_settings(COUPON_CODE='FIRST10')
class BookingRoundTripTest(TestCase):
    def test_book_then_cancel_restores_seat_set(self):
        user = make_user()
        trip = make_trip(booked_seats=['C1'])
        Wallet.objects.create(user=user, balance=Decimal('100.00'))
        service = BookingService(seat_service=SeatInventoryService(backoff=0))

        booking = service.create_booking(user, trip.id, ['A1', 'A2'], passengers_for('A1', 'A2'),
                                         coupon_code='FIRST10', use_wallet=True)
        result = service.cancel_booking(booking.id, user)

        trip.refresh_from_db()
        self.assertEqual(trip.booked_seats, ['C1'])
        self.assertLessEqual(result['refund_amount'], booking.total_amount)
        self.assertEqual(result['refund_amount'], Decimal('696.00'))
        self.assertEqual(Wallet.objects.get(user=user).balance, Decimal('696.00'))


class UnacknowledgedWriteTest(TestCase):
    """Writes whose commit was not acknowledged are confirmed by re-reading, not replayed"""

    def setUp(self):
        self.user = make_user()
        self.now = timezone.now()
        self.trip = make_trip(departure_time=self.now + timedelta(hours=48))
        self.service = BookingService(seat_service=SeatInventoryService(backoff=0), clock=lambda: self.now)

    def _fail_after_first_commit(self, original):
        calls = []

        def flaky(*args, **kwargs):
            result = original(*args, **kwargs)
            if not calls:
                calls.append(result)
                raise OperationalError('server closed the connection unexpectedly')
            return result
        return flaky

    def test_committed_seat_claim_still_books(self):
        seat_service = self.service.seat_service
        flaky = self._fail_after_first_commit(seat_service._write_seats)

        with patch.object(seat_service, '_write_seats', side_effect=flaky):
            booking = self.service.create_booking(self.user, self.trip.id, ['A1'], passengers_for('A1'))

        self.trip.refresh_from_db()
        self.assertEqual(self.trip.booked_seats, ['A1'])
        self.assertEqual(list(Booking.objects.values_list('pk', flat=True)), [booking.pk])

    def test_uncommitted_seat_claim_leaves_nothing_behind(self):
        with patch.object(self.service.seat_service, '_write_seats', side_effect=OperationalError('timeout')):
            with self.assertRaises(PersistenceTransientError):
                self.service.create_booking(self.user, self.trip.id, ['A1'], passengers_for('A1'))

        self.trip.refresh_from_db()
        self.assertEqual(self.trip.booked_seats, [])
        self.assertFalse(Booking.objects.exists())

    def test_committed_booking_insert_is_not_duplicated(self):
        flaky = self._fail_after_first_commit(self.service._insert_booking)

        with patch.object(self.service, '_insert_booking', side_effect=flaky):
            booking = self.service.create_booking(self.user, self.trip.id, ['A1'], passengers_for('A1'))

        self.assertEqual(Booking.objects.count(), 1)
        self.assertEqual(Booking.objects.get().pnr, booking.pnr)

    def test_committed_cancel_refunds_once(self):
        booking = self.service.create_booking(self.user, self.trip.id, ['A1'], passengers_for('A1'))
        original_update = QuerySet.update
        calls = []

        def flaky_update(qs, **kwargs):
            result = original_update(qs, **kwargs)
            if qs.model is Booking and not calls:
                calls.append(result)
                raise OperationalError('server closed the connection unexpectedly')
            return result

        with patch.object(QuerySet, 'update', autospec=True, side_effect=flaky_update):
            result = self.service.cancel_booking(booking.id, self.user)

        self.assertEqual(result['refund_amount'], Decimal('428.00'))
        self.assertEqual(Wallet.objects.get(user=self.user).balance, Decimal('428.00'))
        self.assertEqual(WalletTransaction.objects.count(), 1)
        self.trip.refresh_from_db()
        self.assertEqual(self.trip.booked_seats, [])

    def test_notification_build_failure_does_not_fail_booking(self):
        with patch.object(NotificationService, 'build_event', side_effect=KeyError('email')):
            with self.captureOnCommitCallbacks(execute=True) as callbacks:
                booking = self.service.create_booking(self.user, self.trip.id, ['A1'], passengers_for('A1'))

        self.assertTrue(Booking.objects.filter(pk=booking.pk).exists())
        self.assertEqual(callbacks, [])
