"""Centralized constants and business rules"""
from decimal import Decimal


class TripStatus:
    SCHEDULED = 'scheduled'
    CANCELLED = 'cancelled'
    COMPLETED = 'completed'

    CHOICES = [
        (SCHEDULED, 'Scheduled'),
        (CANCELLED, 'Cancelled'),
        (COMPLETED, 'Completed'),
    ]

class BookingStatus:
    BOOKED = 'booked'
    CANCELLED = 'cancelled'

    CHOICES = [
        (BOOKED, 'Booked'),
        (CANCELLED, 'Cancelled'),
    ]

class PaymentStatus:
    PENDING = 'pending'
    PAID = 'paid'
    REFUNDED = 'refunded'

    CHOICES = [
        (PENDING, 'Pending'),
        (PAID, 'Paid'),
        (REFUNDED, 'Refunded'),
    ]

class Gender:
    MALE = 'male'
    FEMALE = 'female'
    OTHER = 'other'

    CHOICES = [
        (MALE, 'male'),
        (FEMALE, 'female'),
        (OTHER, 'other'),
    ]
    VALUES = [MALE, FEMALE, OTHER]

class NotificationEvent:
    BOOKING_CREATED = 'booking_created'
    BOOKING_CANCELLED = 'booking_cancelled'

class FareRules:
    """Tax, fee and coupon constants applied by the fare calculator"""
    GST_PERCENT = Decimal('5')
    CONVENIENCE_FEE_PERCENT = Decimal('2')
    CONVENIENCE_FEE_MIN = Decimal('10')
    CONVENIENCE_FEE_MAX = Decimal('40')
    COUPON_PERCENT = Decimal('10')
    COUPON_MIN_FARE = Decimal('500')
    COUPON_MAX_DISCOUNT = Decimal('150')

class RefundRules:
    """Refund tiers keyed on hours left before departure"""
    FULL_WINDOW_HOURS = 24
    PARTIAL_WINDOW_HOURS = 6
    EARLY_PERCENT = 80
    LATE_PERCENT = 50
    NO_REFUND_PERCENT = 0

class BusinessRules:
    """Business rules and limits"""
    DEFAULT_TOTAL_SEATS = 40
    DEFAULT_OPERATOR_NAME = 'Friendly Travels'
    SEAT_CLAIM_MAX_RETRIES = 5
    SEAT_CLAIM_BACKOFF_SECONDS = 0.02
    WALLET_DEBIT_MAX_RETRIES = 3
    TRANSIENT_MAX_RETRIES = 3
    TRANSIENT_BACKOFF_SECONDS = 0.05
    PNR_MAX_ATTEMPTS = 5
    PNR_PREFIX = 'FT'
    FEEDBACK_MAX_LENGTH = 2000
