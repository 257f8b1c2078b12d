"""Booking-related models"""
from decimal import Decimal

from django.contrib.auth.models import User
from django.db import models

from ..utils.constants import BookingStatus, PaymentStatus


def _money_field(**kwargs):
    return models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0.00'), **kwargs)


class Booking(models.Model):
    pnr = models.CharField(max_length=20, unique=True)
    user = models.ForeignKey(User, on_delete=models.CASCADE, related_name='bookings')
    trip = models.ForeignKey('Trip', on_delete=models.SET_NULL, null=True, blank=True, related_name='bookings')

    # Snapshot of the trip at booking time
    source = models.CharField(max_length=100)
    destination = models.CharField(max_length=100)
    travel_date = models.DateTimeField()

    # [{name, age, gender, seat_number}]
    passengers = models.JSONField(default=list)

    fare_amount = _money_field()
    gst_amount = _money_field()
    convenience_fee = _money_field()
    discount_amount = _money_field()
    coupon_code = models.CharField(max_length=30, null=True, blank=True)
    wallet_used = _money_field()
    total_amount = _money_field()

    payment_status = models.CharField(max_length=20, choices=PaymentStatus.CHOICES, default=PaymentStatus.PENDING)
    status = models.CharField(max_length=20, choices=BookingStatus.CHOICES, default=BookingStatus.BOOKED)
    payment_ref = models.CharField(max_length=100, null=True, blank=True)

    refund_percent = models.PositiveSmallIntegerField(null=True, blank=True)
    refund_amount = _money_field()
    cancelled_at = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        indexes = [
            models.Index(fields=['user', '-created_at'], name='booking_user_created_idx'),
        ]

    def __str__(self):
        return f"{self.pnr} - {self.source} → {self.destination}"

    @property
    def seat_numbers(self):
        return [p['seat_number'] for p in self.passengers]

    @property
    def is_cancelled(self):
        return self.status == BookingStatus.CANCELLED
