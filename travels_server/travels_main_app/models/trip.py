"""Trip-related models"""
from decimal import Decimal

from django.core.validators import MinValueValidator
from django.db import models

from ..utils.constants import TripStatus, BusinessRules


class Trip(models.Model):
    # Written only by SeatInventoryService through conditional updates
    SEAT_FIELDS = ('booked_seats', 'seat_version')

    route = models.ForeignKey('Route', on_delete=models.PROTECT, related_name='trips')
    bus_id = models.CharField(max_length=50)
    operator_name = models.CharField(max_length=100, default=BusinessRules.DEFAULT_OPERATOR_NAME)
    departure_time = models.DateTimeField()
    arrival_time = models.DateTimeField()
    duration_minutes = models.PositiveIntegerField()
    fare = models.DecimalField(max_digits=10, decimal_places=2, validators=[MinValueValidator(Decimal('0.01'))])
    total_seats = models.PositiveIntegerField(default=BusinessRules.DEFAULT_TOTAL_SEATS)
    booked_seats = models.JSONField(default=list)
    seat_version = models.PositiveIntegerField(default=0)
    amenities = models.JSONField(default=list, blank=True)
    status = models.CharField(max_length=20, choices=TripStatus.CHOICES, default=TripStatus.SCHEDULED, db_index=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        indexes = [
            models.Index(fields=['route', 'departure_time'], name='trip_route_departure_idx'),
        ]
        constraints = [
            models.UniqueConstraint(fields=['bus_id', 'departure_time'], name='unique_bus_departure'),
        ]

    def __str__(self):
        return f"{self.route} ({self.departure_time:%Y-%m-%d %H:%M})"

    def save(self, *args, **kwargs):
        # A full save of an existing trip must not overwrite a seat set that
        # was changed concurrently since this instance was loaded.
        if self.pk and not self._state.adding and kwargs.get('update_fields') is None:
            kwargs['update_fields'] = [
                f.name for f in self._meta.concrete_fields
                if not f.primary_key and f.name not in self.SEAT_FIELDS
            ]
        super().save(*args, **kwargs)

    @property
    def available_count(self):
        return max(self.total_seats - len(self.booked_seats), 0)

    @property
    def is_bookable(self):
        return self.status == TripStatus.SCHEDULED
