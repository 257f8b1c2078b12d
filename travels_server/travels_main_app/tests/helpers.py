"""Shared fixtures for service and API tests"""
from datetime import timedelta
from decimal import Decimal

from django.contrib.auth.models import User
from django.utils import timezone

from ..models import Route, Trip


def make_user(username='testuser'):
    return User.objects.create_user(username, email=f'{username}@example.com', password='pass1234')


def make_trip(fare='500.00', total_seats=40, departs_in=timedelta(hours=48), booked_seats=None,
              source='Chennai', destination='Bangalore', bus_id='TN-01', **kwargs):
    route, _ = Route.objects.get_or_create(source=source, destination=destination, defaults={'distance_km': 346})
    departure = kwargs.pop('departure_time', timezone.now() + departs_in)
    return Trip.objects.create(
        route=route,
        bus_id=bus_id,
        departure_time=departure,
        arrival_time=departure + timedelta(hours=6),
        duration_minutes=360,
        fare=Decimal(fare),
        total_seats=total_seats,
        booked_seats=list(booked_seats or []),
        **kwargs,
    )


def passengers_for(*seats):
    return [
        {'name': f'Passenger {seat}', 'age': 30 + i, 'gender': 'female' if i % 2 else 'male'}
        for i, seat in enumerate(seats)
    ]
