"""Trip-related serializers"""
from rest_framework import serializers
from ..models import Trip, Route


class RouteSerializer(serializers.ModelSerializer):
    class Meta:
        model = Route
        fields = ['id', 'source', 'destination', 'distance_km', 'is_active']


class TripsSerializer(serializers.ModelSerializer):
    route = RouteSerializer(read_only=True)
    available_seats = serializers.SerializerMethodField()

    class Meta:
        model = Trip
        fields = ['id', 'route', 'bus_id', 'operator_name', 'departure_time', 'arrival_time',
                  'duration_minutes', 'fare', 'total_seats', 'available_seats', 'amenities', 'status']

    def get_available_seats(self, obj):
        return obj.available_count


class SeatAvailabilitySerializer(serializers.Serializer):
    trip_id = serializers.IntegerField()
    status = serializers.CharField()
    total_seats = serializers.IntegerField()
    booked_seats = serializers.ListField(child=serializers.CharField())
    available_count = serializers.IntegerField()
