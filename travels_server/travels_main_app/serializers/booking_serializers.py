"""Booking-related serializers"""
from decimal import Decimal

from rest_framework import serializers
from ..models import Booking


class BookingCreateSerializer(serializers.Serializer):
    # Shape only; seat/passenger rules are enforced by BookingService
    trip_id = serializers.IntegerField()
    seats = serializers.ListField(child=serializers.CharField(allow_blank=True, trim_whitespace=False))
    passengers = serializers.ListField(child=serializers.DictField())
    coupon_code = serializers.CharField(required=False, allow_blank=True, allow_null=True, max_length=30)
    use_wallet = serializers.BooleanField(required=False, default=False)
    payment_order_id = serializers.CharField(required=False, allow_blank=True, allow_null=True, max_length=100)


class FareBreakdownSerializer(serializers.Serializer):
    fare_amount = serializers.DecimalField(max_digits=10, decimal_places=2)
    gst_amount = serializers.DecimalField(max_digits=10, decimal_places=2)
    convenience_fee = serializers.DecimalField(max_digits=10, decimal_places=2)
    discount_amount = serializers.DecimalField(max_digits=10, decimal_places=2)
    coupon_code = serializers.CharField(allow_null=True)
    wallet_used = serializers.SerializerMethodField()
    total_amount = serializers.DecimalField(max_digits=10, decimal_places=2)

    def get_wallet_used(self, obj):
        # Same shape as Booking fare_breakdown; a preview never touches the wallet
        return str(getattr(obj, 'wallet_used', Decimal('0.00')))


class FarePreviewSerializer(serializers.Serializer):
    base_fare = serializers.DecimalField(max_digits=10, decimal_places=2)
    seat_count = serializers.IntegerField()
    coupon_code = serializers.CharField(required=False, allow_blank=True, allow_null=True, max_length=30)


class BookingSerializer(serializers.ModelSerializer):
    seats = serializers.SerializerMethodField()
    fare_breakdown = serializers.SerializerMethodField()

    class Meta:
        model = Booking
        fields = ['id', 'pnr', 'trip', 'source', 'destination', 'travel_date', 'passengers', 'seats',
                  'fare_breakdown', 'payment_status', 'status', 'payment_ref', 'refund_percent',
                  'refund_amount', 'cancelled_at', 'created_at']
        read_only_fields = fields

    def get_seats(self, obj):
        return obj.seat_numbers

    def get_fare_breakdown(self, obj):
        return {
            'fare_amount': str(obj.fare_amount),
            'gst_amount': str(obj.gst_amount),
            'convenience_fee': str(obj.convenience_fee),
            'discount_amount': str(obj.discount_amount),
            'coupon_code': obj.coupon_code,
            'wallet_used': str(obj.wallet_used),
            'total_amount': str(obj.total_amount),
        }


class CancellationResultSerializer(serializers.Serializer):
    booking_id = serializers.IntegerField(source='booking.id')
    pnr = serializers.CharField(source='booking.pnr')
    refund_percent = serializers.IntegerField()
    refund_amount = serializers.DecimalField(max_digits=10, decimal_places=2)
    wallet_balance = serializers.DecimalField(max_digits=10, decimal_places=2)
