"""Booking-related views using BookingService"""
from rest_framework import viewsets, status
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated, AllowAny
from rest_framework_simplejwt.authentication import JWTAuthentication
from rest_framework.decorators import action

from ..serializers import (
    BookingCreateSerializer, BookingSerializer, FareBreakdownSerializer,
    FarePreviewSerializer, CancellationResultSerializer,
)
from ..models import Booking
from ..services import BookingService
from ..exceptions import (
    BookingValidationError, SeatConflictError, TripUnavailableError, BookingAlreadyCancelledError,
    PersistenceTransientError, PersistenceFatalInconsistencyError,
)


def booking_error_response(error):
    """Map the booking error taxonomy onto HTTP responses"""
    if isinstance(error, BookingValidationError):
        return Response({'error': error.message, 'field': error.field}, status=status.HTTP_400_BAD_REQUEST)
    if isinstance(error, BookingAlreadyCancelledError):
        return Response({'error': str(error)}, status=status.HTTP_400_BAD_REQUEST)
    if isinstance(error, SeatConflictError):
        return Response({'error': str(error), 'conflicting_seats': error.seats}, status=status.HTTP_409_CONFLICT)
    if isinstance(error, TripUnavailableError):
        return Response({'error': str(error)}, status=status.HTTP_410_GONE)
    if isinstance(error, PersistenceTransientError):
        return Response({'error': 'Service temporarily unavailable, please retry', 'retryable': True},
                        status=status.HTTP_503_SERVICE_UNAVAILABLE)
    if isinstance(error, PersistenceFatalInconsistencyError):
        return Response({'error': 'Booking could not be completed. Our team has been notified.',
                         'error_code': 'reconciliation_required'},
                        status=status.HTTP_500_INTERNAL_SERVER_ERROR)
    raise error


class BookingViewSet(viewsets.ReadOnlyModelViewSet):
    lookup_value_regex = r"\d+"
    authentication_classes = [JWTAuthentication]
    permission_classes = [IsAuthenticated]
    serializer_class = BookingSerializer

    def get_queryset(self):
        return BookingService().get_user_bookings(self.request.user)

    def create(self, request, *args, **kwargs):
        serializer = BookingCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        try:
            booking = BookingService().create_booking(
                user=request.user,
                trip_id=data['trip_id'],
                seat_labels=data['seats'],
                passengers=data['passengers'],
                coupon_code=data.get('coupon_code'),
                use_wallet=data.get('use_wallet', False),
                payment_order_id=data.get('payment_order_id'),
            )
        except (BookingValidationError, SeatConflictError, TripUnavailableError,
                PersistenceTransientError, PersistenceFatalInconsistencyError) as e:
            return booking_error_response(e)

        return Response(BookingSerializer(booking).data, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=['post'], url_path='cancel')
    def cancel_booking(self, request, pk=None):
        try:
            result = BookingService().cancel_booking(pk, request.user)
        except Booking.DoesNotExist:
            return Response({'error': 'Booking not found'}, status=status.HTTP_404_NOT_FOUND)
        except (BookingAlreadyCancelledError, PersistenceTransientError, PersistenceFatalInconsistencyError) as e:
            return booking_error_response(e)

        return Response(CancellationResultSerializer(result).data, status=status.HTTP_200_OK)


class FarePreviewViewSet(viewsets.ViewSet):
    """Coupon preview - same breakdown as booking creation, no side effects"""
    permission_classes = [AllowAny]
    authentication_classes = []

    @action(detail=False, methods=['post'], url_path='preview')
    def preview(self, request):
        serializer = FarePreviewSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        try:
            breakdown = BookingService().preview_fare(data['base_fare'], data['seat_count'], data.get('coupon_code'))
        except BookingValidationError as e:
            return booking_error_response(e)

        return Response(FareBreakdownSerializer(breakdown).data, status=status.HTTP_200_OK)


__all__ = [
    'BookingViewSet',
    'FarePreviewViewSet',
    'booking_error_response',
]
