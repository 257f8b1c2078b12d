"""Trip-related views"""
from datetime import datetime

from rest_framework import viewsets, status
from rest_framework.response import Response
from rest_framework.permissions import AllowAny
from rest_framework.decorators import action

from ..serializers import TripsSerializer, SeatAvailabilitySerializer
from ..models import Trip
from ..services import TripService
from ..exceptions import TripUnavailableError


class TripSearchView(viewsets.ReadOnlyModelViewSet):
    """Search trips by route and travel date"""
    permission_classes = [AllowAny]
    authentication_classes = []
    serializer_class = TripsSerializer
    lookup_value_regex = r"\d+"

    def get_queryset(self):
        return Trip.objects.select_related('route').order_by('departure_time')

    def list(self, request, *args, **kwargs):
        source = request.query_params.get('source')
        destination = request.query_params.get('destination')
        date_str = request.query_params.get('date')

        if not source or not destination or not date_str:
            return Response({'error': 'source, destination and date are required'},
                            status=status.HTTP_400_BAD_REQUEST)
        try:
            date = datetime.strptime(date_str, '%Y-%m-%d').date()
        except ValueError:
            return Response({'error': 'Invalid date format. Use YYYY-MM-DD'},
                            status=status.HTTP_400_BAD_REQUEST)

        trips = TripService().search_trips(source, destination, date)
        serializer = self.get_serializer(trips, many=True)
        return Response(serializer.data)

    @action(detail=True, methods=['get'], url_path='seats')
    def seats(self, request, pk=None):
        try:
            availability = TripService().get_seat_availability(pk)
        except TripUnavailableError as e:
            return Response({'error': str(e)}, status=status.HTTP_404_NOT_FOUND)
        return Response(SeatAvailabilitySerializer(availability).data)
