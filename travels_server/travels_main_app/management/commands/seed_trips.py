from datetime import timedelta
from decimal import Decimal

from django.core.management.base import BaseCommand
from django.utils import timezone

from travels_main_app.models import Route, Trip


class Command(BaseCommand):
    help = 'Seed database with sample routes and upcoming trips'

    ROUTES = [
        ('Chennai', 'Bangalore', 346, Decimal('650.00')),
        ('Chennai', 'Madurai', 462, Decimal('780.00')),
        ('Bangalore', 'Hyderabad', 569, Decimal('950.00')),
    ]

    def add_arguments(self, parser):
        parser.add_argument('--days', type=int, default=7, help='Number of days of trips to create')

    def handle(self, *args, **options):
        self.stdout.write('Seeding trip data...')
        days = options['days']
        today = timezone.localtime().replace(hour=0, minute=0, second=0, microsecond=0)

        created_trips = 0
        for index, (source, destination, distance, fare) in enumerate(self.ROUTES):
            route, created = Route.objects.get_or_create(
                source=source,
                destination=destination,
                defaults={'distance_km': distance},
            )
            if created:
                self.stdout.write(f'Created route: {route}')

            duration = int(distance / 50 * 60)
            for day in range(days):
                for hour in (7, 21):
                    departure = today + timedelta(days=day, hours=hour)
                    _, created = Trip.objects.get_or_create(
                        bus_id=f'TN-{index + 1:02d}-{hour:02d}',
                        departure_time=departure,
                        defaults={
                            'route': route,
                            'arrival_time': departure + timedelta(minutes=duration),
                            'duration_minutes': duration,
                            'fare': fare,
                            'amenities': ['ac', 'charging_point'] if hour == 21 else ['ac'],
                        },
                    )
                    created_trips += created

        self.stdout.write(self.style.SUCCESS(f'Created {created_trips} trips'))
