"""Route models"""
from django.db import models


class Route(models.Model):
    source = models.CharField(max_length=100)
    destination = models.CharField(max_length=100)
    distance_km = models.FloatField(default=0.0)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=['source', 'destination'], name='unique_route_pair'),
        ]

    def __str__(self):
        return f"{self.source} → {self.destination}"

    @staticmethod
    def normalize_city(name):
        return ' '.join((name or '').split()).title()

    def save(self, *args, **kwargs):
        self.source = self.normalize_city(self.source)
        self.destination = self.normalize_city(self.destination)
        super().save(*args, **kwargs)
