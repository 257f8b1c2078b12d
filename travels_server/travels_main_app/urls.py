from django.urls import path, include
from rest_framework import routers

from .views import BookingViewSet, FarePreviewViewSet, TripSearchView, FeedbackViewSet

router = routers.DefaultRouter()
router.register(r"trips", TripSearchView, basename='trips')
router.register(r"booking", BookingViewSet, basename="booking")
router.register(r"fare", FarePreviewViewSet, basename="fare")
router.register(r"feedback", FeedbackViewSet, basename="feedback")

urlpatterns = [
    path('', include(router.urls)),
]
