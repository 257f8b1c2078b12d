from django.urls import path, include
from rest_framework.routers import DefaultRouter

from .views import WalletView, WalletTransactionView

router = DefaultRouter()
# Read-only; balance changes go through WalletService
router.register(r'balance', WalletView, basename='wallet-balance')
router.register(r'transactions', WalletTransactionView, basename='wallet-transactions')

urlpatterns = [
    path('wallet/', include(router.urls)),
]
