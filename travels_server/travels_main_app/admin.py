from django.contrib import admin
from .models import Booking, Feedback

# Customize admin site
admin.site.site_header = "Friendly Travels Administration"
admin.site.site_title = "Friendly Travels Admin"
admin.site.index_title = "Welcome to Friendly Travels Admin Panel"


@admin.register(Booking)
class BookingAdmin(admin.ModelAdmin):
    list_display = ['pnr', 'user', 'source', 'destination', 'travel_date', 'total_amount', 'payment_status', 'status']
    list_filter = ['status', 'payment_status', 'travel_date']
    search_fields = ['pnr', 'user__username', 'user__email', 'source', 'destination']
    ordering = ['-created_at']
    list_per_page = 50
    # Bookings change only through BookingService
    readonly_fields = [f.name for f in Booking._meta.fields]

    def has_add_permission(self, request):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(Feedback)
class FeedbackAdmin(admin.ModelAdmin):
    list_display = ['id', 'user', 'rating', 'created_at']
    list_filter = ['rating', 'created_at']
    search_fields = ['user__username', 'message']
    ordering = ['-created_at']
