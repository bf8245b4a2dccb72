from django.contrib import admin
from .models import Booking, Passenger

class PassengerInline(admin.TabularInline):
    model = Passenger
    extra = 0
    readonly_fields = ['created_at']

@admin.register(Booking)
class BookingAdmin(admin.ModelAdmin):
    list_display = ['pnr', 'user', 'train_number', 'from_station_code', 'to_station_code',
                   'journey_date', 'status', 'payment_status', 'class_type', 'total_price', 'created_at']
    list_filter = ['status', 'payment_status', 'class_type', 'journey_date', 'created_at']
    search_fields = ['pnr', 'user__username', 'train_number', 'train_name']
    readonly_fields = ['pnr', 'created_at', 'updated_at']
    inlines = [PassengerInline]
    ordering = ['-created_at']

    def get_queryset(self, request):
        return Booking.all_objects.select_related('user')

@admin.register(Passenger)
class PassengerAdmin(admin.ModelAdmin):
    list_display = ['name', 'booking', 'age', 'gender', 'berth_preference', 'seat_number', 'coach_number']
    list_filter = ['gender', 'berth_preference', 'created_at']
    search_fields = ['name', 'booking__pnr']
    readonly_fields = ['created_at']
    ordering = ['booking', 'name']
