from django.contrib import admin
from django.urls import path, include

urlpatterns = [
    path('admin/', admin.site.urls),
    path('', include('accounts.urls')),
    path('', include('trains.urls')),
    path('', include('bookingsystem.urls')),
    path('', include('payment.urls')),
]

admin.site.site_header = "Railway Booking Admin"
admin.site.site_title = "Railway Booking Admin Portal"
