from django.contrib import admin
from django.contrib.auth.admin import UserAdmin
from .models import User, RewardTransaction


@admin.register(User)
class RailUserAdmin(UserAdmin):
    list_display = ['username', 'email', 'mobile_number', 'reward_points', 'is_active', 'created_at']
    search_fields = ['username', 'email', 'mobile_number']
    fieldsets = UserAdmin.fieldsets + (
        ('Passenger', {'fields': ('mobile_number', 'reward_points')}),
    )


@admin.register(RewardTransaction)
class RewardTransactionAdmin(admin.ModelAdmin):
    list_display = ['user', 'points', 'reason', 'booking', 'created_at']
    search_fields = ['user__username', 'booking__pnr']
    readonly_fields = ['created_at']
