from django.contrib import admin
from .models import Train, RouteStop, TrainClass

class RouteStopInline(admin.TabularInline):
    model = RouteStop
    extra = 1
    ordering = ('sequence',)

class TrainClassInline(admin.TabularInline):
    model = TrainClass
    extra = 1

@admin.register(Train)
class TrainAdmin(admin.ModelAdmin):
    list_display = ('train_number', 'name', 'train_type', 'running_days_display', 'is_active', 'created_at')
    search_fields = ('train_number', 'name')
    list_filter = ('train_type', 'is_active', 'created_at')
    inlines = [RouteStopInline, TrainClassInline]
    readonly_fields = ('train_number', 'created_at', 'updated_at')

    def get_queryset(self, request):
        return Train.all_objects.all()

    def running_days_display(self, obj):
        return ', '.join(obj.running_days) if obj.running_days else '-'
    running_days_display.short_description = 'Running Days'

    def get_readonly_fields(self, request, obj=None):
        if obj:  # Editing an existing object
            return self.readonly_fields
        else:  # Creating a new object
            return ('created_at', 'updated_at')

@admin.register(TrainClass)
class TrainClassAdmin(admin.ModelAdmin):
    list_display = ('train', 'class_type', 'available_seats', 'total_seats', 'base_price', 'price_per_km')
    list_filter = ('class_type', 'train')
    search_fields = ('train__name', 'train__train_number')
