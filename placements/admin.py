from django.contrib import admin
from .models import Placement


@admin.register(Placement)
class PlacementAdmin(admin.ModelAdmin):
    list_display = ('student', 'company', 'placement_officer', 'status', 'started_at', 'placement_date')
    list_filter = ('status', 'company', 'placement_officer__school')
    search_fields = ('student__name', 'company__name', 'placement_officer__name')
    date_hierarchy = 'placement_date'
    raw_id_fields = ('student', 'company', 'placement_officer')
