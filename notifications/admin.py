from django.contrib import admin
from .models import ChangeEvent


@admin.register(ChangeEvent)
class ChangeEventAdmin(admin.ModelAdmin):
    list_display = ('id', 'table', 'event', 'record_id', 'created_at')
    list_filter = ('table', 'event')
    search_fields = ('table',)
    readonly_fields = ('table', 'event', 'record_id', 'payload', 'created_at')
