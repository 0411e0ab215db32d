from django.contrib import admin
from .models import User, Session


@admin.register(User)
class PlacementUserAdmin(admin.ModelAdmin):
    list_display = ('email', 'first_name', 'last_name', 'role', 'school', 'last_login')
    list_filter = ('role', 'school')
    search_fields = ('email', 'first_name', 'last_name')
    ordering = ('-created_at',)
    readonly_fields = ('created_at', 'updated_at', 'last_login')
    raw_id_fields = ('school',)

    fieldsets = (
        (None, {'fields': ('email', 'password_hash')}),
        ('Personal Info', {'fields': ('first_name', 'last_name', 'phone_number')}),
        ('Access', {'fields': ('role', 'school')}),
        ('Dates', {'fields': ('last_login', 'created_at', 'updated_at', 'deleted_at')}),
    )


@admin.register(Session)
class SessionAdmin(admin.ModelAdmin):
    list_display = ('user_email', 'token_truncated', 'is_expired', 'created_at', 'expires_at')
    list_filter = ('is_expired',)
    search_fields = ('user__email',)
    readonly_fields = ('token', 'created_at')
    raw_id_fields = ('user',)

    @admin.display(description='User Email')
    def user_email(self, obj):
        return obj.user.email

    @admin.display(description='Token')
    def token_truncated(self, obj):
        return str(obj.token)[:8] + '...'
